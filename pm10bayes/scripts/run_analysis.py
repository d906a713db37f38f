# run_analysis.py
# ---------------------------------------------------------------------------
# Full PM10 / mortality analysis, top to bottom:
#   [1/5] load per-city tables
#   [2/5] per-city Poisson GLM -> results table
#   [3/5] profile likelihood vs Normal approximation (one city)
#   [4/5] Bayesian Poisson regression for the same city (NUTS)
#   [5/5] two-stage Normal hierarchical model across cities (NUTS)
# ---------------------------------------------------------------------------
import argparse
from pathlib import Path

import arviz as az
import matplotlib.pyplot as plt
import pandas as pd

from pm10bayes import config
from pm10bayes.analysis.diagnostics import sampler_diagnostics, print_diagnostics
from pm10bayes.analysis.profile_likelihood import (
    profile_likelihood, is_unimodal, asymmetry, normal_approx_error,
)
from pm10bayes.data_processing.load_cities import load_cities
from pm10bayes.data_processing.simulate_cities import write_cities
from pm10bayes.models.bayes_city import (
    build_city_model, sample_city_model, summarize_city_posterior, CITY_VARS,
)
from pm10bayes.models.glm_city import fit_all_cities, results_table, city_lookup
from pm10bayes.models.hierarchical import (
    build_hierarchical_model, sample_hierarchical_model, pooled_summary,
    city_shrinkage_table, random_effects_pool, pooling_narrows_interval, HIER_VARS,
)
from pm10bayes.tables.table_param_summary import (
    comparison_table, pooled_table, posterior_summary_table, write_table,
)
from pm10bayes.visualization.fig_forest import plot_city_intervals
from pm10bayes.visualization.fig_profile import plot_profile
from pm10bayes.visualization.fig_trace import plot_trace, plot_posterior


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bayesian hierarchical analysis of PM10 and daily mortality across cities")
    parser.add_argument("--data-dir", type=Path, default=config.DIR_CITIES,
                        help="Directory with one table per city")
    parser.add_argument("--pattern", default=config.CITY_FILE_PATTERN,
                        help="Glob selecting city files (default: %(default)s)")
    parser.add_argument("--city", default=config.DEFAULT_CITY,
                        help="City for the single-city stages (default: %(default)s)")
    parser.add_argument("--draws", type=int, default=config.DRAWS)
    parser.add_argument("--tune", type=int, default=config.TUNE)
    parser.add_argument("--chains", type=int, default=config.CHAINS)
    parser.add_argument("--cores", type=int, default=config.CORES)
    parser.add_argument("--target-accept", type=float, default=config.TARGET_ACCEPT)
    parser.add_argument("--nuts-sampler", default=config.NUTS_SAMPLER,
                        help="pm.sample backend: pymc, nutpie, numpyro, blackjax")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for the samplers (unseeded by default)")
    parser.add_argument("--no-plots", action="store_true", help="Skip figures")
    parser.add_argument("--save-posteriors", action="store_true",
                        help="Write posteriors to NetCDF under results/posteriors")
    parser.add_argument("--simulate", type=int, default=0, metavar="N",
                        help="Write N simulated cities into --data-dir before running")
    return parser


def run(args: argparse.Namespace) -> dict:
    """Run all stages; returns the main intermediate objects."""
    config.ensure_dirs()
    sampler_kw = dict(draws=args.draws, tune=args.tune, chains=args.chains, cores=args.cores,
                      target_accept=args.target_accept, random_seed=args.seed,
                      nuts_sampler=args.nuts_sampler)
    plots = not args.no_plots
    if plots:
        config.setup_publication_style()

    if args.simulate:
        write_cities(args.data_dir, n_cities=args.simulate, seed=args.seed)

    # ------------------------------ 1) data ---------------------------------
    print("\n[1/5] Loading city tables...")
    cities = load_cities(args.data_dir, args.pattern)

    # ------------------------------ 2) GLM ----------------------------------
    print("\n[2/5] Fitting Poisson GLM per city...")
    fits = fit_all_cities(cities)
    results = results_table(fits)
    write_table(results, "results_table", index=False)

    fit = city_lookup(fits, args.city)
    frame = cities[fit.city]
    print(f"\n{fit.city}: {fit.pct_increase:+.2f}% per {config.PM10_INCREMENT:g} ug/m3 "
          f"(beta = {fit.estimate:.5f}, SE = {fit.std_error:.5f})")

    # ------------------------------ 3) profile ------------------------------
    print(f"\n[3/5] Profile likelihood for {fit.city}...")
    profile = profile_likelihood(frame, fit)
    print(f"[check] unimodal = {is_unimodal(profile['rel_lik'])} | "
          f"asymmetry = {asymmetry(profile, fit):.4f} | "
          f"max |profile - normal| = {normal_approx_error(profile):.4f}")
    if plots:
        plot_profile(profile, fit, name=f"profile_likelihood_{fit.city}")
        plt.close("all")

    # ------------------------------ 4) Bayes city ---------------------------
    print(f"\n[4/5] Bayesian Poisson regression for {fit.city}...")
    city_model = build_city_model(frame)
    idata_city = sample_city_model(city_model, **sampler_kw)
    print(summarize_city_posterior(idata_city))
    print_diagnostics(sampler_diagnostics(idata_city, ["alpha", "theta"]), label=fit.city)
    comparison = comparison_table(fit, idata_city)
    print(comparison)
    write_table(comparison, f"mle_vs_posterior_{fit.city}")
    if args.save_posteriors:
        az.to_netcdf(idata_city, config.PATH_MODEL_CITY)
        print("[OK] Saved:", config.PATH_MODEL_CITY)
    if plots:
        plot_trace(idata_city, CITY_VARS, name=f"trace_{fit.city}")
        plt.close("all")

    # ------------------------------ 5) hierarchical -------------------------
    print(f"\n[5/5] Two-stage hierarchical model over {len(results)} cities...")
    hier_model = build_hierarchical_model(results)
    idata_hier = sample_hierarchical_model(hier_model, **sampler_kw)
    print(posterior_summary_table(idata_hier, HIER_VARS))
    print_diagnostics(sampler_diagnostics(idata_hier, ["mu", "tau", "z_city"]), label="hierarchical")

    summary = pooled_summary(idata_hier)
    dl = random_effects_pool(results)
    pooled = pooled_table(summary, dl)
    print(pooled)
    write_table(pooled, "pooled_effect")

    shrink = city_shrinkage_table(idata_hier, results)
    write_table(shrink, "city_posterior_effects", index=False)

    print(f"[check] 95% interval excludes zero: {summary['excludes_zero']}")
    print(f"[check] pooled interval narrower than every city interval: "
          f"{pooling_narrows_interval(summary, results)}")

    if args.save_posteriors:
        az.to_netcdf(idata_hier, config.PATH_MODEL_HIERARCHICAL)
        print("[OK] Saved:", config.PATH_MODEL_HIERARCHICAL)
    if plots:
        plot_trace(idata_hier, ["mu", "tau"], name="trace_hierarchical")
        plot_posterior(idata_hier, ["pct_increase"], name="pooled_pct_increase")
        plot_city_intervals(results, shrink, summary, name="city_intervals")
        plt.close("all")

    return {
        "cities": cities,
        "fits": fits,
        "results": results,
        "profile": profile,
        "idata_city": idata_city,
        "idata_hier": idata_hier,
        "pooled": summary,
    }


def main(argv=None):
    args = build_parser().parse_args(argv)

    print("=" * 60)
    print("PM10 and mortality: Bayesian hierarchical analysis")
    print("=" * 60)
    pd.set_option("display.width", 120)

    run(args)

    print("\n" + "=" * 60)
    print("ANALYSIS COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
