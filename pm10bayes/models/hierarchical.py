# hierarchical.py
# Stage 4: Two-stage Normal hierarchical model for the city PM10 effects
# -----------------------------------------------------------------------------
"""
Two-stage hierarchical combination of city-specific log relative risks.

Stage 1 (per city, from glm_city.py):
    beta_hat_c, se_c                     <- MLE and standard error

Stage 2 (this module):
    beta_hat_c ~ Normal(theta_c, se_c^2)   <- se_c treated as known
    theta_c    ~ Normal(mu, tau^2)         <- latent true city effect
    mu         ~ Normal(0, PRIOR_SD_MU)    <- pooled (national) effect
    tau        ~ HalfStudentT(3, PRIOR_SCALE_TAU)

Key technical choices:
  - Non-centered parameterization theta_c = mu + tau * z_c (better sampling
    when tau is small relative to se_c, which is typical here)
  - Everything is sampled in units of the median city SE; mu, tau and theta
    are reported back in per-unit-PM10 units as Deterministics
"""

from typing import Dict, Optional

import numpy as np
import pandas as pd
import pymc as pm
import arviz as az
from scipy import stats

from pm10bayes.config import (
    PM10_INCREMENT, PRIOR_SD_MU, PRIOR_SCALE_TAU, HDI_PROB,
    DRAWS, TUNE, CHAINS, CORES, TARGET_ACCEPT, NUTS_SAMPLER,
)
from pm10bayes.models.glm_city import percent_increase
from pm10bayes.models.sampling import sample_model

HIER_VARS = ["mu", "tau", "pct_increase"]


def _check_results(results: pd.DataFrame) -> None:
    if results is None or len(results) == 0:
        raise ValueError("Results table is empty")
    for col in ("city", "estimate", "std_error"):
        if col not in results.columns:
            raise ValueError(f"Results table is missing column '{col}'")
    if not np.all(np.isfinite(results["estimate"].to_numpy(dtype=float))):
        raise ValueError("Results table has non-finite estimates")
    se = results["std_error"].to_numpy(dtype=float)
    if not np.all(np.isfinite(se) & (se > 0)):
        raise ValueError("Results table needs finite, positive standard errors")
    if results["city"].duplicated().any():
        raise ValueError("Results table has duplicated city ids")


def build_hierarchical_model(results: pd.DataFrame,
                             prior_sd_mu: float = PRIOR_SD_MU,
                             prior_scale_tau: float = PRIOR_SCALE_TAU,
                             increment: float = PM10_INCREMENT) -> pm.Model:
    """Build the two-stage Normal model from the results table (city, estimate, std_error)."""
    _check_results(results)

    y = results["estimate"].to_numpy(dtype=float)
    se = results["std_error"].to_numpy(dtype=float)
    scale = float(np.median(se))
    y_s, se_s = y / scale, se / scale

    coords = {"City": results["city"].astype(str).tolist()}

    with pm.Model(coords=coords) as hier_model:
        mu_s = pm.Normal("mu_s", 0.0, prior_sd_mu)
        tau_s = pm.HalfStudentT("tau_s", nu=3, sigma=prior_scale_tau)

        # Non-centered city effects
        z = pm.Normal("z_city", 0.0, 1.0, dims="City")
        theta_s = mu_s + tau_s * z

        pm.Normal("estimate_obs", mu=theta_s, sigma=se_s, observed=y_s, dims="City")

        # Back to per-unit PM10 scale
        mu = pm.Deterministic("mu", mu_s * scale)
        pm.Deterministic("tau", tau_s * scale)
        pm.Deterministic("theta", theta_s * scale, dims="City")
        pm.Deterministic("pct_increase", 100.0 * (pm.math.exp(increment * mu) - 1.0))

    return hier_model


def sample_hierarchical_model(model: pm.Model,
                              draws: int = DRAWS,
                              tune: int = TUNE,
                              chains: int = CHAINS,
                              cores: Optional[int] = CORES,
                              target_accept: float = TARGET_ACCEPT,
                              random_seed: Optional[int] = None,
                              nuts_sampler: str = NUTS_SAMPLER) -> az.InferenceData:
    return sample_model(model, draws=draws, tune=tune, chains=chains, cores=cores,
                        target_accept=target_accept, random_seed=random_seed,
                        nuts_sampler=nuts_sampler)


def pooled_summary(idata: az.InferenceData,
                   hdi_prob: float = HDI_PROB,
                   increment: float = PM10_INCREMENT) -> Dict[str, float]:
    """Posterior summary of the pooled effect mu, per unit and as % per increment."""
    post = idata.posterior
    if "mu" not in post.data_vars:
        raise RuntimeError("Posterior has no 'mu' variable")

    draws = post["mu"].stack(sample=("chain", "draw")).values
    lo, hi = az.hdi(draws, hdi_prob=hdi_prob)
    pct_lo, pct_hi = percent_increase([lo, hi], increment)

    return {
        "mean": float(np.mean(draws)),
        "median": float(np.median(draws)),
        "sd": float(np.std(draws, ddof=1)),
        "hdi_lo": float(lo),
        "hdi_hi": float(hi),
        "hdi_width": float(hi - lo),
        "pct_median": float(percent_increase(np.median(draws), increment)),
        "pct_hdi_lo": float(pct_lo),
        "pct_hdi_hi": float(pct_hi),
        "prob_positive": float(np.mean(draws > 0)),
        "excludes_zero": bool(lo > 0 or hi < 0),
        "hdi_prob": float(hdi_prob),
    }


def city_shrinkage_table(idata: az.InferenceData,
                         results: pd.DataFrame,
                         hdi_prob: float = HDI_PROB) -> pd.DataFrame:
    """Raw city estimates next to the posterior (shrunken) city effects theta."""
    post = idata.posterior
    if "theta" not in post.data_vars:
        raise RuntimeError("Posterior has no 'theta' variable")

    mean = post["theta"].mean(("chain", "draw")).to_series()
    hdi_da = az.hdi(idata, var_names=["theta"], hdi_prob=hdi_prob)["theta"]
    lo = hdi_da.sel(hdi="lower").to_series()
    hi = hdi_da.sel(hdi="higher").to_series()

    out = results.loc[:, ["city", "estimate", "std_error"]].copy()
    cities = out["city"].astype(str)
    out["theta_mean"] = mean.reindex(cities).to_numpy()
    out["theta_hdi_lo"] = lo.reindex(cities).to_numpy()
    out["theta_hdi_hi"] = hi.reindex(cities).to_numpy()
    return out.reset_index(drop=True)


def random_effects_pool(results: pd.DataFrame) -> Dict[str, float]:
    """
    DerSimonian-Laird random-effects estimate of the pooled effect.

    Returns mu, se, tau2, Q and I2 (percent).
    """
    _check_results(results)
    y = results["estimate"].to_numpy(dtype=float)
    se = results["std_error"].to_numpy(dtype=float)

    w0 = 1.0 / se**2
    mu_fe = np.sum(w0 * y) / np.sum(w0)
    Q = float(np.sum(w0 * (y - mu_fe) ** 2))
    k = len(y)
    denom = np.sum(w0) - np.sum(w0**2) / np.sum(w0)
    tau2 = max(0.0, (Q - (k - 1)) / denom) if denom > 0 else 0.0

    w_re = 1.0 / (se**2 + tau2)
    mu_re = float(np.sum(w_re * y) / np.sum(w_re))
    se_re = float(np.sqrt(1.0 / np.sum(w_re)))
    I2 = 100.0 * max(0.0, (Q - (k - 1)) / Q) if Q > 0 else 0.0

    return {"mu": mu_re, "se": se_re, "tau2": float(tau2), "Q": Q, "I2": float(I2)}


def pooling_narrows_interval(summary: Dict[str, float],
                             results: pd.DataFrame,
                             level: float = 0.95) -> bool:
    """True if the pooled HDI is narrower than every city's Wald confidence interval."""
    z = stats.norm.ppf(0.5 + level / 2.0)
    city_widths = 2.0 * z * results["std_error"].to_numpy(dtype=float)
    return bool(summary["hdi_width"] < city_widths.min())
