# table_param_summary.py
# Console / CSV tables: posterior summaries, MLE vs posterior, pooled effect.

from pathlib import Path
from typing import Dict, List, Optional

import arviz as az
import pandas as pd

from pm10bayes.config import DIR_TABLES, HDI_PROB, PM10_INCREMENT
from pm10bayes.models.glm_city import CityFit, confidence_interval, percent_increase


def posterior_summary_table(idata: az.InferenceData,
                            var_names: List[str],
                            hdi_prob: float = HDI_PROB) -> pd.DataFrame:
    present = [v for v in var_names if v in idata.posterior.data_vars]
    if not present:
        raise RuntimeError(f"None of {var_names} found in posterior")
    return az.summary(idata, var_names=present, hdi_prob=hdi_prob, round_to=3)


def comparison_table(fit: CityFit,
                     idata: az.InferenceData,
                     hdi_prob: float = HDI_PROB,
                     increment: float = PM10_INCREMENT) -> pd.DataFrame:
    """MLE (Wald interval) and posterior (HDI) for the PM10 coefficient, side by side."""
    if "beta_pm10" not in idata.posterior.data_vars:
        raise RuntimeError("Posterior has no 'beta_pm10' variable")

    draws = idata.posterior["beta_pm10"].stack(sample=("chain", "draw")).values
    lo_b, hi_b = az.hdi(draws, hdi_prob=hdi_prob)
    lo_m, hi_m = confidence_interval(fit.estimate, fit.std_error, hdi_prob)

    rows = {
        "MLE": [fit.estimate, fit.std_error, lo_m, hi_m],
        "Posterior": [float(draws.mean()), float(draws.std(ddof=1)), float(lo_b), float(hi_b)],
    }
    out = pd.DataFrame.from_dict(rows, orient="index", columns=["beta", "sd", "lower", "upper"])
    out[f"pct_per_{increment:g}"] = percent_increase(out["beta"], increment)
    out["pct_lower"] = percent_increase(out["lower"], increment)
    out["pct_upper"] = percent_increase(out["upper"], increment)
    out.index.name = fit.city
    return out


def pooled_table(summary: Dict[str, float], dl: Optional[Dict[str, float]] = None) -> pd.DataFrame:
    """Bayesian pooled effect, optionally with the DerSimonian-Laird estimate underneath."""
    rows = {
        "Hierarchical (posterior)": {
            "estimate": summary["median"],
            "lower": summary["hdi_lo"],
            "upper": summary["hdi_hi"],
        }
    }
    if dl is not None:
        lo, hi = confidence_interval(dl["mu"], dl["se"], summary["hdi_prob"])
        rows["DerSimonian-Laird"] = {"estimate": dl["mu"], "lower": lo, "upper": hi}
    out = pd.DataFrame.from_dict(rows, orient="index")
    for col in ("estimate", "lower", "upper"):
        out[f"pct_{col}"] = percent_increase(out[col])
    return out


def write_table(df: pd.DataFrame, name: str, directory=None, index: bool = True) -> Path:
    """Write ``df`` to <directory>/<name>.csv (default DIR_TABLES)."""
    directory = Path(directory) if directory is not None else DIR_TABLES
    directory.mkdir(parents=True, exist_ok=True)
    out_csv = directory / f"{name}.csv"
    df.to_csv(out_csv, index=index)
    print(f"[OK] {name} -> {out_csv}")
    return out_csv
