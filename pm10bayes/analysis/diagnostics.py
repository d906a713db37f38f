# diagnostics.py
# =============================== Sampler diagnostics =============================
"""
Convergence checks for a NUTS run: max R-hat, min bulk ESS, divergent
transitions and per-chain BFMI. Nothing here alters the posterior; the numbers
are printed for the reader to judge.
"""

from typing import Dict, List, Optional

import numpy as np
import arviz as az

RHAT_WARN = 1.01
ESS_WARN = 400


def existing_vars(idata: az.InferenceData, names: List[str]) -> List[str]:
    """List only the posterior variables that exist."""
    present = set(idata.posterior.data_vars)
    return [n for n in names if n in present]


def sampler_diagnostics(idata: az.InferenceData,
                        var_names: Optional[List[str]] = None) -> Dict:
    """Max R-hat, min bulk ESS, divergence count and BFMI per chain."""
    if var_names is not None:
        var_names = existing_vars(idata, var_names) or None

    n_chains = idata.posterior.sizes["chain"]
    if n_chains > 1:
        rhat_max = float(az.rhat(idata, var_names=var_names).to_array().max())
    else:
        rhat_max = float("nan")
    ess_min = float(az.ess(idata, var_names=var_names, method="bulk").to_array().min())

    divergences = 0
    bfmi_arr = np.array([])
    if hasattr(idata, "sample_stats"):
        if "diverging" in idata.sample_stats:
            divergences = int(np.asarray(idata.sample_stats["diverging"]).sum())
        if "energy" in idata.sample_stats:
            bfmi_arr = np.asarray(az.bfmi(idata), dtype=float)

    return {
        "rhat_max": rhat_max,
        "ess_bulk_min": ess_min,
        "divergences": divergences,
        "bfmi": bfmi_arr,
        "n_chains": int(n_chains),
        "n_draws": int(idata.posterior.sizes["draw"]),
    }


def print_diagnostics(diag: Dict, label: str = "") -> None:
    prefix = f"[check] {label}: " if label else "[check] "
    print(f"{prefix}max R-hat = {diag['rhat_max']:.3f} | min ESS(bulk) = {diag['ess_bulk_min']:.0f}")
    print(f"{prefix}divergences = {diag['divergences']}")
    if diag["bfmi"].size:
        print(f"{prefix}BFMI per chain: {np.round(diag['bfmi'], 3)}")
    if np.isfinite(diag["rhat_max"]) and diag["rhat_max"] > RHAT_WARN:
        print(f"[warn] {label or 'posterior'}: R-hat above {RHAT_WARN}; consider more tuning/draws")
    if diag["ess_bulk_min"] < ESS_WARN:
        print(f"[warn] {label or 'posterior'}: bulk ESS below {ESS_WARN}")
    if diag["divergences"] > 0:
        print(f"[warn] {label or 'posterior'}: {diag['divergences']} divergent transitions")
