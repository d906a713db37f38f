# glm_city.py
# Stage 2: Frequentist baseline - per-city Poisson GLM (log link, IRLS)
# -------------------------------------------------------------------
# Model: log E[death_t] = b0 + beta * pm10_t + ns(tmpd_t, 3) + ns(time_t, df_time)
# where df_time = TIME_DF_PER_YEAR * (number of years in the series).
#
# beta is the log relative risk per unit PM10; 100 * (exp(10 * beta) - 1) is
# the percent increase in daily mortality per 10 ug/m3.
# -------------------------------------------------------------------
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats

from pm10bayes.config import (
    COL_DEATH, COL_TEMP, COL_PM10, COL_TIME,
    TEMP_DF, TIME_DF_PER_YEAR, PM10_INCREMENT, GLM_MAXITER,
)
from pm10bayes.data_processing.load_cities import model_frame
from pm10bayes.utils.rcs_basis import natural_spline, check_knot_coverage

YEAR_DAYS = 365.25


@dataclass(frozen=True)
class CityFit:
    """Maximum-likelihood fit of the Poisson regression for one city."""
    city: str
    params: pd.Series
    bse: pd.Series
    estimate: float          # PM10 coefficient
    std_error: float
    n_obs: int
    loglik: float
    converged: bool
    spline_info: Dict = field(default_factory=dict, repr=False)

    @property
    def pct_increase(self) -> float:
        return percent_increase(self.estimate)


def percent_increase(beta, increment: float = PM10_INCREMENT):
    """Percent increase in mortality for an ``increment`` rise in PM10."""
    return 100.0 * (np.exp(increment * np.asarray(beta, dtype=float)) - 1.0)


def confidence_interval(estimate: float, std_error: float, level: float = 0.95) -> Tuple[float, float]:
    """Wald interval estimate +/- z * SE."""
    z = stats.norm.ppf(0.5 + level / 2.0)
    return estimate - z * std_error, estimate + z * std_error


def time_df(frame: pd.DataFrame, df_per_year: float = TIME_DF_PER_YEAR) -> int:
    n_years = (frame[COL_TIME].max() - frame[COL_TIME].min()) / YEAR_DAYS
    return max(1, int(round(df_per_year * n_years)))


def city_design(frame: pd.DataFrame,
                temp_df: int = TEMP_DF,
                time_df_per_year: float = TIME_DF_PER_YEAR) -> Tuple[pd.DataFrame, Dict]:
    """
    Design matrix [const, pm10tmean, ns_tmpd_*, ns_time_*] for a model frame.

    ``frame`` must already be complete-case (see ``model_frame``).
    """
    B_temp, temp_info = natural_spline(frame[COL_TEMP].to_numpy(), temp_df)
    n_time = time_df(frame, time_df_per_year)
    B_time, time_info = natural_spline(frame[COL_TIME].to_numpy(), n_time)

    for label, info, col in (("tmpd", temp_info, COL_TEMP), ("time", time_info, COL_TIME)):
        if info["knots"].size:
            x_s = (frame[col].to_numpy() - info["x_center"]) / info["x_scale"]
            cov = check_knot_coverage(x_s, info["knots"])
            if cov["warning"]:
                print(f"[warn] ns({label}): {cov['warning']}")

    X = pd.DataFrame(index=frame.index)
    X["const"] = 1.0
    X[COL_PM10] = frame[COL_PM10].to_numpy(dtype=float)
    for j in range(B_temp.shape[1]):
        X[f"ns_tmpd_{j + 1}"] = B_temp[:, j]
    for j in range(B_time.shape[1]):
        X[f"ns_time_{j + 1}"] = B_time[:, j]

    return X, {"tmpd": temp_info, "time": time_info}


def fit_city_glm(frame: pd.DataFrame,
                 city: str = "city",
                 temp_df: int = TEMP_DF,
                 time_df_per_year: float = TIME_DF_PER_YEAR,
                 maxiter: int = GLM_MAXITER,
                 prepared: bool = False) -> CityFit:
    """
    Fit the Poisson regression for one city by IRLS.

    Parameters
    ----------
    frame : DataFrame
        Raw city table (or a model frame when ``prepared`` is True).
    city : str
        City id stored on the result.
    """
    if not prepared:
        frame = model_frame(frame)

    X, spline_info = city_design(frame, temp_df, time_df_per_year)
    y = frame[COL_DEATH].to_numpy(dtype=float)

    result = sm.GLM(y, X, family=sm.families.Poisson()).fit(maxiter=maxiter)
    converged = bool(getattr(result, "converged", True))
    if not converged:
        print(f"[warn] {city}: GLM did not converge in {maxiter} iterations (n={len(y)})")

    return CityFit(
        city=city,
        params=result.params,
        bse=result.bse,
        estimate=float(result.params[COL_PM10]),
        std_error=float(result.bse[COL_PM10]),
        n_obs=int(result.nobs),
        loglik=float(result.llf),
        converged=converged,
        spline_info=spline_info,
    )


def fit_all_cities(cities: Dict[str, pd.DataFrame],
                   temp_df: int = TEMP_DF,
                   time_df_per_year: float = TIME_DF_PER_YEAR,
                   maxiter: int = GLM_MAXITER) -> List[CityFit]:
    """Fit the GLM to every city, in city-id order of the input mapping."""
    fits = []
    for city, df in cities.items():
        fit = fit_city_glm(df, city, temp_df, time_df_per_year, maxiter)
        print(f"  {city:>6s}: beta = {fit.estimate: .5f} (SE {fit.std_error:.5f}), "
              f"{fit.pct_increase:+.2f}% per {PM10_INCREMENT:g} ug/m3, n = {fit.n_obs}")
        fits.append(fit)
    return fits


def results_table(fits: List[CityFit]) -> pd.DataFrame:
    """One row per city: city id, PM10 coefficient estimate, standard error."""
    if not fits:
        raise ValueError("No city fits to tabulate")
    return pd.DataFrame({
        "city": [f.city for f in fits],
        "estimate": [f.estimate for f in fits],
        "std_error": [f.std_error for f in fits],
    })


def city_lookup(fits: List[CityFit], city: Optional[str]) -> CityFit:
    """Fit for ``city``, or the first fit if ``city`` is None or absent."""
    for f in fits:
        if f.city == city:
            return f
    if city is not None:
        print(f"[info] City '{city}' not found; using '{fits[0].city}'")
    return fits[0]
