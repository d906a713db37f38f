# profile_likelihood.py
# =============================== Profile likelihood check =============================
"""
Profile likelihood of the PM10 coefficient and its Normal approximation.

For each beta on a grid around the MLE, the nuisance coefficients (intercept,
temperature and time splines) are re-maximized with beta * pm10 entered as an
offset. The resulting log-likelihood, rescaled so its maximum is 1, is compared
with the Normal approximation exp(-0.5 * ((beta - beta_hat) / se)^2) implied by
the GLM standard error. Close agreement is what justifies feeding
(estimate, SE) pairs into the two-stage Normal hierarchical model.
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm

from pm10bayes.config import (
    COL_DEATH, COL_PM10, TEMP_DF, TIME_DF_PER_YEAR,
    PROFILE_N_GRID, PROFILE_WIDTH, GLM_MAXITER,
)
from pm10bayes.data_processing.load_cities import model_frame
from pm10bayes.models.glm_city import CityFit, city_design


def profile_likelihood(frame: pd.DataFrame,
                       fit: CityFit,
                       n_grid: int = PROFILE_N_GRID,
                       width: float = PROFILE_WIDTH,
                       temp_df: int = TEMP_DF,
                       time_df_per_year: float = TIME_DF_PER_YEAR,
                       prepared: bool = False) -> pd.DataFrame:
    """
    Profile log-likelihood of the PM10 coefficient on a grid.

    Returns
    -------
    DataFrame with columns beta, loglik, rel_lik, normal_approx.
    """
    if n_grid < 3:
        raise ValueError("n_grid must be >= 3")
    if not prepared:
        frame = model_frame(frame)

    X, _ = city_design(frame, temp_df, time_df_per_year)
    if list(X.columns) != list(fit.params.index):
        raise ValueError("Design does not match the fitted model; use the same spline settings")

    y = frame[COL_DEATH].to_numpy(dtype=float)
    pm10 = X[COL_PM10].to_numpy()
    X_nuis = X.drop(columns=COL_PM10)
    start = fit.params.drop(COL_PM10).to_numpy()

    grid = np.linspace(fit.estimate - width * fit.std_error,
                       fit.estimate + width * fit.std_error, n_grid)
    loglik = np.empty(n_grid)
    for i, b in enumerate(grid):
        res = sm.GLM(y, X_nuis, family=sm.families.Poisson(), offset=b * pm10).fit(
            start_params=start, maxiter=GLM_MAXITER)
        loglik[i] = res.llf

    rel_lik = np.exp(loglik - loglik.max())
    normal = np.exp(-0.5 * ((grid - fit.estimate) / fit.std_error) ** 2)

    return pd.DataFrame({
        "beta": grid,
        "loglik": loglik,
        "rel_lik": rel_lik,
        "normal_approx": normal,
    })


def is_unimodal(values, tol: float = 1e-10) -> bool:
    """True if ``values`` is non-decreasing up to its maximum and non-increasing after."""
    v = np.asarray(values, dtype=float)
    if v.size < 2:
        return True
    k = int(np.argmax(v))
    d = np.diff(v)
    return bool(np.all(d[:k] >= -tol) and np.all(d[k:] <= tol))


def asymmetry(profile: pd.DataFrame, fit: CityFit) -> float:
    """
    Mean |L(b_hat + d) - L(b_hat - d)| of the relative likelihood over the grid.

    0 for a perfectly symmetric curve; the mirrored values are linearly
    interpolated on the profile grid.
    """
    beta = profile["beta"].to_numpy()
    rel = profile["rel_lik"].to_numpy()
    d = np.abs(beta - fit.estimate)
    d = d[d <= min(fit.estimate - beta.min(), beta.max() - fit.estimate)]
    upper = np.interp(fit.estimate + d, beta, rel)
    lower = np.interp(fit.estimate - d, beta, rel)
    return float(np.mean(np.abs(upper - lower)))


def normal_approx_error(profile: pd.DataFrame) -> float:
    """Largest absolute gap between the relative profile likelihood and its Normal approximation."""
    return float(np.max(np.abs(profile["rel_lik"] - profile["normal_approx"])))
