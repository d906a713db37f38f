# rcs_basis.py
# Natural (restricted cubic) spline bases for the mortality regressions
# =============================================================================
"""
NATURAL SPLINES FOR TIME-SERIES MORTALITY MODELS
=============================================================================

1. WHY SPLINES?
---------------
Daily death counts move with season, long-term trend and temperature. The
pollution effect is a small signal on top of these, so the regression adjusts
for them with smooth functions:

    log E[death_t] = b0 + beta * PM10_t + ns(tmpd_t, 3) + ns(time_t, df_time)

where ns(x, df) is a natural cubic spline with df degrees of freedom.

2. MATHEMATICAL FORM
-----------------------------
For K knots k_1 < ... < k_K the j-th restricted cubic spline basis function
(j = 1, ..., K-2) is

    rcs_j(x) = d_j(x) - d_{K-1}(x) * (k_K - k_j) / (k_K - k_{K-1})
                      + d_K(x) * (k_{K-1} - k_j) / (k_K - k_{K-1})

with d_j(x) = max(x - k_j, 0)^3. Beyond k_K the cubic and quadratic terms
cancel and below k_1 every term is zero, so the function is linear in both
tails. Together with the linear term this spans the same space as R's
ns(x, df) with K = df + 1 knots.

3. CONDITIONING
---------------
Cubic terms on a raw date scale are huge. x is standardized first. The spline
columns are orthogonalized against [1, x], then against each other (QR, since
truncated powers on neighbouring knots are nearly collinear), and scaled to
unit variance. Every spline coefficient then sits on a comparable scale for
the priors.

References
----------
- Harrell, F.E. (2015). Regression Modeling Strategies. Springer.
- Peng, R.D. & Dominici, F. (2008). Statistical Methods for Environmental
  Epidemiology with R. Springer.
"""

import numpy as np
from typing import Tuple, Dict


def rcs_design(x: np.ndarray, knots: np.ndarray) -> np.ndarray:
    """
    Compute Harrell's Restricted Cubic Spline basis matrix.

    Parameters
    ----------
    x : array-like, shape (N,)
        Predictor values. Should be on the same scale as knots.
    knots : array-like, shape (K,)
        Knot positions, sorted in ascending order.

    Returns
    -------
    Z : ndarray, shape (N, K-2)
        RCS basis matrix. Returns an (N, 0) array if K < 3.

    Examples
    --------
    >>> x = np.linspace(-2, 2, 100)
    >>> Z = rcs_design(x, np.array([-1.5, -0.5, 0.5, 1.5]))
    >>> Z.shape
    (100, 2)
    """
    x = np.asarray(x, dtype=float).ravel()
    k = np.asarray(knots, dtype=float).ravel()
    K = k.size
    N = x.size

    if K < 3:
        return np.zeros((N, 0))

    # Truncated cubic power function
    def d(u: np.ndarray, j: int) -> np.ndarray:
        return np.maximum(u - k[j], 0.0) ** 3

    span = k[K - 1] - k[K - 2]
    cols = []
    for j in range(K - 2):
        cols.append(d(x, j)
                    - d(x, K - 2) * (k[K - 1] - k[j]) / span
                    + d(x, K - 1) * (k[K - 2] - k[j]) / span)

    return np.column_stack(cols) if cols else np.zeros((N, 0))


def suggest_knots(x: np.ndarray,
                  n_knots: int = 4,
                  boundary_quantiles: Tuple[float, float] = (0.05, 0.95)) -> np.ndarray:
    """
    Suggest knot positions at evenly spaced quantiles of x.

    Parameters
    ----------
    x : array-like
        Predictor values.
    n_knots : int, default 4
        Number of knots (K). The spline then has K-1 degrees of freedom.
    boundary_quantiles : tuple, default (0.05, 0.95)
        Quantiles for boundary knots; linear tails start beyond them.

    Returns
    -------
    knots : ndarray, shape (n_knots,)
    """
    x = np.asarray(x, dtype=float).ravel()

    if n_knots < 3:
        raise ValueError("Need at least 3 knots for RCS")

    q_lo, q_hi = boundary_quantiles
    return np.quantile(x, np.linspace(q_lo, q_hi, n_knots))


def orthonormalize_basis(Z: np.ndarray,
                         X_linear: np.ndarray,
                         standardize: bool = True) -> Tuple[np.ndarray, Dict]:
    """
    Orthogonalize RCS basis with respect to linear terms and optionally standardize.

    Parameters
    ----------
    Z : ndarray, shape (N, m)
        Raw RCS basis matrix.
    X_linear : ndarray, shape (N, 2)
        Matrix [1, x] for intercept and linear term.
    standardize : bool, default True
        Whether to scale columns to unit variance.

    Returns
    -------
    Z_ortho : ndarray, shape (N, m)
    transform_info : dict
        'proj_coef', 'col_means' and 'col_stds' of the transformation.
    """
    N, m = Z.shape

    if m == 0:
        return Z, {"proj_coef": np.zeros((X_linear.shape[1], 0)),
                   "col_means": np.array([]),
                   "col_stds": np.array([])}

    # Z_ortho = Z - X @ (X'X)^{-1} X'Z
    proj_coef = np.linalg.lstsq(X_linear, Z, rcond=None)[0]
    Z_resid = Z - X_linear @ proj_coef

    col_means = Z_resid.mean(axis=0)
    Z_centered = Z_resid - col_means

    if standardize:
        col_stds = Z_centered.std(axis=0, ddof=1)
        col_stds = np.where(col_stds < 1e-10, 1.0, col_stds)
        Z_ortho = Z_centered / col_stds
    else:
        col_stds = np.ones(m)
        Z_ortho = Z_centered

    transform_info = {
        "proj_coef": proj_coef,
        "col_means": col_means,
        "col_stds": col_stds
    }

    return Z_ortho, transform_info


def decorrelate_columns(Z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Thin QR of centered columns, rescaled so each output column has unit variance.

    Returns (Q_s, R_s) with Z - mean(Z) = Q_s @ R_s. Column spans are unchanged.
    """
    N, m = Z.shape
    if m == 0:
        return Z, np.zeros((0, 0))
    scale = np.sqrt(N - 1)
    Q, R = np.linalg.qr(Z - Z.mean(axis=0))
    # Fix signs so column j keeps the orientation of Z[:, j]
    signs = np.where(np.diag(R) < 0, -1.0, 1.0)
    Q, R = Q * signs, R * signs[:, None]
    return Q * scale, R / scale


def natural_spline(x: np.ndarray, df: int) -> Tuple[np.ndarray, Dict]:
    """
    Natural cubic spline design with ``df`` columns, analogous to R's ns(x, df).

    The first column is the standardized predictor, the remaining df-1 columns
    are the RCS basis built on df+1 quantile knots, orthogonal to [1, x] and
    to each other with unit variance. No intercept column is included.

    Parameters
    ----------
    x : array-like, shape (N,)
    df : int
        Degrees of freedom (>= 1).

    Returns
    -------
    B : ndarray, shape (N, df)
    info : dict
        'x_center', 'x_scale', 'knots' plus the orthonormalization info.
    """
    if df < 1:
        raise ValueError(f"df must be >= 1, got {df}")

    x = np.asarray(x, dtype=float).ravel()
    x_center = float(x.mean())
    x_scale = float(x.std()) or 1.0
    x_s = (x - x_center) / x_scale

    info = {"x_center": x_center, "x_scale": x_scale, "df": int(df)}

    if df == 1:
        info.update(knots=np.array([]),
                    proj_coef=np.zeros((2, 0)),
                    col_means=np.array([]),
                    col_stds=np.array([]))
        info["qr_r"] = np.zeros((0, 0))
        return x_s[:, None], info

    knots = suggest_knots(x_s, n_knots=df + 1)
    if np.any(np.diff(knots) <= 0):
        raise ValueError(f"Degenerate knots for df={df}: too few distinct values in x")

    Z = rcs_design(x_s, knots)
    X_linear = np.column_stack([np.ones_like(x_s), x_s])
    Z_ortho, transform_info = orthonormalize_basis(Z, X_linear)

    # Decorrelate the spline columns among themselves
    Z_ortho, R = decorrelate_columns(Z_ortho)

    check = verify_orthogonality(Z_ortho, X_linear)
    if not check["is_orthogonal"]:
        print(f"[warn] ns(df={df}): spline columns not orthogonal to [1, x] "
              f"(max inner product {check['max_inner_product']:.2e})")

    info["knots"] = knots
    info.update(transform_info)
    info["qr_r"] = R
    return np.column_stack([x_s, Z_ortho]), info


# =============================================================================
# Diagnostic Functions
# =============================================================================

def check_knot_coverage(x: np.ndarray, knots: np.ndarray) -> Dict:
    """
    Check how well knots cover the data distribution.

    Returns statistics about data coverage and the share of observations in
    the linear tails.
    """
    x = np.asarray(x).ravel()
    knots = np.asarray(knots).ravel()

    n_below = int(np.sum(x < knots[0]))
    n_above = int(np.sum(x > knots[-1]))
    n_total = len(x)

    coverage = {
        "n_observations": n_total,
        "n_below_boundary": n_below,
        "n_above_boundary": n_above,
        "pct_extrapolation": 100 * (n_below + n_above) / n_total,
        "x_range": (x.min(), x.max()),
        "knot_range": (knots[0], knots[-1]),
        "warning": ""
    }

    if coverage["pct_extrapolation"] > 15:
        coverage["warning"] = ("High extrapolation fraction ({:.1f}%). "
                               "Consider adjusting boundary quantiles.".format(
                               coverage["pct_extrapolation"]))

    return coverage


def verify_orthogonality(Z_ortho: np.ndarray, X_linear: np.ndarray,
                         tol: float = 1e-6) -> Dict:
    """Verify that the orthogonalized basis is orthogonal to the linear terms."""
    N = Z_ortho.shape[0]
    inner_products = X_linear.T @ Z_ortho / N

    max_inner = float(np.abs(inner_products).max()) if inner_products.size else 0.0

    return {
        "max_inner_product": max_inner,
        "is_orthogonal": max_inner < tol,
        "tolerance": tol,
        "inner_product_matrix": inner_products
    }
