"""Tests for the natural spline basis."""

import numpy as np
import pytest

from pm10bayes.utils.rcs_basis import (
    check_knot_coverage,
    decorrelate_columns,
    natural_spline,
    rcs_design,
    suggest_knots,
    verify_orthogonality,
)


def test_rcs_design_shape() -> None:
    x = np.linspace(-2, 2, 100)
    Z = rcs_design(x, np.array([-1.5, -0.5, 0.5, 1.5]))
    assert Z.shape == (100, 2)


def test_rcs_design_too_few_knots_is_empty() -> None:
    Z = rcs_design(np.arange(5.0), np.array([0.0, 1.0]))
    assert Z.shape == (5, 0)


def test_rcs_design_linear_beyond_boundary_knots() -> None:
    knots = np.array([-1.0, 0.0, 1.0])
    right = np.linspace(1.5, 4.0, 20)
    left = np.linspace(-4.0, -1.5, 20)
    for x in (left, right):
        Z = rcs_design(x, knots)[:, 0]
        assert np.allclose(np.diff(Z, n=2), 0.0, atol=1e-8)


@pytest.mark.parametrize("knots", [[-2.0, -0.3, 0.1, 0.8, 2.5], [0.0, 1.0, 5.0, 6.0]])
def test_rcs_design_tails_linear_for_uneven_knots(knots) -> None:
    knots = np.array(knots)
    right = np.linspace(knots[-1], knots[-1] + 10.0, 50)
    left = np.linspace(knots[0] - 10.0, knots[0], 50)
    inside = np.linspace(knots[0], knots[-1], 50)
    for x in (left, right):
        Z = rcs_design(x, knots)
        assert np.allclose(np.diff(Z, n=2, axis=0), 0.0, atol=1e-8)
    # curved between the boundary knots
    assert not np.allclose(np.diff(rcs_design(inside, knots), n=2, axis=0), 0.0, atol=1e-8)


def test_suggest_knots_requires_three() -> None:
    with pytest.raises(ValueError):
        suggest_knots(np.arange(10.0), n_knots=2)


def test_suggest_knots_quantiles() -> None:
    x = np.arange(101.0)
    knots = suggest_knots(x, n_knots=3, boundary_quantiles=(0.1, 0.9))
    assert np.allclose(knots, [10.0, 50.0, 90.0])


@pytest.mark.parametrize("df", [1, 2, 3, 8])
def test_natural_spline_has_df_columns(df: int) -> None:
    x = np.random.default_rng(0).normal(60.0, 15.0, 500)
    B, info = natural_spline(x, df)
    assert B.shape == (500, df)
    assert info["df"] == df
    assert np.all(np.isfinite(B))


def test_natural_spline_columns_orthogonal_to_linear_terms() -> None:
    x = np.linspace(0.0, 1460.0, 487)
    B, _ = natural_spline(x, 6)
    X_linear = np.column_stack([np.ones_like(x), B[:, 0]])
    check = verify_orthogonality(B[:, 1:], X_linear, tol=1e-8)
    assert check["is_orthogonal"]
    assert np.allclose(B[:, 1:].std(axis=0, ddof=1), 1.0)


def test_natural_spline_spline_columns_uncorrelated() -> None:
    x = np.linspace(0.0, 1460.0, 487)
    B, info = natural_spline(x, 8)
    corr = np.corrcoef(B, rowvar=False)
    assert np.allclose(corr, np.eye(8), atol=1e-8)
    assert info["qr_r"].shape == (7, 7)


def test_decorrelate_columns_keeps_span() -> None:
    rng = np.random.default_rng(1)
    base = rng.normal(size=(200, 1))
    Z = np.column_stack([base, base + 1e-3 * rng.normal(size=(200, 1)), rng.normal(size=(200, 1))])
    Q, R = decorrelate_columns(Z)
    assert np.allclose(Q.T @ Q / 199, np.eye(3), atol=1e-8)
    assert np.allclose(Q @ R, Z - Z.mean(axis=0))
    assert np.all(np.diag(R) > 0)


def test_natural_spline_rejects_bad_df() -> None:
    with pytest.raises(ValueError):
        natural_spline(np.arange(10.0), 0)


def test_natural_spline_degenerate_knots() -> None:
    x = np.r_[np.zeros(95), np.ones(5)]
    with pytest.raises(ValueError):
        natural_spline(x, 4)


def test_check_knot_coverage_flags_extrapolation() -> None:
    x = np.linspace(0.0, 1.0, 100)
    ok = check_knot_coverage(x, suggest_knots(x, 4))
    assert ok["warning"] == ""
    narrow = check_knot_coverage(x, np.array([0.4, 0.5, 0.6]))
    assert narrow["pct_extrapolation"] > 15
    assert narrow["warning"]
