"""Tests for the per-city Poisson GLM and the results table."""

import numpy as np
import pytest

from pm10bayes.data_processing.load_cities import load_cities
from pm10bayes.models.glm_city import (
    city_design,
    city_lookup,
    confidence_interval,
    fit_all_cities,
    fit_city_glm,
    percent_increase,
    results_table,
)

from conftest import N_CITIES, N_YEARS


def test_city_design_columns(city_frame) -> None:
    X, info = city_design(city_frame)
    expected = (["const", "pm10tmean"]
                + [f"ns_tmpd_{j}" for j in range(1, 4)]
                + [f"ns_time_{j}" for j in range(1, 2 * N_YEARS + 1)])
    assert list(X.columns) == expected
    assert info["tmpd"]["df"] == 3
    assert info["time"]["df"] == 2 * N_YEARS
    assert np.linalg.matrix_rank(X.to_numpy()) == X.shape[1]


def test_city_design_is_well_conditioned(city_frame) -> None:
    X, _ = city_design(city_frame)
    corr = np.corrcoef(X.drop(columns="const").to_numpy(), rowvar=False)
    off_diag = np.abs(corr[~np.eye(len(corr), dtype=bool)])
    assert off_diag.max() < 0.99
    assert np.linalg.cond(corr) < 1e3


def test_single_city_pm10_effect_is_small_and_positive(city_fit) -> None:
    assert city_fit.converged
    assert city_fit.std_error > 0
    assert 0.0 < city_fit.pct_increase < 5.0


def test_fit_is_reproducible(city_df, city_fit) -> None:
    again = fit_city_glm(city_df, "ny")
    assert again.estimate == city_fit.estimate
    assert again.std_error == city_fit.std_error
    assert again.params.equals(city_fit.params)


def test_results_table_one_row_per_city(results, city_dir) -> None:
    assert len(results) == N_CITIES
    assert list(results.columns) == ["city", "estimate", "std_error"]
    assert results["city"].is_unique
    assert np.all(np.isfinite(results["estimate"]))
    assert np.all(results["std_error"] > 0)


def test_results_table_reproducible_from_files(results, city_dir) -> None:
    again = results_table(fit_all_cities(load_cities(city_dir)))
    assert again.equals(results)


def test_results_table_requires_fits() -> None:
    with pytest.raises(ValueError):
        results_table([])


def test_percent_increase() -> None:
    assert percent_increase(0.0) == pytest.approx(0.0)
    assert percent_increase(0.001) == pytest.approx(100 * (np.exp(0.01) - 1))
    assert percent_increase(np.log(2) / 10) == pytest.approx(100.0)


def test_confidence_interval_is_symmetric() -> None:
    lo, hi = confidence_interval(1.0, 0.5, 0.95)
    assert (lo + hi) / 2 == pytest.approx(1.0)
    assert hi - lo == pytest.approx(2 * 1.959964 * 0.5, rel=1e-5)


def test_city_lookup_falls_back_to_first(city_fit) -> None:
    assert city_lookup([city_fit], "ny") is city_fit
    assert city_lookup([city_fit], "zz") is city_fit
