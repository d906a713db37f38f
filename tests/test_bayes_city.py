"""Tests for the Bayesian single-city Poisson regression."""

import numpy as np
import pytest

from pm10bayes.analysis.diagnostics import sampler_diagnostics
from pm10bayes.models.bayes_city import build_city_model, sample_city_model, summarize_city_posterior
from pm10bayes.tables.table_param_summary import comparison_table

from conftest import N_YEARS


def test_build_city_model_vars(city_df) -> None:
    model = build_city_model(city_df)
    assert {"alpha", "theta", "beta", "beta_pm10", "pct_increase", "death_obs"}.issubset(model.named_vars)
    covariates = list(model.coords["Covariate"])
    assert covariates[0] == "pm10tmean"
    assert len(covariates) == 1 + 3 + 2 * N_YEARS
    assert len(model.coords["Component"]) == len(covariates)
    assert "beta" in [v.name for v in model.deterministics]


def test_build_city_model_prepared_frame(city_frame) -> None:
    model = build_city_model(city_frame, prepared=True)
    assert model["death_obs"].owner is not None


@pytest.fixture(scope="module")
def idata_city(city_df):
    model = build_city_model(city_df)
    return sample_city_model(model, draws=500, tune=500, chains=2, cores=1,
                             target_accept=0.9, random_seed=42)


@pytest.mark.sampling
def test_posterior_agrees_with_mle(idata_city, city_fit) -> None:
    draws = idata_city.posterior["beta_pm10"].values.ravel()
    assert abs(draws.mean() - city_fit.estimate) < 0.5 * city_fit.std_error
    assert draws.std() == pytest.approx(city_fit.std_error, rel=0.3)


@pytest.mark.sampling
def test_summary_and_comparison(idata_city, city_fit) -> None:
    summary = summarize_city_posterior(idata_city)
    assert list(summary.index) == ["beta_pm10", "pct_increase"]
    assert summary.loc["pct_increase", "mean"] > 0

    table = comparison_table(city_fit, idata_city)
    assert list(table.index) == ["MLE", "Posterior"]
    assert np.all(table["lower"] < table["upper"])


@pytest.mark.sampling
def test_sampler_converged(idata_city) -> None:
    diag = sampler_diagnostics(idata_city, ["alpha", "theta"])
    assert diag["rhat_max"] < 1.05
    assert diag["n_chains"] == 2
