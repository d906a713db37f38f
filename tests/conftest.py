"""Shared fixtures: simulated NMMAPS-shaped city tables."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pytest

from pm10bayes.data_processing.load_cities import load_cities, model_frame
from pm10bayes.data_processing.simulate_cities import simulate_city, write_cities
from pm10bayes.models.glm_city import fit_all_cities, fit_city_glm, results_table

TRUE_BETA = 0.001      # 1% per 10 ug/m3
N_CITIES = 10
N_YEARS = 4


@pytest.fixture(scope="session")
def city_df():
    return simulate_city(n_years=N_YEARS, beta_pm10=TRUE_BETA, base_deaths=150.0, seed=11)


@pytest.fixture(scope="session")
def city_frame(city_df):
    return model_frame(city_df)


@pytest.fixture(scope="session")
def city_fit(city_df):
    return fit_city_glm(city_df, "ny")


@pytest.fixture(scope="session")
def city_dir(tmp_path_factory) -> Path:
    out = tmp_path_factory.mktemp("data") / "cities"
    write_cities(out, n_cities=N_CITIES, seed=2024, mu=TRUE_BETA, tau=0.0001,
                 n_years=N_YEARS, base_deaths=(120.0, 220.0))
    return out


@pytest.fixture(scope="session")
def cities(city_dir):
    return load_cities(city_dir)


@pytest.fixture(scope="session")
def results(cities):
    return results_table(fit_all_cities(cities))
