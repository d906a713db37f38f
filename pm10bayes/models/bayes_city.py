# bayes_city.py
# Stage 3: Bayesian single-city Poisson regression
# -------------------------------------------------------------------
# Same linear predictor as the GLM in glm_city.py:
#   death_t ~ Poisson(exp(alpha + X_t . beta))
# with X = [pm10, ns(tmpd, 3), ns(time, df_time)].
#
# NUTS samples on the QR rotation of the centered design:
#   X - mean(X) = Q R,  eta = alpha + Q theta,  beta = R^{-1} theta
# Q has orthogonal unit-variance columns, so theta is close to independent a
# posteriori. beta (and beta_pm10 = beta[pm10]) stay on the raw per-unit scale.
# -------------------------------------------------------------------
from typing import Optional

import numpy as np
import pandas as pd
import pymc as pm
import arviz as az

from pm10bayes.config import (
    COL_DEATH, COL_PM10, TEMP_DF, TIME_DF_PER_YEAR, PM10_INCREMENT,
    PRIOR_SD_INTERCEPT, PRIOR_SD_COEF, HDI_PROB, DRAWS, TUNE, CHAINS, CORES,
    TARGET_ACCEPT, NUTS_SAMPLER,
)
from pm10bayes.data_processing.load_cities import model_frame
from pm10bayes.models.glm_city import city_design
from pm10bayes.models.sampling import sample_model
from pm10bayes.utils.rcs_basis import decorrelate_columns

CITY_VARS = ["beta_pm10", "pct_increase"]


def build_city_model(frame: pd.DataFrame,
                     temp_df: int = TEMP_DF,
                     time_df_per_year: float = TIME_DF_PER_YEAR,
                     prior_sd_intercept: float = PRIOR_SD_INTERCEPT,
                     prior_sd_coef: float = PRIOR_SD_COEF,
                     increment: float = PM10_INCREMENT,
                     prepared: bool = False) -> pm.Model:
    """
    Build the PyMC model for one city.

    Priors:
      alpha ~ Normal(log(mean deaths), prior_sd_intercept)
      theta ~ Normal(0, prior_sd_coef) on each unit-variance QR column
    """
    if not prepared:
        frame = model_frame(frame)

    X, _ = city_design(frame, temp_df, time_df_per_year)
    X = X.drop(columns="const")
    Q, R = decorrelate_columns(X.to_numpy(dtype=float))
    R_inv = np.linalg.inv(R)
    i_pm10 = list(X.columns).index(COL_PM10)

    y = frame[COL_DEATH].to_numpy(dtype=int)
    coords = {
        "Covariate": list(X.columns),
        "Component": [f"q{j + 1}" for j in range(Q.shape[1])],
    }

    with pm.Model(coords=coords) as city_model:
        alpha = pm.Normal("alpha", mu=float(np.log(max(y.mean(), 1e-3))), sigma=prior_sd_intercept)
        theta = pm.Normal("theta", mu=0.0, sigma=prior_sd_coef, dims="Component")

        eta = alpha + pm.math.dot(Q, theta)
        pm.Poisson("death_obs", mu=pm.math.exp(eta), observed=y)

        beta = pm.Deterministic("beta", pm.math.dot(R_inv, theta), dims="Covariate")
        beta_pm10 = pm.Deterministic("beta_pm10", beta[i_pm10])
        pm.Deterministic("pct_increase", 100.0 * (pm.math.exp(increment * beta_pm10) - 1.0))

    return city_model


def sample_city_model(model: pm.Model,
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


def summarize_city_posterior(idata: az.InferenceData, hdi_prob: float = HDI_PROB) -> pd.DataFrame:
    """az.summary of the PM10 effect on the per-unit and percent scales."""
    return az.summary(idata, var_names=CITY_VARS, hdi_prob=hdi_prob)
