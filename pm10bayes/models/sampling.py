# sampling.py
# Thin wrapper around pm.sample shared by the single-city and hierarchical models.
# Sampling is delegated entirely to PyMC; only the settings live here.

from typing import Optional

import arviz as az
import pymc as pm

from pm10bayes.config import DRAWS, TUNE, CHAINS, CORES, TARGET_ACCEPT, NUTS_SAMPLER


def sample_model(model: pm.Model,
                 draws: int = DRAWS,
                 tune: int = TUNE,
                 chains: int = CHAINS,
                 cores: Optional[int] = CORES,
                 target_accept: float = TARGET_ACCEPT,
                 random_seed: Optional[int] = None,
                 nuts_sampler: str = NUTS_SAMPLER,
                 progressbar: bool = False) -> az.InferenceData:
    """Run NUTS on ``model`` and return the posterior as InferenceData."""
    with model:
        idata = pm.sample(
            draws=draws, tune=tune, chains=chains, cores=cores,
            target_accept=target_accept, nuts_sampler=nuts_sampler,
            random_seed=random_seed, progressbar=progressbar,
            return_inferencedata=True,
        )
    return idata
