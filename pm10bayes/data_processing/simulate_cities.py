# simulate_cities.py
# ---------------------------------------------------------------------------
# Synthetic NMMAPS-shaped city tables with a known PM10 effect.
#
# Deaths are Poisson with
#   log mu_t = log(base) + season(t) + temp(tmpd_t) + beta_city * pm10_t
# and beta_city ~ Normal(mu, tau^2) across cities. PM10 is only observed every
# third day (NaN otherwise), as in the EPA monitoring schedule.
# ---------------------------------------------------------------------------
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from pm10bayes.config import COL_DEATH, COL_TEMP, COL_DATE, COL_PM10

CITY_IDS = (
    "ny", "la", "chic", "dlft", "hous", "sand", "phoe", "staa", "pitt", "rive",
    "dall", "sanj", "seat", "sana", "minn", "miam", "clev", "det", "bost", "atla",
)

YEAR_DAYS = 365.25


def simulate_city(n_years: int = 5,
                  beta_pm10: float = 0.0005,
                  base_deaths: float = 100.0,
                  pm10_every: int = 3,
                  start: str = "1987-01-01",
                  seed: Optional[int] = None) -> pd.DataFrame:
    """
    Simulate one city's daily series.

    Parameters
    ----------
    n_years : int
        Length of the series in years.
    beta_pm10 : float
        True log relative risk per unit PM10.
    base_deaths : float
        Typical daily death count.
    pm10_every : int
        PM10 observed on every ``pm10_every``-th day; NaN on the others.
    start : str
        First date.
    seed : int, optional
        Seed for numpy's Generator.
    """
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start, periods=int(round(n_years * YEAR_DAYS)), freq="D")
    t = np.arange(len(dates), dtype=float)
    phase = 2 * np.pi * t / YEAR_DAYS

    # Fahrenheit temperature, warm in July
    tmpd = 55.0 - 20.0 * np.cos(phase) + rng.normal(0.0, 6.0, t.size)

    # Detrended trimmed-mean PM10 (centered near zero like NMMAPS pm10tmean)
    pm10 = 6.0 * np.sin(phase) + rng.normal(0.0, 15.0, t.size)

    season = 0.10 * np.cos(phase) + 0.02 * t / YEAR_DAYS
    temp_effect = 0.00015 * (tmpd - 65.0) ** 2
    log_mu = np.log(base_deaths) + season + temp_effect + beta_pm10 * pm10
    death = rng.poisson(np.exp(log_mu))

    pm10_obs = pm10.copy()
    pm10_obs[np.arange(t.size) % pm10_every != 0] = np.nan

    return pd.DataFrame({
        COL_DATE: dates,
        COL_DEATH: death,
        COL_TEMP: np.round(tmpd, 1),
        COL_PM10: pm10_obs,
    })


def simulate_cities(n_cities: int = 20,
                    mu: float = 0.0005,
                    tau: float = 0.0002,
                    n_years: int = 5,
                    base_deaths: Sequence[float] = (40.0, 200.0),
                    seed: Optional[int] = None) -> Tuple[Dict[str, pd.DataFrame], pd.Series]:
    """
    Simulate ``n_cities`` cities whose PM10 effects are drawn from N(mu, tau^2).

    Returns
    -------
    cities : dict
        city id -> DataFrame
    true_beta : pd.Series
        True per-city log relative risk per unit PM10.
    """
    if n_cities < 1:
        raise ValueError("n_cities must be >= 1")

    rng = np.random.default_rng(seed)
    ids = [CITY_IDS[i] if i < len(CITY_IDS) else f"city{i + 1:02d}" for i in range(n_cities)]
    betas = rng.normal(mu, tau, n_cities)
    lo, hi = base_deaths
    bases = rng.uniform(lo, hi, n_cities)
    seeds = rng.integers(0, 2**31 - 1, n_cities)

    cities = {}
    for city, beta, base, s in zip(ids, betas, bases, seeds):
        cities[city] = simulate_city(n_years=n_years, beta_pm10=float(beta),
                                     base_deaths=float(base), seed=int(s))
    return cities, pd.Series(betas, index=ids, name="true_beta")


def write_cities(out_dir, n_cities: int = 20, seed: Optional[int] = None, **kwargs) -> List[Path]:
    """
    Write one CSV per simulated city into ``out_dir`` and return the paths.

    Raises FileExistsError when ``out_dir`` already holds city CSVs.
    """
    out_dir = Path(out_dir)
    stale = sorted(out_dir.glob("*.csv")) if out_dir.is_dir() else []
    if stale:
        raise FileExistsError(
            f"{out_dir} already holds {len(stale)} city files; use an empty --data-dir for --simulate")
    out_dir.mkdir(parents=True, exist_ok=True)

    cities, true_beta = simulate_cities(n_cities=n_cities, seed=seed, **kwargs)
    paths = []
    for city, df in cities.items():
        path = out_dir / f"{city}.csv"
        df.to_csv(path, index=False)
        paths.append(path)
    true_beta.to_csv(out_dir.parent / "true_beta.csv", header=True)
    print(f"[OK] Wrote {len(paths)} simulated cities -> {out_dir}")
    return paths
