# load_cities.py
# ---------------------------------------------------------------------------
# Read the per-city mortality / weather / pollution tables.
# One file per city; the city id is the filename stem (data/cities/ny.csv -> "ny").
# ---------------------------------------------------------------------------
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd

from pm10bayes.config import (
    DIR_CITIES, CITY_FILE_PATTERN, REQUIRED_COLUMNS,
    COL_DEATH, COL_TEMP, COL_DATE, COL_PM10, COL_TIME,
)

PathLike = Union[str, Path]

_READERS = {
    ".csv": pd.read_csv,
    ".pkl": pd.read_pickle,
    ".pickle": pd.read_pickle,
}


def city_files(data_dir: Optional[PathLike] = None,
               pattern: str = CITY_FILE_PATTERN) -> List[Path]:
    """Sorted list of city files in ``data_dir`` matching ``pattern``."""
    data_dir = Path(data_dir) if data_dir is not None else DIR_CITIES
    if not data_dir.is_dir():
        raise FileNotFoundError(f"City data directory not found: {data_dir}")
    files = sorted(p for p in data_dir.glob(pattern) if p.is_file())
    if not files:
        raise FileNotFoundError(f"No city files matching '{pattern}' in {data_dir}")
    return files


def read_city(path: PathLike) -> pd.DataFrame:
    """
    Load one city table.

    The ``date`` column is parsed to datetime, the required columns are
    checked and rows are sorted by date.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"City file not found: {path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported city file type '{path.suffix}' ({path.name})")

    df = reader(path)
    if not isinstance(df, pd.DataFrame):
        raise ValueError(f"{path.name} does not contain a table")

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name}: missing required columns {missing}")

    df = df.loc[:, list(REQUIRED_COLUMNS)].copy()
    df[COL_DATE] = pd.to_datetime(df[COL_DATE])
    for col in (COL_DEATH, COL_TEMP, COL_PM10):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df.sort_values(COL_DATE).reset_index(drop=True)


def load_cities(data_dir: Optional[PathLike] = None,
                pattern: str = CITY_FILE_PATTERN) -> Dict[str, pd.DataFrame]:
    """Load every matching city file, keyed by city id."""
    cities = {}
    for path in city_files(data_dir, pattern):
        cities[path.stem] = read_city(path)
    print(f"[OK] Loaded {len(cities)} cities from {Path(data_dir or DIR_CITIES)}")
    return cities


def model_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Complete-case rows for the regression plus a ``time`` column.

    ``time`` is days since the first date of the full series, so the time
    spline sees calendar spacing even when PM10 is only observed every few days.
    """
    out = df.copy()
    out[COL_TIME] = (out[COL_DATE] - out[COL_DATE].min()).dt.days.astype(float)
    out = out.dropna(subset=[COL_DEATH, COL_TEMP, COL_PM10]).reset_index(drop=True)
    out = out[np.isfinite(out[[COL_DEATH, COL_TEMP, COL_PM10]]).all(axis=1)]
    if out.empty:
        raise ValueError("No complete rows (death, tmpd, pm10tmean) left after dropping missing values")
    return out.reset_index(drop=True)
