"""Tests for reading the per-city tables."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from pm10bayes.data_processing.load_cities import city_files, load_cities, model_frame, read_city
from pm10bayes.data_processing.simulate_cities import simulate_cities, simulate_city, write_cities

from conftest import N_CITIES


def test_city_files_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        city_files(tmp_path / "nope")


def test_city_files_no_match(tmp_path: Path) -> None:
    (tmp_path / "notes.txt").write_text("x")
    with pytest.raises(FileNotFoundError):
        city_files(tmp_path, "*.csv")


def test_load_cities_one_entry_per_file(cities, city_dir: Path) -> None:
    files = city_files(city_dir)
    assert len(cities) == len(files) == N_CITIES
    assert list(cities) == [p.stem for p in files]
    for df in cities.values():
        assert list(df.columns) == ["death", "tmpd", "date", "pm10tmean"]
        assert pd.api.types.is_datetime64_any_dtype(df["date"])
        assert df["date"].is_monotonic_increasing


def test_read_city_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_city(tmp_path / "ny.csv")


def test_read_city_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    pd.DataFrame({"date": ["1990-01-01"], "death": [3]}).to_csv(path, index=False)
    with pytest.raises(ValueError, match="missing required columns"):
        read_city(path)


def test_read_city_unsupported_suffix(tmp_path: Path) -> None:
    path = tmp_path / "ny.rds"
    path.write_bytes(b"\x00")
    with pytest.raises(ValueError, match="Unsupported"):
        read_city(path)


def test_read_city_pickle(tmp_path: Path) -> None:
    df = simulate_city(n_years=1, seed=0)
    path = tmp_path / "chic.pkl"
    df.to_pickle(path)
    loaded = load_cities(tmp_path, "*.pkl")
    assert list(loaded) == ["chic"]
    assert len(loaded["chic"]) == len(df)


def test_model_frame_drops_missing_and_adds_time() -> None:
    df = simulate_city(n_years=1, pm10_every=3, seed=1)
    frame = model_frame(df)
    assert frame["pm10tmean"].notna().all()
    assert len(frame) == int(np.ceil(len(df) / 3))
    assert frame["time"].iloc[0] == 0.0
    assert np.all(np.diff(frame["time"]) == 3.0)


def test_model_frame_all_missing() -> None:
    df = simulate_city(n_years=1, seed=1)
    df["pm10tmean"] = np.nan
    with pytest.raises(ValueError):
        model_frame(df)


def test_simulate_cities_ids_and_effects() -> None:
    cities, true_beta = simulate_cities(n_cities=3, mu=0.001, tau=0.0, n_years=1, seed=5)
    assert list(cities) == ["ny", "la", "chic"]
    assert np.allclose(true_beta.to_numpy(), 0.001)


def test_write_cities_refuses_non_empty_directory(tmp_path: Path) -> None:
    out = tmp_path / "cities"
    paths = write_cities(out, n_cities=2, seed=5, n_years=1)
    assert len(paths) == 2
    with pytest.raises(FileExistsError):
        write_cities(out, n_cities=1, seed=6, n_years=1)
    assert sorted(p.name for p in out.glob("*.csv")) == sorted(p.name for p in paths)
