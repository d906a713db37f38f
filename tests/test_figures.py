"""Smoke tests for the figures (Agg backend)."""

from pathlib import Path

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from pm10bayes.analysis.profile_likelihood import profile_likelihood
from pm10bayes.visualization.fig_forest import plot_city_intervals
from pm10bayes.visualization.fig_profile import plot_profile
from pm10bayes.visualization.fig_trace import plot_posterior, plot_trace


def test_plot_profile(city_df, city_fit, tmp_path: Path) -> None:
    profile = profile_likelihood(city_df, city_fit, n_grid=5)
    plot_profile(profile, city_fit, name="profile", directory=tmp_path)
    assert (tmp_path / "profile.png").exists()
    plt.close("all")


def test_plot_city_intervals(results, tmp_path: Path) -> None:
    shrink = results.assign(theta_mean=results["estimate"],
                            theta_hdi_lo=results["estimate"] - results["std_error"],
                            theta_hdi_hi=results["estimate"] + results["std_error"])
    pooled = {"pct_median": 1.0, "pct_hdi_lo": 0.5, "pct_hdi_hi": 1.5}
    fig = plot_city_intervals(results, shrink, pooled, name="forest", directory=tmp_path)
    assert (tmp_path / "forest.png").exists()
    assert len(fig.axes[0].get_yticklabels()) == len(results) + 1
    plt.close("all")


def test_plot_trace_and_posterior(tmp_path: Path) -> None:
    rng = np.random.default_rng(0)
    idata = az.from_dict(posterior={"mu": rng.normal(size=(2, 100)),
                                    "tau": np.abs(rng.normal(size=(2, 100)))})
    plot_trace(idata, ["mu", "tau"], name="trace", directory=tmp_path)
    plot_posterior(idata, ["mu"], name="post", directory=tmp_path)
    assert (tmp_path / "trace.png").exists()
    assert (tmp_path / "post.png").exists()
    plt.close("all")
