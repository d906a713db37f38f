# fig_forest.py
# City-level intervals: MLE +/- 1.96 SE, posterior theta HDI, pooled mu HDI
# -------------------------------------------------------------------
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from scipy import stats

from pm10bayes.config import FIG_WIDTH_DOUBLE, HDI_PROB, save_figure
from pm10bayes.models.glm_city import percent_increase


def plot_city_intervals(results: pd.DataFrame,
                        shrinkage: Optional[pd.DataFrame] = None,
                        pooled: Optional[Dict[str, float]] = None,
                        level: float = HDI_PROB,
                        name: str = "city_intervals",
                        directory=None,
                        formats=("png",),
                        show: bool = False):
    """
    Forest plot in percent increase per 10 ug/m3.

    ``results`` gives the frequentist intervals; ``shrinkage`` (from
    city_shrinkage_table) adds posterior city intervals; ``pooled`` (from
    pooled_summary) adds the overall estimate at the bottom.
    """
    sns.set_style("whitegrid")
    z = stats.norm.ppf(0.5 + level / 2.0)

    res = results.sort_values("estimate").reset_index(drop=True)
    y = np.arange(len(res))[::-1] + 1.0

    fig, ax = plt.subplots(figsize=(FIG_WIDTH_DOUBLE, 0.3 * len(res) + 1.5))
    est = percent_increase(res["estimate"])
    lo = percent_increase(res["estimate"] - z * res["std_error"])
    hi = percent_increase(res["estimate"] + z * res["std_error"])
    ax.errorbar(est, y, xerr=[est - lo, hi - est], fmt="o", color="0.3", ms=4,
                capsize=0, label="City MLE")

    if shrinkage is not None:
        sh = shrinkage.set_index("city").reindex(res["city"])
        t_est = percent_increase(sh["theta_mean"].to_numpy())
        t_lo = percent_increase(sh["theta_hdi_lo"].to_numpy())
        t_hi = percent_increase(sh["theta_hdi_hi"].to_numpy())
        ax.errorbar(t_est, y - 0.25, xerr=[t_est - t_lo, t_hi - t_est], fmt="s",
                    color="#0072B2", ms=3, capsize=0, label="Posterior city effect")

    ticks, labels = list(y), list(res["city"])
    if pooled is not None:
        ax.errorbar([pooled["pct_median"]], [0.0],
                    xerr=[[pooled["pct_median"] - pooled["pct_hdi_lo"]],
                          [pooled["pct_hdi_hi"] - pooled["pct_median"]]],
                    fmt="D", color="#D55E00", ms=6, capsize=3, label="Pooled")
        ticks.append(0.0)
        labels.append("Overall")

    ax.axvline(0.0, color="0.5", lw=0.8, ls=":")
    ax.set_yticks(ticks)
    ax.set_yticklabels(labels)
    ax.set_xlabel("% increase in mortality per 10 ug/m3 PM10")
    ax.legend(frameon=False, loc="lower right")
    sns.despine(ax=ax, left=True)
    fig.tight_layout()

    if name:
        save_figure(fig, name, formats=formats, directory=directory)
    if show:
        plt.show()
    return fig
