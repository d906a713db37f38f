# fig_profile.py
# Relative profile likelihood of the PM10 coefficient vs its Normal approximation
# -------------------------------------------------------------------
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from pm10bayes.config import FIG_WIDTH_DOUBLE, save_figure
from pm10bayes.models.glm_city import CityFit


def plot_profile(profile: pd.DataFrame,
                 fit: CityFit,
                 name: str = "profile_likelihood",
                 directory=None,
                 formats=("png",),
                 show: bool = False):
    sns.set_style("whitegrid")
    fig, ax = plt.subplots(figsize=(FIG_WIDTH_DOUBLE, 4))

    ax.plot(profile["beta"], profile["rel_lik"], lw=2, color="#0072B2", label="Profile likelihood")
    ax.plot(profile["beta"], profile["normal_approx"], lw=1.5, ls="--", color="#D55E00",
            label="Normal approximation")
    ax.axvline(fit.estimate, color="0.4", lw=0.8)

    ax.set_xlabel("PM10 coefficient (log RR per unit)")
    ax.set_ylabel("Relative likelihood")
    ax.set_title(f"{fit.city}: profile likelihood")
    ax.legend(frameon=False)
    sns.despine(ax=ax)
    fig.tight_layout()

    if name:
        save_figure(fig, name, formats=formats, directory=directory)
    if show:
        plt.show()
    return fig
