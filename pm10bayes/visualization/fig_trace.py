# fig_trace.py
# Trace and posterior-density plots for a NUTS run (ArviZ)
# -------------------------------------------------------------------
from typing import List, Optional

import arviz as az
import matplotlib.pyplot as plt

from pm10bayes.config import DIR_FIGURES_DIAG, HDI_PROB, save_figure

az.style.use("arviz-whitegrid")


def plot_trace(idata: az.InferenceData,
               var_names: List[str],
               name: str = "trace",
               directory=None,
               formats=("png",),
               show: bool = False):
    """Trace plot (density + chain traces) for ``var_names``; saved under figures/diagnostics."""
    axes = az.plot_trace(idata, var_names=var_names, compact=True)
    fig = axes.ravel()[0].figure
    fig.tight_layout()
    if name:
        save_figure(fig, name, formats=formats, directory=directory or DIR_FIGURES_DIAG)
    if show:
        plt.show()
    return fig


def plot_posterior(idata: az.InferenceData,
                   var_names: List[str],
                   name: Optional[str] = "posterior",
                   hdi_prob: float = HDI_PROB,
                   ref_val: Optional[float] = 0.0,
                   directory=None,
                   formats=("png",),
                   show: bool = False):
    """Posterior densities with HDI bars and a reference line (default 0)."""
    axes = az.plot_posterior(idata, var_names=var_names, hdi_prob=hdi_prob, ref_val=ref_val)
    fig = (axes.ravel()[0] if hasattr(axes, "ravel") else axes).figure
    fig.tight_layout()
    if name:
        save_figure(fig, name, formats=formats, directory=directory)
    if show:
        plt.show()
    return fig
