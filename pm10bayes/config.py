# config.py
# Centralized path and model configuration for pm10bayes
# -------------------------------------------------------------------
# All paths are defined relative to the project root.
# City tables live in data/cities/, outputs go to results/ and figures/.
# -------------------------------------------------------------------

from pathlib import Path

# Project root (parent of the pm10bayes/ package directory)
_THIS_FILE = Path(__file__).resolve()
PROJECT_ROOT = _THIS_FILE.parent.parent

# =====================================================================
# Input Data
# =====================================================================
# One file per city; the city id is the filename stem (e.g. ny.csv -> "ny")
DIR_DATA = PROJECT_ROOT / "data"
DIR_CITIES = DIR_DATA / "cities"
CITY_FILE_PATTERN = "*.csv"

# Column names (NMMAPS conventions)
COL_DEATH = "death"
COL_TEMP = "tmpd"
COL_DATE = "date"
COL_PM10 = "pm10tmean"
COL_TIME = "time"          # derived: days since first date
REQUIRED_COLUMNS = (COL_DEATH, COL_TEMP, COL_DATE, COL_PM10)

# Default single city for stages 2-3 (falls back to the first file)
DEFAULT_CITY = "ny"

# =====================================================================
# Output Directories
# =====================================================================
DIR_OUTPUT = PROJECT_ROOT / "results"
DIR_TABLES = DIR_OUTPUT / "tables"
DIR_POSTERIORS = DIR_OUTPUT / "posteriors"
DIR_FIGURES = PROJECT_ROOT / "figures"
DIR_FIGURES_MAIN = DIR_FIGURES / "main"
DIR_FIGURES_DIAG = DIR_FIGURES / "diagnostics"

# =====================================================================
# Model Output Files - NetCDF posteriors
# =====================================================================
PATH_MODEL_CITY = DIR_POSTERIORS / "bayes_city_model.nc"
PATH_MODEL_HIERARCHICAL = DIR_POSTERIORS / "hierarchical_model.nc"

# =====================================================================
# Regression Settings
# =====================================================================
TEMP_DF = 3                # ns(tmpd, 3)
TIME_DF_PER_YEAR = 2       # ns(time, 2 * n_years)
PM10_INCREMENT = 10.0      # report effects per 10 ug/m3
GLM_MAXITER = 100

# Profile likelihood grid: estimate +/- PROFILE_WIDTH * SE
PROFILE_N_GRID = 41
PROFILE_WIDTH = 3.0

# =====================================================================
# Priors
# =====================================================================
# Single-city model (coefficients of standardized design columns)
PRIOR_SD_INTERCEPT = 2.0
PRIOR_SD_COEF = 10.0

# Hierarchical model (in units of the median city standard error)
PRIOR_SD_MU = 10.0
PRIOR_SCALE_TAU = 2.0

# =====================================================================
# Sampler Settings
# =====================================================================
DRAWS = 1_000
TUNE = 1_000
CHAINS = 4
CORES = 4
TARGET_ACCEPT = 0.9
NUTS_SAMPLER = "pymc"      # or "nutpie" / "numpyro" when installed
HDI_PROB = 0.95

# =====================================================================
# Figure Settings
# =====================================================================
FIG_DPI_SCREEN = 150
FIG_DPI_PRINT = 300
FIG_WIDTH_DOUBLE = 6.7

FIG_FONT_SIZE_SMALL = 8
FIG_FONT_SIZE_NORMAL = 10
FIG_FONT_SIZE_LARGE = 12
FIG_FONT_SIZE_TITLE = 14

PUBLICATION_RC_PARAMS = {
    'font.family': 'sans-serif',
    'font.sans-serif': ['Arial', 'Helvetica', 'DejaVu Sans'],
    'font.size': FIG_FONT_SIZE_NORMAL,
    'axes.titlesize': FIG_FONT_SIZE_LARGE,
    'axes.labelsize': FIG_FONT_SIZE_NORMAL,
    'xtick.labelsize': FIG_FONT_SIZE_SMALL,
    'ytick.labelsize': FIG_FONT_SIZE_SMALL,
    'legend.fontsize': FIG_FONT_SIZE_SMALL,
    'figure.titlesize': FIG_FONT_SIZE_TITLE,
    'figure.dpi': FIG_DPI_SCREEN,
    'savefig.dpi': FIG_DPI_PRINT,
    'savefig.bbox': 'tight',
    'savefig.pad_inches': 0.1,
    'pdf.fonttype': 42,
    'ps.fonttype': 42,
}

# =====================================================================
# Utility Functions
# =====================================================================
def ensure_dirs():
    """Create output directories if they don't exist."""
    dirs = [
        DIR_OUTPUT,
        DIR_TABLES,
        DIR_POSTERIORS,
        DIR_FIGURES,
        DIR_FIGURES_MAIN,
        DIR_FIGURES_DIAG,
    ]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)


def setup_publication_style():
    """Apply publication-quality matplotlib settings."""
    import matplotlib.pyplot as plt
    plt.rcParams.update(PUBLICATION_RC_PARAMS)


def save_figure(fig, name: str, formats=('png', 'pdf'), dpi=None, directory=None):
    """
    Save figure in multiple formats.

    Parameters
    ----------
    fig : matplotlib.figure.Figure
        The figure to save.
    name : str
        Base filename (without extension).
    formats : tuple
        File formats to save (default: png and pdf).
    dpi : int, optional
        Resolution. If None, uses FIG_DPI_PRINT for raster, vector for pdf.
    directory : Path, optional
        Output directory. If None, uses DIR_FIGURES_MAIN.

    Returns
    -------
    list of Path
        The files written.
    """
    if directory is None:
        directory = DIR_FIGURES_MAIN

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    written = []
    for fmt in formats:
        filepath = directory / f"{name}.{fmt}"
        if fmt in ('pdf', 'svg', 'eps'):
            fig.savefig(filepath, format=fmt, bbox_inches='tight')
        else:
            fig.savefig(filepath, format=fmt, dpi=dpi or FIG_DPI_PRINT, bbox_inches='tight')
        print(f"[OK] Saved {filepath}")
        written.append(filepath)
    return written
