"""
Paths, constants and the shared plot theme.

Paths resolve relative to the repository root so the analysis runs from any
working directory. Each one can be overridden with an environment variable.
"""

import os

import matplotlib
matplotlib.use('Agg')                # Non-interactive backend: figures go straight to PNG
import matplotlib.pyplot as plt

# ── File Path Configuration ───────────────────────────────────────────────────
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_PATH = os.getenv('MANHATTAN_TAXI_DATA', os.path.join(BASE_DIR, 'data', 'trips_sample.csv'))
MAP_IMAGE_PATH = os.getenv('MANHATTAN_TAXI_MAP', os.path.join(BASE_DIR, 'data', 'manhattan_map.png'))
OUTPUT_DIR = os.getenv('MANHATTAN_TAXI_OUTPUT', os.path.join(BASE_DIR, 'outputs'))

RANDOM_STATE = 42

# ── Input schema ─────────────────────────────────────────────────────────────
REQUIRED_COLUMNS = ['pickup_longitude', 'pickup_latitude', 'pickup_datetime',
                    'fare_amount', 'tip_amount']
NUMERIC_COLUMNS = ['pickup_longitude', 'pickup_latitude', 'fare_amount', 'tip_amount']
COORD_RENAMES = {'pickup_longitude': 'long', 'pickup_latitude': 'lat'}

# ── Manhattan bounding box (inclusive) ───────────────────────────────────────
# Ordered (long_min, long_max, lat_min, lat_max) so it doubles as an imshow extent.
MANHATTAN_BBOX = (-74.025, -73.93, 40.70, 40.83)

# ── Categorical labels ───────────────────────────────────────────────────────
WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

# ── Model settings (reference run) ───────────────────────────────────────────
LOCATION_PREDICTORS = ['lat', 'long']
FULL_PREDICTORS = ['lat', 'long', 'hour', 'weekday', 'month']
FOREST_TREES = 80
FOREST_SAMPLE_SIZE = 10000

# ── Spatial binning ──────────────────────────────────────────────────────────
GRID_BINS = (60, 60)       # (long bins, lat bins)
MIN_BIN_COUNT = 20         # bins with fewer trips report no value

# ── Global Plot Styling ──────────────────────────────────────────────────────
plt.rcParams.update({
    'figure.facecolor': '#0f1419',
    'axes.facecolor': '#172028',
    'axes.edgecolor': '#2d3a45',
    'axes.labelcolor': '#d0d7de',
    'text.color': '#d0d7de',
    'xtick.color': '#8c99a6',
    'ytick.color': '#8c99a6',
    'grid.color': '#222c35',
    'figure.dpi': 150,
    'font.size': 11,
    'font.family': 'sans-serif',
})

# ── Color Palette ────────────────────────────────────────────────────────────
COLORS = {
    'primary': '#f2c94c',     # taxi yellow for pickups and main bars
    'secondary': '#56ccf2',   # blue for secondary series
    'accent': '#6fcf97',      # green for reference lines
    'legend_bg': '#172028',
    'legend_edge': '#2d3a45',
    'heatmap': 'magma',       # sequential map for binned values
}
