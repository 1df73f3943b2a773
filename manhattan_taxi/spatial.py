"""
Spatial binning of trip values over the Manhattan box.

A grid is a DataFrame whose rows are latitude bins (south to north) and whose
columns are longitude bins (west to east), labelled by bin centre. Every bin
is present; a bin with nothing to report holds NaN.
"""

import numpy as np
import pandas as pd

from .config import GRID_BINS, MANHATTAN_BBOX, MIN_BIN_COUNT


# ── Aggregation functions ────────────────────────────────────────────────────

def mean(values):
    return float(np.mean(values)) if len(values) else np.nan


def count(values):
    return len(values)


def threshold_mean(min_count=MIN_BIN_COUNT):
    """
    Mean that refuses to answer for thinly populated bins.

    Returns an aggregation function giving NaN when a bin holds fewer than
    ``min_count`` values and the plain mean otherwise.
    """
    def mean_if_populated(values):
        if len(values) < min_count:
            return np.nan
        return float(np.mean(values))

    mean_if_populated.__name__ = f'mean_min_{min_count}'
    return mean_if_populated


# ── Grid construction ────────────────────────────────────────────────────────

def bin_edges(bbox=MANHATTAN_BBOX, bins=GRID_BINS):
    """Equal-width (long_edges, lat_edges) covering the closed box."""
    long_min, long_max, lat_min, lat_max = bbox
    n_long, n_lat = bins
    return (np.linspace(long_min, long_max, n_long + 1),
            np.linspace(lat_min, lat_max, n_lat + 1))


def _centres(edges):
    return (edges[:-1] + edges[1:]) / 2


def _bin_index(values, edges):
    # right-closed bins with the lowest edge included, so both box edges count
    return pd.cut(values, edges, labels=False, include_lowest=True)


def aggregate_grid(df, value, bins=GRID_BINS, bbox=MANHATTAN_BBOX, agg=mean,
                   fill_value=np.nan, lat='lat', long='long'):
    """
    Bin ``df`` by pickup location and aggregate ``value`` per bin.

    Args:
        df: Trips with coordinate columns and the value column.
        value: Column to aggregate (e.g. ``total`` or ``oob_total``).
        bins: (long bins, lat bins).
        bbox: (long_min, long_max, lat_min, lat_max).
        agg: Function from the values in one bin to a number.
        fill_value: What bins with no trips at all report.

    Returns:
        pd.DataFrame: ``bins[1]`` rows × ``bins[0]`` columns. Trips outside
            the box and rows with a missing value are ignored.
    """
    long_edges, lat_edges = bin_edges(bbox, bins)
    n_long, n_lat = bins

    binned = pd.DataFrame({
        'lat_bin': _bin_index(df[lat], lat_edges),
        'long_bin': _bin_index(df[long], long_edges),
        'value': df[value],
    }).dropna()
    binned = binned.astype({'lat_bin': 'int64', 'long_bin': 'int64'})

    every_bin = pd.MultiIndex.from_product([range(n_lat), range(n_long)],
                                           names=['lat_bin', 'long_bin'])
    if binned.empty:
        per_bin = pd.Series(fill_value, index=every_bin, dtype='float64')
    else:
        per_bin = (binned.groupby(['lat_bin', 'long_bin'])['value'].agg(agg)
                   .astype('float64'))
        # only bins without trips take fill_value; NaN from agg is kept
        per_bin = per_bin.reindex(every_bin, fill_value=fill_value)
    grid = per_bin.unstack('long_bin').reindex(index=range(n_lat), columns=range(n_long))

    grid.index = pd.Index(_centres(lat_edges), name=lat)
    grid.columns = pd.Index(_centres(long_edges), name=long)
    return grid


def count_grid(df, bins=GRID_BINS, bbox=MANHATTAN_BBOX):
    """Number of pickups per bin (0 for empty bins)."""
    return aggregate_grid(df, 'lat', bins=bins, bbox=bbox, agg=count, fill_value=0)


def populated_bins(grid):
    """How many bins carry a value."""
    return int(grid.notna().to_numpy().sum())
