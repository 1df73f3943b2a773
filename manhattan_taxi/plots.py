"""
Renderer: pickup maps, binned heat maps and a few EDA charts.

Each function draws one figure, saves it as PNG to ``path`` and closes it.
Maps are drawn over an optional background image stretched to the
Manhattan box; without one they render on the plain axes.
"""

import os

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.tree import plot_tree

from .config import COLORS, MANHATTAN_BBOX, MAP_IMAGE_PATH, RANDOM_STATE, WEEKDAY_LABELS


def load_background(path=MAP_IMAGE_PATH):
    """Read the background map image, or return None when there is no file."""
    if path is None or not os.path.exists(path):
        return None
    return plt.imread(path)


def _map_axes(ax, background, bbox):
    long_min, long_max, lat_min, lat_max = bbox
    if background is not None:
        ax.imshow(background, zorder=0, extent=bbox, aspect='auto')
    ax.set_xlim(long_min, long_max)
    ax.set_ylim(lat_min, lat_max)
    ax.set_xlabel('Longitude', fontsize=12, fontweight='bold')
    ax.set_ylabel('Latitude', fontsize=12, fontweight='bold')


def _save(fig, path):
    plt.tight_layout()
    fig.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path


def plot_pickup_density(df, path, background=None, bbox=MANHATTAN_BBOX, max_points=50000):
    """Scatter pickups over the map; large tables are down-sampled for drawing."""
    sample = df.sample(max_points, random_state=RANDOM_STATE) if len(df) > max_points else df

    fig, ax = plt.subplots(figsize=(8, 10))
    _map_axes(ax, background, bbox)
    ax.scatter(sample['long'], sample['lat'], s=1, alpha=0.15, zorder=1,
               color=COLORS['primary'], edgecolors='none')
    ax.set_title(f'Taxi Pickups — Manhattan ({len(df):,} trips)',
                 fontsize=15, fontweight='bold', pad=12)
    return _save(fig, path)


def plot_grid_heatmap(grid, path, title, label, background=None, bbox=MANHATTAN_BBOX):
    """Draw a binned grid as a translucent heat map; empty bins stay see-through."""
    values = grid.to_numpy(dtype='float64')
    fig, ax = plt.subplots(figsize=(8, 10))
    _map_axes(ax, background, bbox)
    if np.isfinite(values).any():
        im = ax.imshow(np.ma.masked_invalid(values), origin='lower', extent=bbox,
                       cmap=COLORS['heatmap'], alpha=0.75, zorder=1, aspect='auto',
                       interpolation='nearest')
        fig.colorbar(im, ax=ax, label=label, pad=0.02, shrink=0.8)
    else:
        ax.text(0.5, 0.5, 'No bin has enough trips', transform=ax.transAxes,
                ha='center', va='center', fontsize=13, fontweight='bold')
    ax.set_title(title, fontsize=15, fontweight='bold', pad=12)
    return _save(fig, path)


def plot_total_by_time(df, path):
    """Mean log total by weekday × hour."""
    pivot = df.pivot_table(values='total', index='weekday', columns='hour',
                           aggfunc='mean', observed=False)
    pivot = pivot.reindex(WEEKDAY_LABELS)

    fig, ax = plt.subplots(figsize=(14, 5))
    sns.heatmap(pivot, cmap='YlOrRd', ax=ax, linewidths=0.3,
                cbar_kws={'label': 'Mean log(fare + tip)'})
    ax.set_xlabel('Hour of Day', fontsize=13, fontweight='bold')
    ax.set_ylabel('Day of Week', fontsize=13, fontweight='bold')
    ax.set_title('Fare + Tip by Hour and Weekday — Manhattan',
                 fontsize=16, fontweight='bold', pad=15)
    return _save(fig, path)


def plot_total_distribution(df, path):
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.hist(df['total'], bins=60, color=COLORS['primary'], alpha=0.85, edgecolor='none')
    ax.axvline(df['total'].median(), color=COLORS['secondary'], linestyle='--', linewidth=2,
               label=f"Median: {df['total'].median():.3f} (${np.exp(df['total'].median()):.2f})")
    ax.set_xlabel('log(fare + tip)', fontsize=13, fontweight='bold')
    ax.set_ylabel('Number of Trips', fontsize=13, fontweight='bold')
    ax.set_title('Distribution of Log Fare + Tip — Manhattan', fontsize=16, fontweight='bold', pad=15)
    ax.legend(fontsize=11, facecolor=COLORS['legend_bg'], edgecolor=COLORS['legend_edge'])
    ax.grid(True, alpha=0.3)
    return _save(fig, path)


def plot_tree_structure(model, path, max_depth=3):
    """Top levels of a fitted regression tree."""
    fig, ax = plt.subplots(figsize=(18, 9))
    plot_tree(model.estimator, feature_names=model.predictors, max_depth=max_depth,
              filled=True, rounded=True, impurity=False, precision=3, fontsize=8, ax=ax)
    ax.set_title('Regression Tree — top splits', fontsize=16, fontweight='bold', pad=15)
    return _save(fig, path)


def plot_feature_importance(models, path):
    """Side-by-side importance bars, one panel per fitted model."""
    fig, axes = plt.subplots(1, len(models), figsize=(7 * len(models), 5), squeeze=False)
    palette = [COLORS['primary'], COLORS['secondary'], COLORS['accent']]
    for i, (ax, (name, model)) in enumerate(zip(axes[0], models.items())):
        model.feature_importances().plot(kind='barh', ax=ax, color=palette[i % len(palette)],
                                         alpha=0.85, edgecolor='none')
        ax.set_xlabel('Feature Importance', fontsize=12, fontweight='bold')
        ax.set_title(name, fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3, axis='x')
    plt.suptitle('Feature Importance — Manhattan', fontsize=16, fontweight='bold', y=1.02)
    return _save(fig, path)
