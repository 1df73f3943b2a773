"""
Manhattan Taxi Trips — Complete Analysis Pipeline
=================================================

Runs five phases in sequence, each taking the table produced by the one
before it:

  1. Load & Clean — read trips, drop bad fares, log-transform, clip to Manhattan,
     derive hour/weekday/month
  2. Exploratory maps — pickup density and time-of-day charts
  3. Models — regression trees on location (and time), random forest with
     out-of-bag predictions
  4. Prediction maps — 60×60 binned heat maps of predicted vs actual totals
  5. Export — cleaned table to parquet

Outputs (PNG figures, JSON summaries, parquet) land in ``OUTPUT_DIR``.
"""

import json
import os
import sys
from datetime import datetime

from . import config
from .cleaning import clean_trips, cleaning_summary
from .errors import TaxiAnalysisError, ModelFitError
from .features import derive_time_features
from .loader import load_trips
from .models import TreeRegressor, ForestRegressor, regression_metrics
from .plots import (
    load_background, plot_pickup_density, plot_grid_heatmap, plot_total_by_time,
    plot_total_distribution, plot_tree_structure, plot_feature_importance,
)
from .spatial import aggregate_grid, count_grid, threshold_mean, populated_bins


def _banner(title):
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def _write_json(payload, output_dir, name):
    with open(os.path.join(output_dir, name), 'w') as f:
        json.dump(payload, f, indent=2)


# ══════════════════════════════════════════════════════════════════════════════
# PHASE 1 : LOAD & CLEAN
# ══════════════════════════════════════════════════════════════════════════════

def load_and_clean(data_path=config.DATA_PATH, output_dir=config.OUTPUT_DIR, sample_frac=None):
    """
    Load the raw trip file and return the cleaned, feature-enriched table.

    Writes ``cleaning_summary.json`` to ``output_dir``.
    """
    _banner("PHASE 1 : LOAD & CLEAN")

    raw = load_trips(data_path, sample_frac=sample_frac)
    cleaned = clean_trips(raw)
    df = derive_time_features(cleaned)

    summary = cleaning_summary(raw, df)
    _write_json(summary, output_dir, 'cleaning_summary.json')
    if len(df):
        print(f"  📈 log(fare + tip) range: {summary['total_min']:.3f} – {summary['total_max']:.3f}"
              f" (mean {summary['total_mean']:.3f})")
    return df


# ══════════════════════════════════════════════════════════════════════════════
# PHASE 2 : EXPLORATORY MAPS
# ══════════════════════════════════════════════════════════════════════════════

def run_eda(df, output_dir=config.OUTPUT_DIR, background=None):
    """Pickup maps and time-of-day charts. Returns the list of files written."""
    _banner("PHASE 2 : EXPLORATORY MAPS")

    files = []
    print("  📊 Plotting pickup locations...")
    files.append(plot_pickup_density(df, os.path.join(output_dir, '01_pickups.png'),
                                     background=background))

    print("  📊 Plotting pickup density grid...")
    density = count_grid(df, bins=config.GRID_BINS)
    files.append(plot_grid_heatmap(density.where(density > 0),
                                   os.path.join(output_dir, '02_pickup_density.png'),
                                   title='Pickup Density — Manhattan', label='Trips per bin',
                                   background=background))

    print("  📊 Plotting log total distribution...")
    files.append(plot_total_distribution(df, os.path.join(output_dir, '03_total_distribution.png')))

    print("  📊 Plotting weekday × hour heatmap...")
    files.append(plot_total_by_time(df, os.path.join(output_dir, '04_total_by_time.png')))

    print(f"  ✅ EDA complete — {len(files)} figures saved")
    return files


# ══════════════════════════════════════════════════════════════════════════════
# PHASE 3 : MODELS
# ══════════════════════════════════════════════════════════════════════════════

def run_models(df, output_dir=config.OUTPUT_DIR,
               n_trees=config.FOREST_TREES, sample_size=config.FOREST_SAMPLE_SIZE):
    """
    Fit the location tree, the location + time tree and the random forest.

    Returns:
        tuple: (models dict, results dict). The results are also written to
            ``model_results.json``; the tree split structures go to text files.
    """
    _banner("PHASE 3 : MODELS")

    models = {}
    results = {}

    print("  🌳 Fitting regression tree on lat + long...")
    location_tree = TreeRegressor().fit(df, config.LOCATION_PREDICTORS)
    models['location_tree'] = location_tree

    print("  🌳 Fitting regression tree on lat + long + hour + weekday + month...")
    full_tree = TreeRegressor().fit(df, config.FULL_PREDICTORS)
    models['full_tree'] = full_tree

    for name, tree in [('location_tree', location_tree), ('full_tree', full_tree)]:
        with open(os.path.join(output_dir, f'{name}_splits.txt'), 'w') as f:
            f.write(tree.describe())
        metrics = regression_metrics(df['total'], tree.predict_table(df))
        metrics['leaves'] = tree.n_leaves
        metrics['predictors'] = tree.predictors
        results[name] = metrics
        print(f"     {name}: R² = {metrics['r2_score']} | RMSE = {metrics['rmse']} | {metrics['leaves']} leaves")

    print(f"  🌲 Fitting random forest ({n_trees} trees, {min(sample_size, len(df)):,} rows each)...")
    forest = ForestRegressor(n_trees=n_trees, sample_size=sample_size).fit(df, config.FULL_PREDICTORS)
    models['forest'] = forest
    metrics = regression_metrics(df['total'], forest.oob_predictions)
    metrics['oob_r2'] = round(forest.oob_r2, 4)
    metrics['unscored_rows'] = forest.unscored_rows
    metrics['predictors'] = forest.predictors
    results['forest'] = metrics
    print(f"     forest (out-of-bag): R² = {metrics['r2_score']} | RMSE = {metrics['rmse']}")
    if forest.unscored_rows:
        print(f"  ⚠  {forest.unscored_rows:,} rows were sampled by every tree and have no out-of-bag prediction")

    print("  📊 Plotting tree structure and feature importance...")
    plot_tree_structure(location_tree, os.path.join(output_dir, '05_location_tree.png'))
    plot_feature_importance({'Regression Tree': full_tree, 'Random Forest': forest},
                            os.path.join(output_dir, '06_feature_importance.png'))

    _write_json(results, output_dir, 'model_results.json')

    best = max(results, key=lambda k: results[k]['r2_score'])
    print(f"  🏆 Best fit: {best} (R² = {results[best]['r2_score']})")
    return models, results


# ══════════════════════════════════════════════════════════════════════════════
# PHASE 4 : PREDICTION MAPS
# ══════════════════════════════════════════════════════════════════════════════

def map_predictions(df, forest, output_dir=config.OUTPUT_DIR, background=None,
                    min_count=config.MIN_BIN_COUNT):
    """
    Heat maps of the forest's out-of-bag prediction and of the actual total.

    Bins with fewer than ``min_count`` trips are left blank.

    Returns:
        dict: The two grids, keyed ``predicted`` and ``actual``.
    """
    _banner("PHASE 4 : PREDICTION MAPS")

    scored = df.assign(oob_total=forest.oob_predictions)
    agg = threshold_mean(min_count)

    grids = {
        'predicted': aggregate_grid(scored, 'oob_total', bins=config.GRID_BINS, agg=agg),
        'actual': aggregate_grid(scored, 'total', bins=config.GRID_BINS, agg=agg),
    }
    n_bins = config.GRID_BINS[0] * config.GRID_BINS[1]
    print(f"  🗺  {populated_bins(grids['actual']):,} of {n_bins:,} bins hold at least {min_count} trips")

    plot_grid_heatmap(grids['predicted'], os.path.join(output_dir, '07_predicted_total.png'),
                      title='Random Forest Prediction (out-of-bag) — Manhattan',
                      label='Mean predicted log(fare + tip)', background=background)
    plot_grid_heatmap(grids['actual'], os.path.join(output_dir, '08_actual_total.png'),
                      title='Actual Fare + Tip — Manhattan',
                      label='Mean log(fare + tip)', background=background)
    print("  ✅ Prediction maps saved")
    return grids


# ══════════════════════════════════════════════════════════════════════════════
# PHASE 5 : EXPORT
# ══════════════════════════════════════════════════════════════════════════════

def export_table(df, output_dir=config.OUTPUT_DIR):
    _banner("PHASE 5 : EXPORT")
    path = os.path.join(output_dir, 'trips_clean.parquet')
    df.to_parquet(path, index=False, engine='pyarrow')
    print(f"  💾 Saved cleaned table: {path} ({len(df):,} rows)")
    return path


# ══════════════════════════════════════════════════════════════════════════════
# MAIN EXECUTION
# ══════════════════════════════════════════════════════════════════════════════

def run(data_path=config.DATA_PATH, output_dir=config.OUTPUT_DIR, map_path=config.MAP_IMAGE_PATH,
        n_trees=config.FOREST_TREES, sample_size=config.FOREST_SAMPLE_SIZE):
    """Run all five phases and return the cleaned table, models, metrics and grids."""
    os.makedirs(output_dir, exist_ok=True)
    background = load_background(map_path)
    if background is None:
        print(f"  ⚠  No background map at {map_path}; maps render without one")

    df = load_and_clean(data_path, output_dir)
    if df.empty:
        raise ModelFitError('model', 'total', "no trips left after cleaning")
    run_eda(df, output_dir, background)
    models, results = run_models(df, output_dir, n_trees=n_trees, sample_size=sample_size)
    grids = map_predictions(df, models['forest'], output_dir, background)
    export_table(df, output_dir)
    return {'table': df, 'models': models, 'results': results, 'grids': grids}


def main():
    print("\n" + "★" * 70)
    print("  MANHATTAN TAXI TRIPS — ANALYSIS PIPELINE")
    print(f"  Dataset: {config.DATA_PATH}")
    print("★" * 70)

    start_time = datetime.now()
    try:
        run()
    except TaxiAnalysisError as e:
        print("\n" + "✖" * 70)
        print(f"  ❌ Pipeline aborted in stage '{e.stage}' on field '{e.field}'")
        print(f"     {e.detail}")
        print("✖" * 70 + "\n")
        return 1

    elapsed = (datetime.now() - start_time).total_seconds()
    print("\n" + "★" * 70)
    print(f"  ✅ ALL PHASES COMPLETE in {elapsed:.1f} seconds")
    print(f"  📁 Output directory: {config.OUTPUT_DIR}")
    for f in sorted(os.listdir(config.OUTPUT_DIR)):
        size = os.path.getsize(os.path.join(config.OUTPUT_DIR, f))
        print(f"     • {f} ({size / 1024:.0f} KB)")
    print("★" * 70 + "\n")
    return 0


if __name__ == '__main__':
    sys.exit(main())
