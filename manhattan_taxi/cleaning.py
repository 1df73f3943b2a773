"""
Cleaning filter: rename, drop bad fares, log-transform, clip to Manhattan.

The steps run in a fixed order because each one depends on the previous:
the log total needs a positive fare-plus-tip, and the box filter reads the
renamed coordinate columns. Every function returns a new DataFrame and leaves
its input untouched.
"""

import numpy as np

from .config import COORD_RENAMES, MANHATTAN_BBOX
from .errors import DomainError


def rename_coordinates(df):
    """Rename pickup_longitude/pickup_latitude to long/lat."""
    return df.rename(columns=COORD_RENAMES)


def drop_invalid_fares(df):
    """Keep trips where the fare or the tip is positive."""
    keep = (df['fare_amount'] > 0) | (df['tip_amount'] > 0)
    return df[keep].copy()


def add_log_total(df):
    """Add ``total = ln(fare_amount + tip_amount)``."""
    amount = df['fare_amount'] + df['tip_amount']
    non_positive = ~(amount > 0)
    if non_positive.any():
        first = df.index[non_positive.to_numpy()][0]
        raise DomainError('clean', 'total',
                          f"row {first}: log of non-positive fare + tip ({amount.loc[first]!r})")
    out = df.copy()
    out['total'] = np.log(amount)
    return out


def filter_bounding_box(df, bbox=MANHATTAN_BBOX):
    """Keep trips whose pickup lies inside the closed (long_min, long_max, lat_min, lat_max) box."""
    long_min, long_max, lat_min, lat_max = bbox
    inside = (
        df['lat'].between(lat_min, lat_max, inclusive='both') &
        df['long'].between(long_min, long_max, inclusive='both')
    )
    return df[inside].copy()


def clean_trips(df, bbox=MANHATTAN_BBOX):
    """
    Run the full cleaning funnel over a raw trip table.

    Order: rename → fare filter → log total → bounding box. The row count is
    reported after each filter.

    Args:
        df: Raw trips from :func:`manhattan_taxi.loader.load_trips`.
        bbox: Pickup box as (long_min, long_max, lat_min, lat_max).

    Returns:
        pd.DataFrame: Retained trips with ``long``, ``lat`` and ``total``.
    """
    raw_count = len(df)

    # ── 1. Rename coordinates ──────────────────────────────────────────────
    out = rename_coordinates(df)

    # ── 2. Drop trips with no fare and no tip ──────────────────────────────
    before = len(out)
    out = drop_invalid_fares(out)
    print(f"  💰 Removed {before - len(out):,} rows with no fare and no tip")

    # ── 3. Log-transform fare + tip ────────────────────────────────────────
    out = add_log_total(out)

    # ── 4. Manhattan bounding box ──────────────────────────────────────────
    before = len(out)
    out = filter_bounding_box(out, bbox)
    print(f"  🗺  Removed {before - len(out):,} rows outside the Manhattan bbox")

    removed = raw_count - len(out)
    pct = removed / raw_count * 100 if raw_count else 0.0
    print(f"  ✅ Cleaning complete: {len(out):,} rows retained ({removed:,} removed, {pct:.1f}%)")
    return out


def cleaning_summary(raw, cleaned):
    """Summarise a cleaning run as a JSON-ready dict."""
    raw_count = len(raw)
    removed = raw_count - len(cleaned)
    summary = {
        'raw_records': raw_count,
        'cleaned_records': len(cleaned),
        'records_removed': removed,
        'pct_removed': round(removed / raw_count * 100, 1) if raw_count else 0.0,
    }
    if len(cleaned):
        summary.update({
            'total_min': round(float(cleaned['total'].min()), 4),
            'total_max': round(float(cleaned['total'].max()), 4),
            'total_mean': round(float(cleaned['total'].mean()), 4),
            'fare_median': round(float(cleaned['fare_amount'].median()), 2),
            'tip_median': round(float(cleaned['tip_amount'].median()), 2),
        })
    return summary
