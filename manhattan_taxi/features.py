"""
Feature deriver: hour, weekday and month from the pickup timestamp.

Timestamps are used exactly as they appear in the source. No timezone
conversion is done, so the hour is the wall-clock hour of whatever zone the
data was recorded in.
"""

import pandas as pd
from pandas.api.types import is_datetime64_any_dtype

from .config import WEEKDAY_LABELS, MONTH_LABELS
from .errors import ParseError


def parse_pickup_times(df, column='pickup_datetime'):
    """Parse the timestamp column into a datetime Series, failing on any bad value."""
    if column not in df.columns:
        raise ParseError('features', column, "timestamp column missing")

    raw = df[column]
    try:
        stamps = pd.to_datetime(raw, errors='raise')
    except (ValueError, TypeError, OverflowError) as e:
        raise ParseError('features', column, f"unparseable timestamp: {e}") from e

    # Mixed UTC offsets come back as an object column rather than datetimes
    if not is_datetime64_any_dtype(stamps):
        raise ParseError('features', column, "timestamps do not share a single time zone")

    if stamps.isna().any():
        first = df.index[stamps.isna().to_numpy()][0]
        raise ParseError('features', column, f"row {first}: missing timestamp")
    return stamps


def hour_of_day(stamps):
    return stamps.dt.hour.astype('int64')


def weekday_label(stamps):
    labels = stamps.dt.day_name().str[:3]
    return pd.Categorical(labels, categories=WEEKDAY_LABELS, ordered=True)


def month_label(stamps):
    labels = stamps.dt.month_name().str[:3]
    return pd.Categorical(labels, categories=MONTH_LABELS, ordered=True)


def derive_time_features(df, column='pickup_datetime'):
    """
    Add ``hour`` (0-23), ``weekday`` (Sun..Sat) and ``month`` (Jan..Dec).

    Every input row is kept; only three columns are added (or overwritten
    with identical values when run twice).

    Raises:
        ParseError: The timestamp column is absent or any value fails to parse.
    """
    stamps = parse_pickup_times(df, column)

    out = df.copy()
    out['hour'] = hour_of_day(stamps)
    out['weekday'] = weekday_label(stamps)
    out['month'] = month_label(stamps)

    print(f"  🕒 Derived hour/weekday/month for {len(out):,} trips")
    return out
