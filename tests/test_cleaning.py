import math

import numpy as np
import pandas as pd
import pytest

from manhattan_taxi.cleaning import (
    add_log_total, clean_trips, cleaning_summary, drop_invalid_fares,
    filter_bounding_box, rename_coordinates,
)
from manhattan_taxi.errors import DomainError


def frame(*rows):
    return pd.DataFrame(list(rows))


def test_scenario_trip_is_retained(scenario_row):
    out = clean_trips(frame(scenario_row))
    assert len(out) == 1
    row = out.iloc[0]
    assert row['long'] == -73.99
    assert row['lat'] == 40.75
    assert row['total'] == pytest.approx(math.log(12.0))
    assert row['total'] == pytest.approx(2.4849, abs=1e-4)


def test_rename_only_changes_names(scenario_row):
    out = rename_coordinates(frame(scenario_row))
    assert 'pickup_longitude' not in out.columns
    assert 'pickup_latitude' not in out.columns
    assert out.loc[0, 'long'] == -73.99
    assert out.loc[0, 'lat'] == 40.75


def test_no_fare_no_tip_is_dropped(scenario_row):
    free = dict(scenario_row, fare_amount=0.0, tip_amount=0.0)
    out = clean_trips(frame(scenario_row, free))
    assert len(out) == 1
    assert (out['fare_amount'] + out['tip_amount'] > 0).all()


def test_tip_only_trip_is_kept(scenario_row):
    tip_only = dict(scenario_row, fare_amount=0.0, tip_amount=3.0)
    out = clean_trips(frame(tip_only))
    assert out['total'].iloc[0] == pytest.approx(math.log(3.0))


def test_outside_box_is_dropped_even_with_valid_fare(scenario_row):
    south = dict(scenario_row, pickup_latitude=40.60, fare_amount=50.0)
    out = clean_trips(frame(scenario_row, south))
    assert list(out['lat']) == [40.75]


@pytest.mark.parametrize('lat, long, kept', [
    (40.70, -74.025, True),
    (40.83, -73.93, True),
    (40.6999, -73.99, False),
    (40.8301, -73.99, False),
    (40.75, -74.0251, False),
    (40.75, -73.9299, False),
])
def test_box_bounds_are_inclusive(scenario_row, lat, long, kept):
    row = dict(scenario_row, pickup_latitude=lat, pickup_longitude=long)
    assert (len(clean_trips(frame(row))) == 1) is kept


def test_log_of_non_positive_sum_raises(scenario_row):
    # a refund-style negative fare survives the fare filter via its tip
    refund = dict(scenario_row, fare_amount=-5.0, tip_amount=1.0)
    with pytest.raises(DomainError) as excinfo:
        clean_trips(frame(refund))
    assert excinfo.value.stage == 'clean'
    assert excinfo.value.field == 'total'


def test_add_log_total_direct():
    df = pd.DataFrame({'fare_amount': [1.0, 0.0], 'tip_amount': [0.0, 0.0]})
    with pytest.raises(DomainError):
        add_log_total(df)


def test_retained_rows_are_valid(raw_trips):
    noisy = raw_trips.copy()
    noisy.loc[::7, 'fare_amount'] = 0.0
    noisy.loc[::7, 'tip_amount'] = 0.0
    noisy.loc[::11, 'pickup_latitude'] = 40.60
    out = clean_trips(noisy)

    assert 0 < len(out) < len(noisy)
    assert ((out['fare_amount'] > 0) | (out['tip_amount'] > 0)).all()
    assert out['lat'].between(40.70, 40.83).all()
    assert out['long'].between(-74.025, -73.93).all()
    np.testing.assert_allclose(out['total'], np.log(out['fare_amount'] + out['tip_amount']))


def test_filters_commute(raw_trips):
    noisy = rename_coordinates(raw_trips)
    noisy.loc[::5, 'fare_amount'] = 0.0
    noisy.loc[::5, 'tip_amount'] = 0.0
    noisy.loc[::3, 'long'] = -74.2

    one_way = filter_bounding_box(drop_invalid_fares(noisy))
    other_way = drop_invalid_fares(filter_bounding_box(noisy))
    pd.testing.assert_frame_equal(one_way, other_way)


def test_input_is_not_mutated(raw_trips):
    before = raw_trips.copy()
    clean_trips(raw_trips)
    pd.testing.assert_frame_equal(raw_trips, before)


def test_cleaning_summary(raw_trips):
    cleaned = clean_trips(raw_trips)
    summary = cleaning_summary(raw_trips, cleaned)
    assert summary['raw_records'] == len(raw_trips)
    assert summary['cleaned_records'] == len(cleaned)
    assert summary['records_removed'] == len(raw_trips) - len(cleaned)
    assert summary['total_min'] <= summary['total_mean'] <= summary['total_max']


def test_cleaning_summary_empty_result(scenario_row):
    raw = frame(dict(scenario_row, pickup_latitude=10.0))
    summary = cleaning_summary(raw, clean_trips(raw))
    assert summary == {'raw_records': 1, 'cleaned_records': 0,
                       'records_removed': 1, 'pct_removed': 100.0}
