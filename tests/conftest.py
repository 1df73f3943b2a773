import numpy as np
import pandas as pd
import pytest

# Pickup hot spots inside the Manhattan box, so spatial bins fill up
HOT_SPOTS = [(-73.99, 40.75), (-73.98, 40.76), (-74.00, 40.72), (-73.965, 40.78), (-73.95, 40.80)]


def make_raw_trips(n=400, seed=0):
    """Raw trips as they come off disk: raw column names, string timestamps."""
    rng = np.random.default_rng(seed)
    spots = rng.integers(0, len(HOT_SPOTS), n)
    long = np.array([HOT_SPOTS[i][0] for i in spots]) + rng.uniform(-0.00005, 0.00005, n)
    lat = np.array([HOT_SPOTS[i][1] for i in spots]) + rng.uniform(-0.00005, 0.00005, n)
    # uptown pickups cost more
    fare = np.round(4 + 200 * (lat - 40.70) + rng.uniform(-1, 1, n), 2)
    tip = np.round(fare * rng.choice([0.0, 0.15, 0.2], n), 2)
    minutes = rng.integers(0, 31 * 24 * 60, n)
    stamps = pd.Timestamp('2013-01-01') + pd.to_timedelta(minutes, unit='m')
    return pd.DataFrame({
        'medallion': [f'M{i:04d}' for i in range(n)],
        'pickup_datetime': stamps.strftime('%Y-%m-%d %H:%M:%S'),
        'pickup_longitude': long,
        'pickup_latitude': lat,
        'fare_amount': fare,
        'tip_amount': tip,
    })


@pytest.fixture
def scenario_row():
    return {
        'pickup_longitude': -73.99,
        'pickup_latitude': 40.75,
        'pickup_datetime': '2013-01-15 08:30:00',
        'fare_amount': 10.0,
        'tip_amount': 2.0,
    }


@pytest.fixture
def raw_trips():
    return make_raw_trips()


@pytest.fixture
def trips_csv(tmp_path, raw_trips):
    path = tmp_path / 'trips.csv'
    raw_trips.to_csv(path, index=False)
    return path


@pytest.fixture
def featured_trips(raw_trips):
    from manhattan_taxi.cleaning import clean_trips
    from manhattan_taxi.features import derive_time_features
    return derive_time_features(clean_trips(raw_trips))
