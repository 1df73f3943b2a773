import pytest

from manhattan_taxi.errors import ParseError
from manhattan_taxi.loader import load_trips


def test_load_csv_parses_numeric_columns(trips_csv, raw_trips):
    df = load_trips(trips_csv)
    assert len(df) == len(raw_trips)
    for column in ['pickup_longitude', 'pickup_latitude', 'fare_amount', 'tip_amount']:
        assert df[column].dtype == 'float64'
    # extra columns ride along
    assert 'medallion' in df.columns


def test_load_parquet(tmp_path, raw_trips):
    path = tmp_path / 'trips.parquet'
    raw_trips.to_parquet(path, index=False)
    df = load_trips(path)
    assert len(df) == len(raw_trips)
    assert df['fare_amount'].sum() == pytest.approx(raw_trips['fare_amount'].sum())


def test_nrows_and_sample(trips_csv):
    assert len(load_trips(trips_csv, nrows=25)) == 25
    sampled = load_trips(trips_csv, sample_frac=0.25)
    assert len(sampled) == 100
    assert sampled.index.equals(load_trips(trips_csv, sample_frac=0.25).index)


def test_missing_column_names_the_field(tmp_path, raw_trips):
    path = tmp_path / 'no_tip.csv'
    raw_trips.drop(columns=['tip_amount']).to_csv(path, index=False)
    with pytest.raises(ParseError) as excinfo:
        load_trips(path)
    assert excinfo.value.stage == 'load'
    assert excinfo.value.field == 'tip_amount'


def test_unparseable_number(tmp_path, raw_trips):
    bad = raw_trips.astype({'fare_amount': 'object'})
    bad.loc[3, 'fare_amount'] = 'ten dollars'
    path = tmp_path / 'bad.csv'
    bad.to_csv(path, index=False)
    with pytest.raises(ParseError) as excinfo:
        load_trips(path)
    assert excinfo.value.field == 'fare_amount'
    assert 'ten dollars' in str(excinfo.value)


def test_empty_numeric_cell_is_an_error(tmp_path):
    path = tmp_path / 'gap.csv'
    path.write_text(
        'pickup_longitude,pickup_latitude,pickup_datetime,fare_amount,tip_amount\n'
        '-73.99,40.75,2013-01-15 08:30:00,10.0,2.0\n'
        '-73.98,,2013-01-15 09:00:00,8.0,0.0\n'
    )
    with pytest.raises(ParseError) as excinfo:
        load_trips(path)
    assert excinfo.value.field == 'pickup_latitude'


def test_missing_file(tmp_path):
    with pytest.raises(ParseError) as excinfo:
        load_trips(tmp_path / 'nope.csv')
    assert excinfo.value.field == 'path'


def test_input_file_untouched(trips_csv):
    before = trips_csv.read_bytes()
    load_trips(trips_csv)
    assert trips_csv.read_bytes() == before
