"""
Record loader: read the raw trip file into a DataFrame.

The file is read once, checked for the five columns the rest of the pipeline
needs, and the numeric fields are coerced to float. Anything that fails to
parse stops the run with a ParseError naming the column.
"""

import os

import pandas as pd

from .config import REQUIRED_COLUMNS, NUMERIC_COLUMNS, RANDOM_STATE
from .errors import ParseError


def _read_table(path, sep=',', nrows=None):
    """Dispatch on file extension: parquet through pyarrow, everything else as CSV."""
    if str(path).endswith('.parquet'):
        df = pd.read_parquet(path, engine='pyarrow')
        return df.head(nrows) if nrows is not None else df
    # low_memory=False reads the whole file before inferring dtypes
    return pd.read_csv(path, sep=sep, nrows=nrows, low_memory=False)


def _coerce_numeric(df, column):
    """Convert one column to float64, raising ParseError on the first bad value."""
    values = pd.to_numeric(df[column], errors='coerce')
    bad = values.isna()
    if bad.any():
        first = df.index[bad.to_numpy()][0]
        raw = df.at[first, column]
        raise ParseError('load', column, f"row {first}: cannot parse {raw!r} as a number")
    return values.astype('float64')


def load_trips(path, sep=',', nrows=None, sample_frac=None, random_state=RANDOM_STATE):
    """
    Load raw taxi trips from a delimited file or parquet.

    Args:
        path: Location of the trip file (``.csv``, ``.csv.gz`` or ``.parquet``).
        sep: Field delimiter for text files.
        nrows: Read at most this many rows.
        sample_frac: If set, keep a reproducible random fraction of the rows.
        random_state: Seed for the sample.

    Returns:
        pd.DataFrame: One row per trip with float coordinates and amounts.
            ``pickup_datetime`` is left as read; the feature deriver parses it.

    Raises:
        ParseError: The file is missing, a required column is absent, or a
            numeric field does not parse.
    """
    if not os.path.exists(path):
        raise ParseError('load', 'path', f"no such file: {path}")

    try:
        df = _read_table(path, sep=sep, nrows=nrows)
    except (ValueError, pd.errors.ParserError) as e:
        raise ParseError('load', 'path', f"unreadable table {path}: {e}") from e

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ParseError('load', missing[0], f"required column missing (missing: {', '.join(missing)})")

    if sample_frac is not None:
        df = df.sample(frac=sample_frac, random_state=random_state)

    df = df.copy()
    for column in NUMERIC_COLUMNS:
        df[column] = _coerce_numeric(df, column)

    print(f"  📂 Loaded {len(df):,} trip records ({len(df.columns)} columns) from {os.path.basename(str(path))}")
    return df
