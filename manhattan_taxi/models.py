"""
Model trainer: a regression tree and a random forest on the log total.

The rest of the pipeline only talks to two small interfaces:

- :class:`Regressor` — ``fit(df, predictors) -> FittedModel``
- :class:`FittedModel` — ``predict(record) -> float`` and
  ``predict_table(df) -> pd.Series``

The scikit-learn backends below are one way to satisfy them; any other
library can be dropped in behind the same two methods.
"""

import warnings

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.tree import DecisionTreeRegressor, export_text

from .config import FOREST_TREES, FOREST_SAMPLE_SIZE, RANDOM_STATE
from .errors import ModelFitError

TARGET = 'total'


def _check_columns(df, columns):
    for column in columns:
        if column not in df.columns:
            raise ModelFitError('model', column, "column missing from training table")
        if df[column].isna().any():
            raise ModelFitError('model', column, f"{int(df[column].isna().sum())} missing values")


def _encode(values, categories=None):
    """Numeric view of one predictor. Categoricals become their category codes."""
    if categories is not None:
        return pd.Categorical(values, categories=categories).codes.astype('float64')
    return pd.to_numeric(values).astype('float64').to_numpy()


class FittedModel:
    """A trained estimator plus the predictor layout it was trained on."""

    def __init__(self, estimator, predictors, categories):
        self.estimator = estimator
        self.predictors = list(predictors)
        self.categories = categories

    def design_matrix(self, df):
        _check_columns(df, self.predictors)
        columns = []
        for name in self.predictors:
            codes = _encode(df[name], self.categories.get(name))
            if name in self.categories and (codes < 0).any():
                raise ModelFitError('model', name, "value outside the categories seen in training")
            columns.append(codes)
        return np.column_stack(columns)

    def predict_table(self, df):
        """Predicted ``total`` for every row of ``df``, aligned to its index."""
        return pd.Series(self.estimator.predict(self.design_matrix(df)),
                         index=df.index, name='predicted_total')

    def predict(self, record):
        """Predicted ``total`` for a single record (dict or Series)."""
        row = pd.DataFrame([{name: record[name] for name in self.predictors}])
        return float(self.predict_table(row).iloc[0])

    def feature_importances(self):
        return pd.Series(self.estimator.feature_importances_, index=self.predictors).sort_values()


class FittedTree(FittedModel):

    def describe(self, max_depth=4):
        """Text dump of the split structure, as if-then rules."""
        return export_text(self.estimator, feature_names=self.predictors,
                           max_depth=max_depth, decimals=4)

    @property
    def n_leaves(self):
        return int(self.estimator.get_n_leaves())


class FittedForest(FittedModel):

    def __init__(self, estimator, predictors, categories, index, target):
        super().__init__(estimator, predictors, categories)
        # Each training row predicted only by trees that did not sample it;
        # a row drawn by every tree has no such prediction and stays NaN
        self.oob_counts = pd.Series(out_of_bag_counts(estimator, len(index)), index=index,
                                    name='oob_trees')
        predictions = pd.Series(estimator.oob_prediction_, index=index, name='oob_total')
        self.oob_predictions = predictions.where(self.oob_counts > 0)

        scored = self.oob_predictions.notna().to_numpy()
        if scored.sum() >= 2:
            self.oob_r2 = float(r2_score(np.asarray(target)[scored],
                                         self.oob_predictions.to_numpy()[scored]))
        else:
            self.oob_r2 = float('nan')

    @property
    def unscored_rows(self):
        return int(self.oob_predictions.isna().sum())


def out_of_bag_counts(estimator, n_rows):
    """Number of trees that left each training row out of their bootstrap sample."""
    counts = np.zeros(n_rows, dtype='int64')
    for drawn in estimator.estimators_samples_:
        in_bag = np.zeros(n_rows, dtype=bool)
        in_bag[drawn] = True
        counts += ~in_bag
    return counts


class Regressor:
    """Fit ``total`` on a list of predictor columns."""

    def fit(self, df, predictors):
        raise NotImplementedError

    def _prepare(self, df, predictors):
        if not predictors:
            raise ModelFitError('model', 'predictors', "at least one predictor is required")
        _check_columns(df, [TARGET] + list(predictors))
        if len(df) < 2:
            raise ModelFitError('model', TARGET, f"need at least 2 rows to fit, got {len(df)}")

        categories = {
            name: list(df[name].cat.categories)
            for name in predictors
            if isinstance(df[name].dtype, pd.CategoricalDtype)
        }
        columns = []
        for name in predictors:
            try:
                columns.append(_encode(df[name], categories.get(name)))
            except (ValueError, TypeError) as e:
                raise ModelFitError('model', name, f"predictor is neither numeric nor categorical: {e}") from e
        X = np.column_stack(columns)
        y = df[TARGET].to_numpy(dtype='float64')
        return X, y, categories

    def _fit_estimator(self, estimator, X, y):
        try:
            estimator.fit(X, y)
        except Exception as e:
            raise ModelFitError('model', TARGET, f"{type(estimator).__name__} failed to fit: {e}") from e
        return estimator


class TreeRegressor(Regressor):
    """Single regression tree (scikit-learn CART)."""

    def __init__(self, max_depth=None, min_samples_leaf=20, random_state=RANDOM_STATE):
        self.max_depth = max_depth
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state

    def fit(self, df, predictors):
        X, y, categories = self._prepare(df, predictors)
        estimator = DecisionTreeRegressor(
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state,
        )
        return FittedTree(self._fit_estimator(estimator, X, y), predictors, categories)


class ForestRegressor(Regressor):
    """
    Bagged random forest with out-of-bag predictions.

    Each of the ``n_trees`` trees is grown on a bootstrap sample of
    ``sample_size`` rows (capped at the table size). Rows a tree did not draw
    are scored by that tree, which gives an out-of-bag prediction for every
    training row without holding any data back. A row drawn by every tree
    gets NaN.
    """

    def __init__(self, n_trees=FOREST_TREES, sample_size=FOREST_SAMPLE_SIZE,
                 min_samples_leaf=5, n_jobs=-1, random_state=RANDOM_STATE):
        self.n_trees = n_trees
        self.sample_size = sample_size
        self.min_samples_leaf = min_samples_leaf
        self.n_jobs = n_jobs
        self.random_state = random_state

    def fit(self, df, predictors):
        X, y, categories = self._prepare(df, predictors)
        estimator = RandomForestRegressor(
            n_estimators=self.n_trees,
            max_samples=min(self.sample_size, len(df)),
            bootstrap=True,
            oob_score=True,
            min_samples_leaf=self.min_samples_leaf,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
        )
        with warnings.catch_warnings():
            # rows no tree left out are reported through oob_counts instead
            warnings.filterwarnings('ignore', message='Some inputs do not have OOB scores')
            estimator = self._fit_estimator(estimator, X, y)
        return FittedForest(estimator, predictors, categories, df.index, y)


def regression_metrics(actual, predicted):
    """R², MAE and RMSE over the rows where both values are present."""
    pairs = pd.DataFrame({'actual': np.asarray(actual, dtype='float64'),
                          'predicted': np.asarray(predicted, dtype='float64')}).dropna()
    return {
        'n': int(len(pairs)),
        'r2_score': round(float(r2_score(pairs['actual'], pairs['predicted'])), 4),
        'mae': round(float(mean_absolute_error(pairs['actual'], pairs['predicted'])), 4),
        'rmse': round(float(np.sqrt(mean_squared_error(pairs['actual'], pairs['predicted']))), 4),
    }
