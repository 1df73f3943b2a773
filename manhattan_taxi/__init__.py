"""
Manhattan taxi trip analysis.

Load a sample of NYC taxi trips, clean them down to Manhattan pickups, derive
time-of-day features, fit a regression tree and a random forest on the
log fare-plus-tip total, and map the results.
"""

from .errors import TaxiAnalysisError, ParseError, DomainError, ModelFitError
from .loader import load_trips
from .cleaning import clean_trips
from .features import derive_time_features

__version__ = '0.1.0'

__all__ = [
    'TaxiAnalysisError', 'ParseError', 'DomainError', 'ModelFitError',
    'load_trips', 'clean_trips', 'derive_time_features',
]
