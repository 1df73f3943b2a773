"""Error taxonomy for the analysis pipeline.

Every error carries the pipeline stage it came from and the offending field,
so a failed run can say exactly where it stopped.
"""


class TaxiAnalysisError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, stage, field, detail):
        self.stage = stage
        self.field = field
        self.detail = detail
        super().__init__(f"[{stage}] {field}: {detail}")


class ParseError(TaxiAnalysisError):
    """A required field is missing or does not parse."""


class DomainError(TaxiAnalysisError):
    """A value falls outside a mathematically required domain."""


class ModelFitError(TaxiAnalysisError):
    """The model backend rejected the input or failed to fit."""
