"""
Exceptions raised by the stroke risk pipeline.

All of them are terminal for the run that raises them and carry a message
naming the offending field, column or row.
"""


class StrokeRiskError(Exception):
    """Base class for pipeline errors."""


class SchemaError(StrokeRiskError):
    """Input data is missing required columns or is unusable as a whole."""


class ValidationError(StrokeRiskError):
    """A record or label holds a missing, malformed or unknown value."""


class TrainingError(StrokeRiskError):
    """The classifier could not be fitted on the given training data."""
