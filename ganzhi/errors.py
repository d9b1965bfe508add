"""
Exception types raised by the computation core.

Everything the core rejects is a ValidationError (and therefore also a
ValueError, so callers that already catch ValueError keep working).
Precision limits are never raised; they show up as chart warnings.
"""


class GanzhiError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(GanzhiError, ValueError):
    """Malformed or impossible input (bad date string, unknown gender, ...)."""


class OutOfRangeError(ValidationError):
    """Input outside the 1900-2099 coverage of the lookup tables."""


class UnknownCityError(ValidationError):
    """City not in the coordinate table and strict lookup was requested."""

    def __init__(self, city: str):
        super().__init__(f"City '{city}' is not in the coordinate table")
        self.city = city
