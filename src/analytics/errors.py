"""
Error taxonomy for portfolio analytics.
"""
from typing import Optional


class AnalyticsError(Exception):
    """Base class for analytics failures."""
    pass


class DataError(AnalyticsError):
    """Raised when input data is malformed or insufficient."""
    pass


class InsufficientDataError(AnalyticsError):
    """
    Raised when a single metric cannot be computed from the given data.

    Sibling metrics remain computable, so callers collect these per metric
    instead of aborting.
    """

    def __init__(self, message: str, metric: str = "", benchmark: Optional[object] = None):
        super().__init__(message)
        self.metric = metric
        self.benchmark = benchmark


class DegenerateInputWarning(UserWarning):
    """Issued when a fallback value replaces an undefined statistic."""
    pass
