"""Exception hierarchy for the analytics engine."""


class AnalyticsError(Exception):
    """Base exception for analytics operations."""
    pass


class StoreUnavailable(AnalyticsError):
    """The record store could not be reached or a collection could not be read."""

    def __init__(self, message: str, collection: str = None):
        self.collection = collection
        super().__init__(message)


class InvalidTimeframe(AnalyticsError, ValueError):
    """The requested timeframe name is not one of week, month, quarter or year."""

    def __init__(self, timeframe):
        self.timeframe = timeframe
        super().__init__(f"Unknown timeframe: {timeframe!r}")


class AggregationFailed(AnalyticsError):
    """A metric calculator raised while building a snapshot."""
    pass


class ConfigError(AnalyticsError):
    """Configuration could not be loaded or holds invalid values."""
    pass
