"""
Exception types for chijimi.

Malformed dictionary lines are never reported here; the source parser
skips them silently.
"""


class ChijimiError(Exception):
    """Base class for all chijimi errors."""
    pass


class SourceFetchError(ChijimiError):
    """Raised when the raw synonym dictionary cannot be retrieved."""
    pass


class PersistenceError(ChijimiError):
    """Raised when a store batch still fails after all retries."""
    pass


class UninitializedDictionaryError(ChijimiError):
    """Raised when optimization is requested before any dictionary was published."""
    pass


class InvalidRequestError(ChijimiError):
    """Raised when the optimization input text is missing or empty."""
    pass


class SnapshotError(ChijimiError):
    """Raised when a compiled dictionary snapshot cannot be read."""
    pass


class AlreadyInitializedError(ChijimiError):
    """Raised when publishing over an initialized store without ``force``."""
    pass


class OptimizationTimeoutError(ChijimiError):
    """Raised when async optimization exceeds its timeout."""
    pass
