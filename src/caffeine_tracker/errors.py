"""Exception types raised by the caffeine tracker."""


class CaffeineTrackerError(Exception):
    """Base class for caffeine tracker errors."""


class StoreError(CaffeineTrackerError):
    """Raised when the dose store cannot complete an operation."""


class StoreWriteError(StoreError):
    """Raised when doses cannot be encoded or written to disk."""


class StoreCorruptedError(StoreError):
    """Raised when a stored dose file exists but cannot be decoded.

    This is fatal: the previous state cannot be recovered safely, so callers
    must stop instead of starting over with an empty ledger.
    """


class TrackerNotReadyError(CaffeineTrackerError):
    """Raised when a mutation is attempted before the tracker has loaded."""
