class FlashDeckError(Exception):
    """Base class for errors raised by the scheduler, controller and store."""


class InvalidArgument(FlashDeckError, ValueError):
    """Quality rating or card state outside documented bounds. Not retryable."""


class NotFound(FlashDeckError, LookupError):
    """Card missing or owned by another user."""


class PersistenceFailure(FlashDeckError):
    """Storage unreachable or rejected the write. Safe to retry."""
