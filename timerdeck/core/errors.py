"""Timer Deck exceptions.

Nothing here is fatal to the process: callers either surface the error to
the user (ValidationError) or log it and carry on (store errors).
"""


class TimerDeckError(Exception):
    """Base class for Timer Deck errors."""


class ValidationError(TimerDeckError):
    """User-supplied timer fields are missing or invalid."""


class StoreReadError(TimerDeckError):
    """Persistent store could not be read, or returned malformed data."""


class StoreWriteError(TimerDeckError):
    """Persistent store rejected a write."""
