"""Errors raised by the scheduling core."""


class InvalidInput(ValueError):
    """Raised when a candidate booking is malformed, e.g. a non-positive duration."""


class StoreFailure(RuntimeError):
    """Raised when the booking store fails while serving a scheduling operation."""
