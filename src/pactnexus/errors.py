"""Domain exceptions for the progression engine."""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for errors raised by progression services."""


class NotAuthenticatedError(ProgressionError):
    """An operation was invoked without a resolved user id."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class InvalidEventError(ProgressionError):
    """A tracking event was malformed (unknown kind, difficulty or missing field)."""


class UnknownCounterError(ProgressionError):
    """A counter operation named a field that is not part of the tracking row."""


class InvalidCounterDeltaError(ProgressionError):
    """A counter increment was not positive. Behavioral counters only go up."""


def require_user(user_id: str | None) -> str:
    """Return the user id, or fail fast when no user is resolved."""
    if user_id is None or not str(user_id).strip():
        raise NotAuthenticatedError()
    return str(user_id)
