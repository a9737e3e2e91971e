"""Domain errors raised by the Spotify integration and mood services.

Every error carries a human-readable ``message`` that the HTTP layer can show
to the end user as-is.
"""

from __future__ import annotations

from typing import Any, Optional


class MoodifyError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotConnectedError(MoodifyError):
    """The user has no Spotify credential on file."""

    def __init__(self, message: str = "Connect your Spotify account first"):
        super().__init__(message)


class TokenRefreshError(MoodifyError):
    """Spotify rejected the refresh grant; the user must reconnect."""

    def __init__(self, message: str = "Could not refresh Spotify token", payload: Any = None):
        super().__init__(message)
        self.payload = payload


class ProviderRequestError(MoodifyError):
    """A Spotify call failed (transport error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status = status
        self.payload = payload


class EmptyResultError(MoodifyError):
    """No tracks could be found for the requested mood."""

    def __init__(self, message: str = "No tracks found for this mood"):
        super().__init__(message)


class PreconditionError(MoodifyError):
    """An operation was attempted without the connection or tier it needs."""


class ValidationError(MoodifyError):
    """Caller-supplied mood data is out of range."""
