"""Exceptions raised by the feed engine."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for failures the view can show to the user."""


class NetworkError(FeedError):
    """Transport failure or a non-success HTTP status."""

    def __init__(self, message: str = "Failed to fetch posts", status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RemoteError(FeedError):
    """The backend answered but reported an application-level failure."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(Exception):
    """
    A stored preference could not be decoded.

    Never reaches the user: the preference store catches it and falls
    back to the default value.
    """

    def __init__(self, key: str, reason: str):
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason
