"""Exceptions raised inside errorwatch."""

from __future__ import annotations


class ErrorwatchError(Exception):
    """Base class for errorwatch failures."""


class SerializationError(ErrorwatchError):
    """An exception could not be converted into an error tree."""


class MalformedInputError(ErrorwatchError):
    """A cause chain exceeded the configured depth limit."""

    def __init__(self, depth: int):
        super().__init__(f"Cause chain deeper than {depth} levels")
        self.depth = depth


class AlertTransportError(ErrorwatchError):
    """The alert endpoint could not be reached or rejected the request."""

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
