#!/usr/bin/env python3
"""Typed errors raised by the release orchestration engine.

Every error carries a lightweight `.code` so callers can branch on the failure
class without string matching.
"""

from __future__ import annotations


class ReleaseManagerError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(ReleaseManagerError):
    """Repository configuration document is malformed."""

    def __init__(self, message: str, code: str = "CONFIG") -> None:
        super().__init__(message, code=code)


class ClassificationUnavailable(ReleaseManagerError):
    """Summarization service failed, returned nothing, or is disabled."""

    def __init__(self, message: str, code: str = "UNAVAILABLE") -> None:
        super().__init__(message, code=code)


class NotFoundError(ReleaseManagerError):
    def __init__(self, message: str, code: str = "NOT_FOUND") -> None:
        super().__init__(message, code=code)


class TitleParseError(ReleaseManagerError):
    """Release-stage title does not match `<BUMP> Release: <tag>: <summary>`."""

    def __init__(self, message: str, code: str = "TITLE") -> None:
        super().__init__(message, code=code)


class RemoteOperationError(ReleaseManagerError):
    """Any other repository host failure (auth, network, unexpected shape)."""
    pass


class EventValidationError(ReleaseManagerError):
    def __init__(self, message: str, code: str = "INVALID_EVENT") -> None:
        super().__init__(message, code=code)


__all__ = [
    "ReleaseManagerError",
    "ConfigurationError",
    "ClassificationUnavailable",
    "NotFoundError",
    "TitleParseError",
    "RemoteOperationError",
    "EventValidationError",
]
