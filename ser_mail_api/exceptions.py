"""Exceptions raised by the SER mail client."""

from __future__ import annotations


class SerMailError(Exception):
    """Base class for runtime failures talking to the SER API."""


class AuthenticationError(SerMailError):
    """The OAuth token endpoint failed or returned an unusable token."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TransportError(SerMailError):
    """The HTTP request to the SER API could not be completed."""


class MessageBuildError(ValueError):
    """A message is missing one or more required parts."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Message is missing required fields: {', '.join(self.missing)}")
