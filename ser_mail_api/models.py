"""Value objects that make up a SER message."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email


class ContentType(str, Enum):
    """Body part type, valued with the MIME string the API expects."""

    TEXT = "text/plain"
    HTML = "text/html"

    @classmethod
    def parse(cls, value: "str | ContentType") -> "ContentType":
        if isinstance(value, ContentType):
            return value
        try:
            return _CONTENT_TYPE_ALIASES[value.strip().lower()]
        except KeyError:
            raise ValueError(f"Invalid content type: {value!r}") from None


_CONTENT_TYPE_ALIASES: dict[str, ContentType] = {
    "text": ContentType.TEXT,
    "text/plain": ContentType.TEXT,
    "html": ContentType.HTML,
    "text/html": ContentType.HTML,
}


class Disposition(str, Enum):
    INLINE = "inline"
    ATTACHMENT = "attachment"

    @classmethod
    def parse(cls, value: "str | Disposition") -> "Disposition":
        if isinstance(value, Disposition):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid disposition: {value!r}") from None


@dataclass(frozen=True)
class MailUser:
    """An email address with an optional display name."""

    email: str
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.email, str) or not self.email.strip():
            raise ValueError("Email address must be a non-empty string.")
        try:
            validate_email(self.email, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError(f"Invalid email address {self.email!r}: {exc}") from exc
        if self.name is not None and not isinstance(self.name, str):
            raise TypeError("Display name must be a string or None.")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"email": self.email}
        if self.name is not None:
            payload["name"] = self.name
        return payload


@dataclass(frozen=True)
class Content:
    """A single body part of a message."""

    body: str
    type: ContentType = ContentType.TEXT

    def __post_init__(self) -> None:
        if self.body is None:
            raise ValueError("Body must not be None.")
        if not isinstance(self.body, str) or not self.body.strip():
            raise ValueError("Body must not be empty or contain only whitespace.")
        object.__setattr__(self, "type", ContentType.parse(self.type))

    def to_dict(self) -> dict[str, Any]:
        return {"body": self.body, "type": self.type.value}
