"""The message aggregate sent to ``/send``."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from .attachment import Attachment
from .exceptions import MessageBuildError
from .models import Content, ContentType, MailUser


def _as_user(value: "str | MailUser", name: str | None = None) -> MailUser:
    if isinstance(value, MailUser):
        if name is not None:
            return MailUser(value.email, name)
        return value
    return MailUser(value, name)


def _as_tuple(items: Iterable[Any] | None, item_type: type, field_name: str) -> tuple:
    values = tuple(items or ())
    for item in values:
        if not isinstance(item, item_type):
            raise TypeError(f"{field_name} entries must be {item_type.__name__}, got {type(item).__name__}.")
    return values


@dataclass(frozen=True)
class Message:
    """An outbound email.

    Both ``Message(...)`` and ``Message.builder()...build()`` require a sender,
    a non-blank subject, at least one ``to`` recipient and at least one content
    part. Recipient order is kept as given; the API numbers recipients by
    position in its error messages.
    """

    subject: str
    sender: MailUser
    tos: Tuple[MailUser, ...] = ()
    content: Tuple[Content, ...] = ()
    cc: Tuple[MailUser, ...] = ()
    bcc: Tuple[MailUser, ...] = ()
    reply_tos: Tuple[MailUser, ...] = ()
    attachments: Tuple[Attachment, ...] = ()
    header_from: Optional[MailUser] = None

    def __post_init__(self) -> None:
        missing = _missing_parts(
            sender=self.sender,
            tos=self.tos,
            subject=self.subject,
            content=self.content,
        )
        if missing:
            raise MessageBuildError(missing)
        if not isinstance(self.subject, str):
            raise TypeError("subject must be a string.")
        if not isinstance(self.sender, MailUser):
            raise TypeError("sender must be a MailUser.")
        if self.header_from is not None and not isinstance(self.header_from, MailUser):
            raise TypeError("header_from must be a MailUser.")

        object.__setattr__(self, "tos", _as_tuple(self.tos, MailUser, "tos"))
        object.__setattr__(self, "cc", _as_tuple(self.cc, MailUser, "cc"))
        object.__setattr__(self, "bcc", _as_tuple(self.bcc, MailUser, "bcc"))
        object.__setattr__(self, "reply_tos", _as_tuple(self.reply_tos, MailUser, "reply_tos"))
        object.__setattr__(self, "content", _as_tuple(self.content, Content, "content"))
        object.__setattr__(self, "attachments", _as_tuple(self.attachments, Attachment, "attachments"))

    @classmethod
    def builder(cls) -> "MessageBuilder":
        return MessageBuilder()

    def to_dict(self) -> dict[str, Any]:
        """Wire shape expected by the SER ``/send`` endpoint."""
        payload: dict[str, Any] = {
            "attachments": [attachment.to_dict() for attachment in self.attachments],
            "content": [part.to_dict() for part in self.content],
            "from": self.sender.to_dict(),
        }
        if self.header_from is not None:
            payload["headers"] = {"from": self.header_from.to_dict()}
        payload.update(
            {
                "subject": self.subject,
                "tos": [user.to_dict() for user in self.tos],
                "cc": [user.to_dict() for user in self.cc],
                "bcc": [user.to_dict() for user in self.bcc],
                "replyTos": [user.to_dict() for user in self.reply_tos],
            }
        )
        return payload

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __str__(self) -> str:
        return self.to_json()


def _missing_parts(*, sender: Any, tos: Any, subject: Any, content: Any) -> list[str]:
    missing: list[str] = []
    if sender is None:
        missing.append("sender")
    if not tos:
        missing.append("to recipient")
    if subject is None or (isinstance(subject, str) and not subject.strip()):
        missing.append("subject")
    if not content:
        missing.append("content")
    return missing


class MessageBuilder:
    """Fluent construction of a :class:`Message`; requirements are checked in ``build()``."""

    def __init__(self) -> None:
        self._subject: str | None = None
        self._sender: MailUser | None = None
        self._header_from: MailUser | None = None
        self._tos: list[MailUser] = []
        self._cc: list[MailUser] = []
        self._bcc: list[MailUser] = []
        self._reply_tos: list[MailUser] = []
        self._content: list[Content] = []
        self._attachments: list[Attachment] = []

    def sender(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        self._sender = _as_user(email, name)
        return self

    def header_from(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        """Override the ``From`` header shown to recipients; the envelope sender is unchanged."""
        self._header_from = _as_user(email, name)
        return self

    def to(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        self._tos.append(_as_user(email, name))
        return self

    def cc(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        self._cc.append(_as_user(email, name))
        return self

    def bcc(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        self._bcc.append(_as_user(email, name))
        return self

    def reply_to(self, email: "str | MailUser", name: str | None = None) -> "MessageBuilder":
        self._reply_tos.append(_as_user(email, name))
        return self

    def subject(self, subject: str) -> "MessageBuilder":
        self._subject = subject
        return self

    def content(
        self, body: "str | Content", content_type: "ContentType | str" = ContentType.TEXT
    ) -> "MessageBuilder":
        if isinstance(body, Content):
            self._content.append(body)
        else:
            self._content.append(Content(body, ContentType.parse(content_type)))
        return self

    def attachment(self, attachment: Attachment) -> "MessageBuilder":
        if not isinstance(attachment, Attachment):
            raise TypeError("attachment must be an Attachment.")
        self._attachments.append(attachment)
        return self

    def build(self) -> Message:
        missing = _missing_parts(
            sender=self._sender,
            tos=self._tos,
            subject=self._subject,
            content=self._content,
        )
        if missing:
            raise MessageBuildError(missing)
        return Message(
            subject=self._subject,
            sender=self._sender,
            tos=tuple(self._tos),
            content=tuple(self._content),
            cc=tuple(self._cc),
            bcc=tuple(self._bcc),
            reply_tos=tuple(self._reply_tos),
            attachments=tuple(self._attachments),
            header_from=self._header_from,
        )
