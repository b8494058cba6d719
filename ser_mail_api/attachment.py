"""Attachments: direct factories plus a staged builder.

Every path ends in ``Attachment.__post_init__``, so an instance that exists is
valid. The builder is split in two steps: ``AttachmentSourceStep`` only knows
how to pick a content source, and only the ``AttachmentOptionsStep`` it returns
can be configured and built.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Optional

from .mime import DefaultMimeMapper, MimeMapper
from .models import Disposition
from .utils import encode_base64, is_valid_base64

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 1000


@dataclass(frozen=True)
class Attachment:
    """A Base64 encoded file carried by a message.

    ``mime_type`` is deduced from ``filename`` when omitted. ``content_id`` only
    survives for inline attachments; an inline attachment without one gets a
    random UUID so HTML bodies can reference it as ``cid:<content_id>``.
    """

    mime_mapper: ClassVar[MimeMapper] = DefaultMimeMapper()

    content: str
    filename: str
    mime_type: Optional[str] = None
    disposition: Disposition = Disposition.ATTACHMENT
    content_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.content, str) or not is_valid_base64(self.content):
            raise ValueError("Invalid Base64 content.")

        if not isinstance(self.filename, str) or not self.filename.strip():
            raise ValueError("Filename cannot be empty or whitespace.")
        if len(self.filename) > MAX_FILENAME_LENGTH:
            raise ValueError(f"Filename must be at most {MAX_FILENAME_LENGTH} characters long.")

        mime_type = self.mime_type
        if mime_type is not None and not isinstance(mime_type, str):
            raise TypeError("MIME type must be a string or None.")
        if self.content_id is not None and not isinstance(self.content_id, str):
            raise TypeError("Content-ID must be a string or None.")
        if mime_type is not None and not mime_type.strip():
            raise ValueError("MIME type must be a non-empty string.")
        if mime_type is None:
            mime_type = self.mime_mapper.get_mime_type(self.filename)
            if not mime_type:
                raise ValueError(
                    f"Could not determine MIME type for {self.filename!r}; specify it explicitly."
                )

        disposition = Disposition.parse(self.disposition)
        if disposition is Disposition.INLINE:
            content_id = self.content_id if self.content_id and self.content_id.strip() else str(uuid.uuid4())
        else:
            content_id = None

        object.__setattr__(self, "mime_type", mime_type)
        object.__setattr__(self, "disposition", disposition)
        object.__setattr__(self, "content_id", content_id)

    @classmethod
    def from_base64(
        cls,
        content: str,
        filename: str,
        mime_type: str | None = None,
        disposition: Disposition = Disposition.ATTACHMENT,
        content_id: str | None = None,
        *,
        validate_mime_type: bool = False,
    ) -> "Attachment":
        cls._check_mime_type(mime_type, validate_mime_type)
        return cls(content, filename, mime_type, disposition, content_id)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        filename: str,
        mime_type: str | None = None,
        disposition: Disposition = Disposition.ATTACHMENT,
        content_id: str | None = None,
        *,
        validate_mime_type: bool = False,
    ) -> "Attachment":
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("Attachment data must be bytes.")
        cls._check_mime_type(mime_type, validate_mime_type)
        return cls(encode_base64(bytes(data)), filename, mime_type, disposition, content_id)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        disposition: Disposition = Disposition.ATTACHMENT,
        content_id: str | None = None,
        filename: str | None = None,
        mime_type: str | None = None,
        *,
        validate_mime_type: bool = False,
    ) -> "Attachment":
        file_path = _resolve_file(path)
        if not filename or not filename.strip():
            filename = file_path.name
        cls._check_mime_type(mime_type, validate_mime_type)
        logger.debug("Reading attachment %s", file_path)
        return cls(encode_base64(file_path.read_bytes()), filename, mime_type, disposition, content_id)

    @classmethod
    def builder(cls) -> "AttachmentSourceStep":
        return AttachmentSourceStep()

    @classmethod
    def _check_mime_type(cls, mime_type: str | None, validate: bool) -> None:
        if validate and mime_type is not None and not cls.mime_mapper.is_valid_mime_type(mime_type):
            raise ValueError(
                f"MIME type {mime_type!r} appears to be invalid. Consider disabling MIME type validation."
            )

    @property
    def is_inline(self) -> bool:
        return self.disposition is Disposition.INLINE

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "content": self.content,
            "disposition": self.disposition.value,
            "filename": self.filename,
        }
        if self.content_id is not None:
            payload["id"] = self.content_id
        payload["type"] = self.mime_type
        return payload


def _resolve_file(path: str | Path) -> Path:
    if path is None or not str(path).strip():
        raise ValueError("File path cannot be empty or whitespace.")
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")
    return file_path


class AttachmentSourceStep:
    """First builder step: choose exactly one content source."""

    def from_base64(self, content: str, filename: str) -> "AttachmentOptionsStep":
        if not isinstance(content, str):
            raise TypeError("Base64 content must be a string.")
        return AttachmentOptionsStep(content=content, filename=filename)

    def from_bytes(self, data: bytes, filename: str) -> "AttachmentOptionsStep":
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("Attachment data must be bytes.")
        return AttachmentOptionsStep(content=encode_base64(bytes(data)), filename=filename)

    def from_file(self, path: str | Path) -> "AttachmentOptionsStep":
        file_path = _resolve_file(path)
        return AttachmentOptionsStep(content=encode_base64(file_path.read_bytes()), filename=file_path.name)


class AttachmentOptionsStep:
    """Second builder step: optional settings, then ``build()``."""

    def __init__(self, *, content: str, filename: str) -> None:
        self._content = content
        self._filename = filename
        self._mime_type: str | None = None
        self._validate_mime_type = False
        self._disposition = Disposition.ATTACHMENT
        self._content_id: str | None = None

    def disposition_inline(self, content_id: str | None = None) -> "AttachmentOptionsStep":
        self._disposition = Disposition.INLINE
        self._content_id = content_id
        return self

    def disposition_attached(self) -> "AttachmentOptionsStep":
        self._disposition = Disposition.ATTACHMENT
        self._content_id = None
        return self

    def filename(self, filename: str) -> "AttachmentOptionsStep":
        self._filename = filename
        return self

    def mime_type(self, mime_type: str, *, validate: bool = False) -> "AttachmentOptionsStep":
        self._mime_type = mime_type
        self._validate_mime_type = validate
        return self

    def build(self) -> Attachment:
        Attachment._check_mime_type(self._mime_type, self._validate_mime_type)
        return Attachment(
            content=self._content,
            filename=self._filename,
            mime_type=self._mime_type,
            disposition=self._disposition,
            content_id=self._content_id,
        )
