"""Filename to MIME type lookup."""

from __future__ import annotations

import mimetypes
import re
from typing import Protocol, runtime_checkable

_MIME_PATTERN = re.compile(
    r"^(application|audio|font|image|message|model|multipart|text|video)/[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]{0,126}$",
    re.IGNORECASE,
)


@runtime_checkable
class MimeMapper(Protocol):
    def get_mime_type(self, filename: str) -> str | None: ...

    def is_valid_mime_type(self, mime_type: str) -> bool: ...


class DefaultMimeMapper:
    """Resolve MIME types from the platform ``mimetypes`` table."""

    def get_mime_type(self, filename: str) -> str | None:
        mime_type, _ = mimetypes.guess_type(filename, strict=False)
        return mime_type

    def is_valid_mime_type(self, mime_type: str) -> bool:
        if not mime_type:
            return False
        return bool(_MIME_PATTERN.match(mime_type.strip()))
