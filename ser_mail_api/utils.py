"""Utility helpers shared across modules."""

from __future__ import annotations

import binascii
from base64 import b64decode, b64encode
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Force a datetime into UTC without altering instant."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_iso_datetime(value: str) -> datetime:
    """Convert ISO strings (with or without trailing Z) into aware UTC datetimes."""
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def is_valid_base64(value: str) -> bool:
    """Empty string is valid (zero-byte payload); anything else must decode strictly."""
    if value == "":
        return True
    if not value.strip():
        return False
    try:
        b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def encode_base64(payload: bytes) -> str:
    if not payload:
        return ""
    return b64encode(payload).decode("ascii")
