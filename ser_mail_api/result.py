"""Outcome of a ``/send`` call."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Fields parsed from the send response, plus the raw body and response.

    Missing or unparsable fields are empty strings; building a result never
    raises on a bad body.
    """

    message_id: str = ""
    reason: str = ""
    request_id: str = ""
    raw_json: str = ""
    http_response: Optional[httpx.Response] = field(default=None, repr=False)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "SendResult":
        raw = response.text or ""
        result = cls(raw_json=raw, http_response=response)
        if not raw.strip():
            return result

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.warning("Failed to parse send response as JSON: %s", exc)
            return result
        if not isinstance(payload, dict):
            logger.warning("Send response is JSON but not an object: %.200s", raw)
            return result

        result.message_id = _text(payload.get("message_id"))
        result.reason = _text(payload.get("reason"))
        result.request_id = _text(payload.get("request_id"))
        return result

    @property
    def status_code(self) -> int | None:
        return self.http_response.status_code if self.http_response is not None else None

    @property
    def ok(self) -> bool:
        return self.http_response is not None and self.http_response.is_success


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
