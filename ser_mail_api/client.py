"""High level client for the Proofpoint Secure Email Relay mail API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import httpx

from . import __version__
from .auth import DEFAULT_TOKEN_REFRESH_OFFSET, OAuthHttpClient, TokenCache
from .config import Settings
from .message import Message
from .region import Region
from .result import SendResult
from .utils import utcnow

logger = logging.getLogger(__name__)


class Client:
    """Send :class:`Message` objects through the SER ``/send`` endpoint.

    One instance keeps one token; separate instances (other credentials or
    regions) never share state. Use as an async context manager, or call
    :meth:`aclose`, to release the HTTP connection pool it created.
    """

    USER_AGENT = f"ser-mail-api-python/{__version__}"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        region: Region | str = Region.US,
        *,
        scope: str | None = None,
        token_url: str | None = None,
        token_refresh_offset: int = DEFAULT_TOKEN_REFRESH_OFFSET,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.region = Region.parse(region)
        self.base_url = self.region.base_url
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient()

        headers = {"User-Agent": self.USER_AGENT}
        self.token_cache = TokenCache(
            self._http,
            token_url or self.region.token_url,
            client_id,
            client_secret,
            scope=scope,
            refresh_offset=token_refresh_offset,
            headers=headers,
            clock=clock,
        )
        self.http = OAuthHttpClient(self._http, self.token_cache, headers=headers)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Client":
        return cls(
            settings.client_id,
            settings.client_secret,
            settings.region,
            scope=settings.scope,
            token_url=settings.resolved_token_url,
            token_refresh_offset=settings.token_refresh_offset,
            **kwargs,
        )

    async def send(self, message: Message) -> SendResult:
        """POST ``message`` and return the parsed result, whatever the HTTP status."""
        if not isinstance(message, Message):
            raise TypeError("send() expects a Message instance.")

        url = f"{self.base_url}/send"
        logger.info("Sending message to %d recipient(s)", len(message.tos) + len(message.cc) + len(message.bcc))
        logger.debug("Message subject '%s' from %s", message.subject, message.sender.email)
        response = await self.http.post(url, json=message.to_dict())
        if response.is_error:
            logger.warning("Send request returned %s: %s", response.status_code, response.text)
        return SendResult.from_response(response)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
