"""OAuth2 client-credentials token cache and the authenticated HTTP wrapper."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Protocol

import httpx

from .exceptions import AuthenticationError, TransportError
from .utils import parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_REFRESH_OFFSET = 60


class HttpTransport(Protocol):
    """The subset of ``httpx.AsyncClient`` this package relies on."""

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response: ...

    async def post(self, url: str, **kwargs: Any) -> httpx.Response: ...


class TokenCache:
    """Holds one bearer token for one client and refreshes it under a lock.

    The expiry stored is already shifted by ``refresh_offset`` seconds, so a
    token is renewed before the server would reject it.
    """

    EXPIRES_AT_FIELD = "token_expires_date_time"
    EXPIRES_IN_FIELD = "expires_in"

    def __init__(
        self,
        http: HttpTransport,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        scope: str | None = None,
        refresh_offset: int = DEFAULT_TOKEN_REFRESH_OFFSET,
        headers: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not token_url:
            raise ValueError("token_url is required.")
        if not client_id:
            raise ValueError("client_id is required.")
        if not client_secret:
            raise ValueError("client_secret is required.")
        if refresh_offset < 0:
            raise ValueError("Token refresh offset must be zero or a positive number of seconds.")

        self.http = http
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.refresh_offset = refresh_offset
        self.headers = dict(headers or {})
        self._clock = clock
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.Task | None = None
        self.access_token: str | None = None
        self.expires_at: datetime | None = None

    def is_valid(self) -> bool:
        return bool(self.access_token) and self.expires_at is not None and self._clock() < self.expires_at

    def invalidate(self) -> None:
        self.access_token = None
        self.expires_at = None

    async def ensure_valid_token(self) -> str:
        """Return a usable token, fetching a new one when missing or expired."""
        if self.is_valid():
            return self.access_token

        async with self._lock:
            # Another caller may have refreshed while we waited.
            if self.is_valid():
                logger.debug("Token refreshed by a concurrent caller; reusing it")
                return self.access_token
            if self._refresh_task is None:
                self._refresh_task = asyncio.create_task(self._run_refresh())
                self._refresh_task.add_done_callback(_consume_exception)
            task = self._refresh_task

        # Shielded: a cancelled caller leaves the refresh running for the others.
        await asyncio.shield(task)
        return self.access_token

    async def _run_refresh(self) -> None:
        try:
            await self._refresh()
        finally:
            self._refresh_task = None

    async def _refresh(self) -> None:
        form = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        if self.scope:
            form["scope"] = self.scope

        logger.debug("Requesting access token from %s", self.token_url)
        try:
            response = await self.http.post(self.token_url, data=form, headers=self.headers)
        except httpx.HTTPError as exc:
            logger.error("Token endpoint %s unreachable: %s", self.token_url, exc)
            raise AuthenticationError(f"Unable to reach token endpoint: {exc}") from exc

        if response.is_error:
            logger.error("Token request failed (%s): %s", response.status_code, response.text)
            raise AuthenticationError(
                f"OAuth token request failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        payload = self._parse_payload(response)
        token = payload.get("access_token")
        if not token or not isinstance(token, str):
            raise AuthenticationError(
                "OAuth token response did not contain an access token.",
                status_code=response.status_code,
                body=response.text,
            )
        expires_at = self._resolve_expiry(payload, response)

        self.access_token = token
        self.expires_at = expires_at
        logger.info("Access token refreshed; valid until %s", expires_at.isoformat())

    @staticmethod
    def _parse_payload(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                "OAuth token response is not valid JSON.",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise AuthenticationError(
                "OAuth token response is not a JSON object.",
                status_code=response.status_code,
                body=response.text,
            )
        return payload

    def _resolve_expiry(self, payload: dict[str, Any], response: httpx.Response) -> datetime:
        offset = timedelta(seconds=self.refresh_offset)
        try:
            if payload.get(self.EXPIRES_AT_FIELD):
                return parse_iso_datetime(str(payload[self.EXPIRES_AT_FIELD])) - offset
            if payload.get(self.EXPIRES_IN_FIELD) is not None:
                expires_in = float(payload[self.EXPIRES_IN_FIELD])
                if not math.isfinite(expires_in) or expires_in < 0:
                    raise ValueError(f"expires_in must be a finite, non-negative number, got {expires_in!r}")
                return self._clock() + timedelta(seconds=expires_in) - offset
        except (TypeError, ValueError, OverflowError) as exc:
            raise AuthenticationError(
                f"OAuth token response has an unreadable expiry: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        raise AuthenticationError(
            "OAuth token response is missing expiration details.",
            status_code=response.status_code,
            body=response.text,
        )


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters re-raise the failure; this only keeps an unawaited failure from being reported as lost.
    if not task.cancelled():
        task.exception()


class OAuthHttpClient:
    """Attach a bearer token from ``token_cache`` to every request sent through ``http``.

    Responses are returned untouched whatever their status; only failures to
    complete the exchange raise (:class:`TransportError`).
    """

    def __init__(
        self,
        http: HttpTransport,
        token_cache: TokenCache,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.http = http
        self.token_cache = token_cache
        self.headers = dict(headers or {})

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        content: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        token = await self.token_cache.ensure_valid_token()
        merged = {**self.headers, **(headers or {}), "Authorization": f"Bearer {token}"}
        try:
            return await self.http.request(method, url, json=json, content=content, headers=merged)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
