"""Shared fixtures: a controllable clock and an in-process fake SER server."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs

import httpx
import pytest

TOKEN_URL = "https://auth.x.com/v1/token"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeSerServer:
    """Answers token requests on ``/v1/token`` and API calls everywhere else."""

    def __init__(self) -> None:
        self.token_payload: dict = {"access_token": "token-1", "expires_in": 3600}
        self.token_status = 200
        self.token_delay = 0.0
        self.api_status = 200
        self.api_body: str | dict = {"message_id": "m1", "reason": "ok", "request_id": "r1"}
        self.token_requests: list[httpx.Request] = []
        self.api_requests: list[httpx.Request] = []
        self.issued = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/token"):
            self.token_requests.append(request)
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            self.issued += 1
            payload = dict(self.token_payload)
            if payload.get("access_token") == "token-1":
                payload["access_token"] = f"token-{self.issued}"
            return httpx.Response(self.token_status, json=payload)

        self.api_requests.append(request)
        if isinstance(self.api_body, dict):
            return httpx.Response(self.api_status, json=self.api_body)
        return httpx.Response(self.api_status, text=self.api_body)

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def server() -> FakeSerServer:
    return FakeSerServer()


@pytest.fixture
def http(server: FakeSerServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server))
