"""Tests for the token cache and the authenticated transport."""

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from ser_mail_api.auth import OAuthHttpClient, TokenCache
from ser_mail_api.exceptions import AuthenticationError, TransportError

from .conftest import TOKEN_URL

API_URL = "https://mail-us.ser.proofpoint.com/v1/send"


def make_transport(http, clock, **kwargs):
    cache = TokenCache(http, TOKEN_URL, "client-id", "client-secret", clock=clock, **kwargs)
    return OAuthHttpClient(http, cache, headers={"User-Agent": "tests/1.0"}), cache


class TestTokenRequest:
    """Tests for the client-credentials exchange."""

    @pytest.mark.asyncio
    async def test_posts_client_credentials_form(self, http, server, clock):
        """The token request carries grant type and credentials, form-encoded."""
        transport, _ = make_transport(http, clock, scope="mail.send")

        await transport.post(API_URL, json={})

        assert len(server.token_requests) == 1
        request = server.token_requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert server.form(request) == {
            "grant_type": "client_credentials",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "scope": "mail.send",
        }

    @pytest.mark.asyncio
    async def test_scope_omitted_when_not_configured(self, http, server, clock):
        """No scope parameter is sent when none was configured."""
        transport, _ = make_transport(http, clock)

        await transport.post(API_URL, json={})

        assert "scope" not in server.form(server.token_requests[0])

    @pytest.mark.asyncio
    async def test_relative_expiry_subtracts_offset(self, http, server, clock):
        """expires_in is converted to an absolute time minus the refresh offset."""
        server.token_payload = {"access_token": "abc", "expires_in": 120}
        _, cache = make_transport(http, clock, refresh_offset=60)

        token = await cache.ensure_valid_token()

        assert token == "abc"
        assert cache.expires_at == clock.now + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_absolute_expiry_preferred(self, http, server, clock):
        """token_expires_date_time wins over expires_in."""
        absolute = clock.now + timedelta(minutes=10)
        server.token_payload = {
            "access_token": "abc",
            "expires_in": 5,
            "token_expires_date_time": absolute.isoformat().replace("+00:00", "Z"),
        }
        _, cache = make_transport(http, clock, refresh_offset=30)

        await cache.ensure_valid_token()

        assert cache.expires_at == absolute - timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_missing_access_token_is_fatal(self, http, server, clock):
        """A response without access_token raises and leaves the cache empty."""
        server.token_payload = {"expires_in": 3600}
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match="access token"):
            await cache.ensure_valid_token()

        assert cache.access_token is None
        assert cache.expires_at is None

    @pytest.mark.asyncio
    async def test_missing_expiry_is_fatal(self, http, server, clock):
        """Neither expiry field present means the token is refused."""
        server.token_payload = {"access_token": "abc"}
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match="expiration"):
            await cache.ensure_valid_token()

        assert cache.access_token is None

    @pytest.mark.asyncio
    async def test_non_success_status_is_fatal(self, http, server, clock):
        """A 401 from the token endpoint surfaces as AuthenticationError with details."""
        server.token_status = 401
        server.token_payload = {"error": "invalid_client"}
        transport, _ = make_transport(http, clock)

        with pytest.raises(AuthenticationError) as exc_info:
            await transport.post(API_URL, json={})

        assert exc_info.value.status_code == 401
        assert "invalid_client" in exc_info.value.body
        assert server.api_requests == []

    @pytest.mark.asyncio
    async def test_unreachable_token_endpoint(self, clock):
        """Connection failures on the token endpoint are authentication errors."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match="Unable to reach"):
            await cache.ensure_valid_token()

    @pytest.mark.asyncio
    async def test_failed_refresh_does_not_wedge_later_callers(self, http, server, clock):
        """After a failed refresh the next caller tries again and succeeds."""
        server.token_status = 500
        transport, _ = make_transport(http, clock)

        with pytest.raises(AuthenticationError):
            await transport.post(API_URL, json={})

        server.token_status = 200
        response = await transport.post(API_URL, json={})

        assert response.status_code == 200
        assert len(server.token_requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", [1e20, "inf", "nan", 10**12, -5, "soon"])
    async def test_unusable_expires_in_is_fatal(self, http, server, clock, expires_in):
        """Out-of-range, non-finite, negative or non-numeric expires_in raises AuthenticationError."""
        server.token_payload = {"access_token": "abc", "expires_in": expires_in}
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match="unreadable expiry"):
            await cache.ensure_valid_token()

        assert cache.access_token is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_at", ["not-a-date", "2025-13-45T99:00:00Z", "0001-01-01T00:00:00Z"])
    async def test_unusable_absolute_expiry_is_fatal(self, http, server, clock, expires_at):
        """An unparsable or out-of-range token_expires_date_time raises AuthenticationError."""
        server.token_payload = {"access_token": "abc", "token_expires_date_time": expires_at}
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match="unreadable expiry"):
            await cache.ensure_valid_token()

    @pytest.mark.asyncio
    async def test_naive_absolute_expiry_treated_as_utc(self, http, server, clock):
        """A timestamp without an offset is read as UTC."""
        server.token_payload = {"access_token": "abc", "token_expires_date_time": "2025-01-01T12:10:00"}
        _, cache = make_transport(http, clock, refresh_offset=30)

        await cache.ensure_valid_token()

        assert cache.expires_at == datetime(2025, 1, 1, 12, 10, tzinfo=UTC) - timedelta(seconds=30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response, message",
        [
            (httpx.Response(200, text="<html>login</html>"), "not valid JSON"),
            (httpx.Response(200, json=["abc", 3600]), "not a JSON object"),
        ],
    )
    async def test_malformed_token_body_is_fatal(self, clock, response, message):
        """A token body that is not a JSON object raises AuthenticationError."""
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
        _, cache = make_transport(http, clock)

        with pytest.raises(AuthenticationError, match=message) as exc_info:
            await cache.ensure_valid_token()

        assert exc_info.value.status_code == 200

    def test_negative_offset_rejected(self, http):
        """The refresh offset cannot be negative."""
        with pytest.raises(ValueError):
            TokenCache(http, TOKEN_URL, "id", "secret", refresh_offset=-1)

    def test_credentials_required(self, http):
        """Empty credentials are rejected up front."""
        with pytest.raises(ValueError):
            TokenCache(http, TOKEN_URL, "", "secret")
        with pytest.raises(ValueError):
            TokenCache(http, TOKEN_URL, "id", "")


class TestTokenCaching:
    """Tests for reuse and refresh timing."""

    @pytest.mark.asyncio
    async def test_token_reused_until_early_expiry(self, http, server, clock):
        """expires_in=120 with offset 60: refresh at t=0, reuse at t=30, refresh at t=61."""
        server.token_payload = {"access_token": "token-1", "expires_in": 120}
        transport, _ = make_transport(http, clock, refresh_offset=60)

        await transport.post(API_URL, json={})
        assert len(server.token_requests) == 1

        clock.advance(30)
        await transport.post(API_URL, json={})
        assert len(server.token_requests) == 1

        clock.advance(31)
        await transport.post(API_URL, json={})
        assert len(server.token_requests) == 2
        assert server.api_requests[-1].headers["authorization"] == "Bearer token-2"

    @pytest.mark.asyncio
    async def test_concurrent_dispatch_fetches_one_token(self, http, server, clock):
        """N concurrent calls on an empty cache produce exactly one token request."""
        server.token_delay = 0.05
        transport, _ = make_transport(http, clock)

        responses = await asyncio.gather(*(transport.post(API_URL, json={"n": n}) for n in range(10)))

        assert len(server.token_requests) == 1
        assert all(response.status_code == 200 for response in responses)
        assert {request.headers["authorization"] for request in server.api_requests} == {"Bearer token-1"}

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self, http, server, clock):
        """invalidate() empties the cache so the next call fetches again."""
        transport, cache = make_transport(http, clock)

        await transport.get(API_URL)
        cache.invalidate()
        await transport.get(API_URL)

        assert len(server.token_requests) == 2

    @pytest.mark.asyncio
    async def test_separate_caches_are_independent(self, http, server, clock):
        """Two caches never share a token."""
        _, first = make_transport(http, clock)
        _, second = make_transport(http, clock)

        assert await first.ensure_valid_token() == "token-1"
        assert await second.ensure_valid_token() == "token-2"

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_refresh_running(self, http, server, clock):
        """Cancelling the caller that started a refresh does not cancel it for the others."""
        server.token_delay = 0.1
        _, cache = make_transport(http, clock)

        first = asyncio.create_task(cache.ensure_valid_token())
        await asyncio.sleep(0.02)
        second = asyncio.create_task(cache.ensure_valid_token())
        await asyncio.sleep(0.02)
        first.cancel()

        assert await second == "token-1"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert len(server.token_requests) == 1
        assert cache.is_valid()

    @pytest.mark.asyncio
    async def test_failed_shared_refresh_reaches_every_waiter(self, http, server, clock):
        """All callers waiting on one failed refresh see the failure, and the next call retries."""
        server.token_delay = 0.05
        server.token_status = 503
        _, cache = make_transport(http, clock)

        results = await asyncio.gather(*(cache.ensure_valid_token() for _ in range(3)), return_exceptions=True)

        assert all(isinstance(result, AuthenticationError) for result in results)
        assert len(server.token_requests) == 1

        server.token_status = 200
        assert await cache.ensure_valid_token() == "token-2"


class TestOAuthHttpClient:
    """Tests for request decoration and error surfacing."""

    @pytest.mark.asyncio
    async def test_attaches_bearer_and_default_headers(self, http, server, clock):
        """Every request carries the bearer token and the default headers."""
        transport, _ = make_transport(http, clock)

        await transport.put(API_URL, json={"a": 1}, headers={"X-Trace": "t1"})

        request = server.api_requests[0]
        assert request.method == "PUT"
        assert request.headers["authorization"] == "Bearer token-1"
        assert request.headers["user-agent"] == "tests/1.0"
        assert request.headers["x-trace"] == "t1"

    @pytest.mark.asyncio
    async def test_error_responses_returned_unmodified(self, http, server, clock):
        """A 500 from the API is returned, not raised."""
        server.api_status = 500
        server.api_body = "boom"
        transport, _ = make_transport(http, clock)

        response = await transport.delete(API_URL)

        assert response.status_code == 500
        assert response.text == "boom"

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self, clock):
        """Connection failures on the API call raise TransportError."""

        def handler(request):
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "abc", "expires_in": 3600})
            raise httpx.ConnectError("reset by peer", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport, _ = make_transport(http, clock)

        with pytest.raises(TransportError):
            await transport.post(API_URL, json={})
