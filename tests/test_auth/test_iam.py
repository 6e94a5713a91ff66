"""Tests for IAMAuthenticator."""

from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from httpchain.auth.iam import DEFAULT_GRANT_TYPE, DEFAULT_URL, IAMAuthenticator
from httpchain.config import RetryConfig
from httpchain.exceptions import AuthenticationError, ConfigError
from httpchain.http.handlers import BodyHandlers
from httpchain.http.request import Request
from httpchain.http.sync_client import SyncHttpClient
from httpchain.interceptors.bearer import BearerInterceptor
from httpchain.interceptors.retry import RetryInterceptor


class FakeIdentityEndpoint:
    """Issues tokens ``tok-1``, ``tok-2``, ... each valid until *expiration*."""

    def __init__(self, expiration: int = 1_000, status: int = 200) -> None:
        self.expiration = expiration
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(
                self.status,
                json={"errorCode": "BXNIM0415E", "errorMessage": "Provided API key could not be found."},
            )
        return httpx.Response(
            200,
            json={
                "access_token": f"tok-{len(self.requests)}",
                "refresh_token": "not_supported",
                "token_type": "Bearer",
                "expires_in": 3600,
                "expiration": self.expiration,
            },
        )


class Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _authenticator(endpoint: FakeIdentityEndpoint, clock: Clock, **kwargs) -> IAMAuthenticator:
    return IAMAuthenticator(
        "my-key",
        http_client=httpx.Client(transport=httpx.MockTransport(endpoint)),
        async_http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
        clock=clock,
        **kwargs,
    )


class TestConstruction:
    def test_defaults(self) -> None:
        auth = IAMAuthenticator("key")
        assert auth.url == DEFAULT_URL
        assert auth.grant_type == DEFAULT_GRANT_TYPE
        assert auth.timeout == 10

    def test_empty_api_key_rejected(self) -> None:
        with pytest.raises(ConfigError):
            IAMAuthenticator("")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ConfigError):
            IAMAuthenticator("key", timeout=0)

    def test_from_source_env(self, monkeypatch) -> None:
        monkeypatch.setenv("IAM_KEY_FOR_TEST", "from-env")
        endpoint = FakeIdentityEndpoint()
        auth = IAMAuthenticator.from_source(
            "env:IAM_KEY_FOR_TEST", http_client=httpx.Client(transport=httpx.MockTransport(endpoint))
        )
        auth.token()
        assert parse_qs(endpoint.requests[0].content.decode())["apikey"] == ["from-env"]

    def test_from_source_missing_env(self, monkeypatch) -> None:
        monkeypatch.delenv("IAM_KEY_MISSING", raising=False)
        with pytest.raises(ConfigError):
            IAMAuthenticator.from_source("env:IAM_KEY_MISSING")


class TestSyncToken:
    def test_token_request_is_form_encoded(self) -> None:
        endpoint = FakeIdentityEndpoint()
        auth = _authenticator(endpoint, Clock())

        assert auth.token() == "tok-1"

        sent = endpoint.requests[0]
        assert sent.method == "POST"
        assert str(sent.url) == DEFAULT_URL
        assert sent.headers["content-type"] == "application/x-www-form-urlencoded"
        assert parse_qs(sent.content.decode()) == {"grant_type": [DEFAULT_GRANT_TYPE], "apikey": ["my-key"]}

    def test_valid_token_is_cached(self) -> None:
        endpoint = FakeIdentityEndpoint(expiration=1_000)
        clock = Clock(now=500)
        auth = _authenticator(endpoint, clock)

        auth.token()
        assert auth.token() == "tok-1"
        assert len(endpoint.requests) == 1

    def test_expired_token_triggers_one_refresh(self) -> None:
        endpoint = FakeIdentityEndpoint(expiration=1_000)
        clock = Clock(now=500)
        auth = _authenticator(endpoint, clock)
        auth.token()

        clock.now = 1_000
        endpoint.expiration = 5_000

        assert auth.token() == "tok-2"
        assert len(endpoint.requests) == 2
        assert auth.cached_token is not None
        assert auth.cached_token.expiration == 5_000

    def test_rejected_key_raises_authentication_error(self) -> None:
        auth = _authenticator(FakeIdentityEndpoint(status=400), Clock())

        with pytest.raises(AuthenticationError) as exc_info:
            auth.token()

        assert exc_info.value.status_code == 400
        assert exc_info.value.has_error_code("BXNIM0415E")
        assert auth.cached_token is None


class TestAsyncToken:
    @pytest.mark.asyncio
    async def test_refresh_and_cache(self) -> None:
        endpoint = FakeIdentityEndpoint(expiration=1_000)
        clock = Clock(now=0)
        auth = _authenticator(endpoint, clock)

        assert await auth.token_async() == "tok-1"
        assert await auth.token_async() == "tok-1"
        assert len(endpoint.requests) == 1

        clock.now = 2_000
        assert await auth.token_async() == "tok-2"
        assert len(endpoint.requests) == 2

    @pytest.mark.asyncio
    async def test_rejected_key_raises(self) -> None:
        auth = _authenticator(FakeIdentityEndpoint(status=401), Clock())
        with pytest.raises(AuthenticationError):
            await auth.token_async()


class TestClose:
    def test_close_releases_owned_client(self) -> None:
        auth = IAMAuthenticator("my-key")
        auth.close()
        assert auth._sync_transport._client.is_closed

    @pytest.mark.asyncio
    async def test_aclose_releases_owned_client(self) -> None:
        auth = IAMAuthenticator("my-key")
        await auth.aclose()
        assert auth._async_transport._client.is_closed

    @pytest.mark.asyncio
    async def test_injected_clients_stay_open(self) -> None:
        http_client = httpx.Client()
        async_http_client = httpx.AsyncClient()
        auth = IAMAuthenticator("my-key", http_client=http_client, async_http_client=async_http_client)

        auth.close()
        await auth.aclose()

        assert not http_client.is_closed
        assert not async_http_client.is_closed
        http_client.close()
        await async_http_client.aclose()


class TestExpiredTokenRecovery:
    def test_retry_refreshes_token_through_bearer(self) -> None:
        clock = Clock(now=0)
        endpoint = FakeIdentityEndpoint(expiration=1_000)
        auth = _authenticator(endpoint, clock)
        seen: list[str] = []

        def api(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["authorization"])
            if len(seen) == 1:
                clock.now = 2_000
                endpoint.expiration = 9_000
                return httpx.Response(
                    401,
                    content=json.dumps(
                        {
                            "status_code": 401,
                            "trace": "t",
                            "errors": [{"code": "authentication_token_expired", "message": "expired"}],
                        }
                    ),
                    headers={"content-type": "application/json"},
                )
            return httpx.Response(200, text="models")

        client = SyncHttpClient(
            interceptors=[
                RetryInterceptor.on_token_expired(RetryConfig(token_expired_max_retries=2)),
                BearerInterceptor(auth),
            ],
            http_client=httpx.Client(transport=httpx.MockTransport(api)),
        )

        response = client.send(Request("GET", "https://api.example.com/v1/models"), BodyHandlers.text())

        assert response.body == "models"
        assert seen == ["Bearer tok-1", "Bearer tok-2"]
