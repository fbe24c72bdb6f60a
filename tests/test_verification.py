"""Tests for the Turnstile client."""

from urllib.parse import parse_qs

import httpx
import pytest

from app.config import TURNSTILE_VERIFY_URL
from app.exceptions import MisconfigurationError, SubmissionRejected, UpstreamServiceError
from services.verification import TurnstileVerifier


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestTurnstileVerifier:
    async def test_success_sends_secret_token_and_ip(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as client:
            await TurnstileVerifier(settings, client=client).verify("tok", "203.0.113.7")

        assert seen["url"] == TURNSTILE_VERIFY_URL
        assert seen["form"] == {"secret": ["test-secret"], "response": ["tok"], "remoteip": ["203.0.113.7"]}

    async def test_unsuccessful_token_is_client_error(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error-codes": ["invalid-input-response"]})

        async with _client(handler) as client:
            with pytest.raises(SubmissionRejected, match="Turnstile verification failed"):
                await TurnstileVerifier(settings, client=client).verify("tok", "")

    async def test_missing_secret_skips_network(self, settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"success": True})

        settings = settings.model_copy(update={"turnstile_secret_key": None})
        async with _client(handler) as client:
            with pytest.raises(MisconfigurationError):
                await TurnstileVerifier(settings, client=client).verify("tok", "")
        assert calls == []

    async def test_server_error_is_upstream_failure(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        async with _client(handler) as client:
            with pytest.raises(UpstreamServiceError):
                await TurnstileVerifier(settings, client=client).verify("tok", "")

    async def test_timeout_is_upstream_failure(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(UpstreamServiceError):
                await TurnstileVerifier(settings, client=client).verify("tok", "")

    async def test_garbage_body_is_upstream_failure(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        async with _client(handler) as client:
            with pytest.raises(UpstreamServiceError):
                await TurnstileVerifier(settings, client=client).verify("tok", "")
