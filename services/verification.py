"""Server-side Cloudflare Turnstile verification."""
from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from app.config import Settings
from app.exceptions import MisconfigurationError, SubmissionRejected, UpstreamServiceError

logger = structlog.get_logger()


class HumanVerifier(Protocol):
    async def verify(self, token: str, remote_ip: str) -> None: ...


class TurnstileVerifier:
    """Check a Turnstile response token with Cloudflare's siteverify endpoint."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    async def verify(self, token: str, remote_ip: str) -> None:
        """Return quietly when the token is valid, raise otherwise."""

        secret = self.settings.turnstile_secret_key
        if not secret:
            raise MisconfigurationError("TURNSTILE_SECRET_KEY is not set")

        data = {"secret": secret, "response": token, "remoteip": remote_ip}
        try:
            if self._client is not None:
                response = await self._client.post(self.settings.turnstile_verify_url, data=data)
            else:
                async with httpx.AsyncClient(timeout=self.settings.http_timeout_seconds) as client:
                    response = await client.post(self.settings.turnstile_verify_url, data=data)
            response.raise_for_status()
            outcome = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(f"Turnstile request failed: {exc!r}") from exc
        except ValueError as exc:
            raise UpstreamServiceError(f"Turnstile returned invalid JSON: {exc}") from exc

        if not outcome.get("success"):
            logger.info(
                "Turnstile rejected token",
                error_codes=outcome.get("error-codes", []),
                remote_ip=remote_ip,
            )
            raise SubmissionRejected("Turnstile verification failed")
