"""
Enable Banking API client.

Wraps httpx with per-call signing and error normalization:
  - a fresh assertion is attached as a bearer token on every request
  - non-success statuses become UpstreamError with the raw body preserved
  - transport, decoding and timeout failures become NetworkError
  - a successful but non-JSON body is passed through as {"raw": text}

No retries happen here. Retry policy is the orchestrator's call.
"""

import logging
from typing import Any, Optional

import httpx

from app.auth.signer import AssertionSigner
from app.engine.errors import NetworkError, UpstreamError
from app.providers.base import UpstreamClient

logger = logging.getLogger("payflow.upstream")

LOGGED_BODY_CHARS = 500


class EnableBankingClient(UpstreamClient):
    def __init__(self, signer: AssertionSigner, http: httpx.AsyncClient):
        self._signer = signer
        self._http = http

    @classmethod
    def create(
        cls,
        signer: AssertionSigner,
        base_url: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "EnableBankingClient":
        http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        return cls(signer, http)

    @property
    def name(self) -> str:
        return "enable_banking"

    async def call(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        token = self._signer.mint()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        logger.info("%s %s", method, path)
        if body is not None:
            logger.debug("Request body: %s", body)

        try:
            response = await self._http.request(method, path, json=body, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Timeout calling %s %s: %s", method, path, e)
            raise NetworkError(f"Upstream timeout: {method} {path}") from e
        except httpx.HTTPError as e:
            logger.error("Transport error calling %s %s: %s", method, path, e)
            raise NetworkError(f"Upstream unreachable: {e}") from e

        text = response.text
        logger.info("Response status: %d", response.status_code)
        logger.debug("Response body: %s", text[:LOGGED_BODY_CHARS])

        if not response.is_success:
            logger.error("Enable Banking API error: %d - %s", response.status_code, text[:LOGGED_BODY_CHARS])
            raise UpstreamError(response.status_code, text)

        try:
            return response.json()
        except ValueError:
            return {"raw": text}

    async def aclose(self) -> None:
        await self._http.aclose()
