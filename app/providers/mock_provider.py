"""
Mock open-banking client for demos and tests.

Answers the same endpoints the broker uses with realistic canned data:
  - GET  /aspsps            → a short bank list for the requested country
  - POST /payments          → payment_id, session_id and an authorization url
  - GET  /payments/{id}     → the configured upstream status
  - POST /auth              → session_id and an authorization url

Every call is recorded, responses can be overridden per (method, path) and
a failure can be injected, so tests can assert on call counts and on how
the orchestrator reacts to upstream errors.
"""

import asyncio
import random
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from app.config import settings
from app.engine.errors import BrokerError
from app.providers.base import UpstreamClient


@dataclass
class RecordedCall:
    method: str
    path: str
    body: Optional[dict[str, Any]] = None
    params: Optional[dict[str, Any]] = None


MOCK_BANKS = {
    "FI": ["Nordea", "OP", "Danske Bank"],
    "SE": ["Nordea", "SEB", "Swedbank"],
    "DE": ["Deutsche Bank", "Commerzbank", "N26"],
}


class MockBankingClient(UpstreamClient):
    """
    In-process stand-in for the Enable Banking API.

    Args:
        latency_ms: Simulated latency per call (jittered).
        payment_status: Status string reported by GET /payments/{id}.
        responses: Overrides keyed by (method, path).
        fail_with: Error raised by every call until cleared.
    """

    def __init__(
        self,
        latency_ms: Optional[int] = None,
        payment_status: Optional[str] = "RCVD",
        responses: Optional[dict[tuple[str, str], Any]] = None,
        fail_with: Optional[BrokerError] = None,
    ):
        self._latency_ms = latency_ms if latency_ms is not None else settings.mock_latency_ms
        self.payment_status = payment_status
        self.responses = dict(responses or {})
        self.fail_with = fail_with
        self.calls: list[RecordedCall] = []

    @property
    def name(self) -> str:
        return "mock_enable_banking"

    def calls_to(self, method: str, path_prefix: str = "") -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path.startswith(path_prefix)]

    async def call(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        self.calls.append(RecordedCall(method=method, path=path, body=body, params=params))

        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        if self.fail_with is not None:
            raise self.fail_with

        if (method, path) in self.responses:
            return self.responses[(method, path)]

        return self._default_response(method, path, params)

    def _default_response(self, method: str, path: str, params: Optional[dict[str, Any]]) -> Any:
        if method == "GET" and path == "/aspsps":
            country = (params or {}).get("country", "")
            return {"aspsps": [{"name": n, "country": country} for n in MOCK_BANKS.get(country, [])]}

        if method == "POST" and path == "/payments":
            payment_id = f"pay_{uuid.uuid4().hex[:16]}"
            return {
                "payment_id": payment_id,
                "session_id": f"ses_{uuid.uuid4().hex[:16]}",
                "url": f"https://mock-bank.local/authorize/{payment_id}",
            }

        if method == "GET" and path.startswith("/payments/"):
            return {"status": self.payment_status} if self.payment_status else {}

        if method == "POST" and path == "/auth":
            session_id = f"ses_{uuid.uuid4().hex[:16]}"
            return {"session_id": session_id, "url": f"https://mock-bank.local/authorize/{session_id}"}

        return {}
