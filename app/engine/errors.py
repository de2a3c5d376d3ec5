"""
Error taxonomy for the payment broker.

Every failure the orchestrator can surface derives from BrokerError and
carries the HTTP status the API layer should answer with:

  ValidationError  400  caller-fixable, missing or malformed input
  SessionNotFound  404  unknown payment/session id
  SigningError     500  key material missing or unusable
  UpstreamError    500  upstream answered with a non-success status
  NetworkError     500  upstream unreachable or its response unreadable
"""

from typing import Any, Optional


class BrokerError(Exception):
    """Base exception for all broker failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(BrokerError):
    status_code = 400

    def __init__(self, message: str, fields: Optional[list[str]] = None, received: Optional[dict] = None):
        super().__init__(message)
        self.fields = fields or []
        self.received = received

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.fields:
            payload["fields"] = self.fields
        if self.received is not None:
            payload["received"] = self.received
        return payload


class SessionNotFound(BrokerError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("Payment not found")
        self.session_id = session_id


class SigningError(BrokerError):
    """Assertion could not be minted. Never downgraded to an unsigned call."""


class UpstreamError(BrokerError):
    """The open-banking API rejected the call."""

    def __init__(self, status: int, body: str):
        super().__init__(f"API error: {status} - {body}")
        self.status = status
        self.body = body

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["upstreamStatus"] = self.status
        return payload


class NetworkError(BrokerError):
    """No usable response was received from the open-banking API."""
