"""
Payment orchestrator - the core of the broker.

Coordinates the three flows that touch a bank session:

  1. Creation: validate input → build the upstream request → one signed
     call (never retried) → persist a "pending" session
  2. Status: read the session → poll upstream (retried, best effort) →
     overwrite the local status with whatever upstream reports
  3. Callback: match the echoed correlation token to a session → mark it
     "authorized" and record the authorization code, once

State machine:
  pending ──callback(code)──▶ authorized
  any     ──status poll────▶ <upstream status, verbatim>

Error callbacks never mutate a session and never look one up: the bank may
echo a token for a session that never got a resolvable id. Callbacks that
match nothing are orphans, accepted without bookkeeping.

The store lock is never held across an upstream call. A status poll reads
the session, awaits the network, then writes in a second critical section;
two concurrent polls race last-writer-wins, which is fine since both carry
the upstream's answer.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from app.audit.logger import append_note, log_event
from app.engine.errors import BrokerError, SessionNotFound, ValidationError
from app.engine.retry import with_retry
from app.engine.validation import check_access, check_payment, normalize_country, to_decimal
from app.models.enums import SessionKind, SessionStatus, TokenPrefix
from app.models.session import Session
from app.providers.base import UpstreamClient
from app.store.session_store import SessionStore

logger = logging.getLogger("payflow.orchestrator")

DEFAULT_REFERENCE = "Payment"
PSU_TYPE = "personal"
PAYMENT_TYPE = "SEPA"


@dataclass
class PaymentCreated:
    id: str
    auth_url: Optional[str]
    session: Session


@dataclass
class AccessConnection:
    auth_url: Optional[str]
    session_id: Optional[str]
    correlation_token: str


@dataclass
class CallbackOutcome:
    """What the bank redirect should be shown. Always rendered with HTTP 200."""

    success: bool
    state: Optional[str] = None
    code_received: bool = False
    error: Optional[str] = None
    error_description: Optional[str] = None
    session_id: Optional[str] = None  # matched session; None for errors and orphans
    replay: bool = False


def _as_dict(data: Any) -> dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _decimal_string(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


class PaymentOrchestrator:
    """
    Args:
        client: Upstream open-banking client.
        store: Session store; the orchestrator is its only writer.
        redirect_url: Where the bank sends the user back to.
        currency: Fixed settlement currency for payments.
        access_validity_days: Lifetime of account-access consents.
        status_max_retries: Retries for status polling.
        status_retry_base_delay: First backoff delay for status polling.
        clock: Seconds since the epoch, injectable for tests.
    """

    def __init__(
        self,
        client: UpstreamClient,
        store: SessionStore,
        *,
        redirect_url: str,
        currency: str = "EUR",
        access_validity_days: int = 90,
        status_max_retries: int = 2,
        status_retry_base_delay: float = 0.5,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self._store = store
        self._redirect_url = redirect_url
        self._currency = currency
        self._access_validity_days = access_validity_days
        self._status_max_retries = status_max_retries
        self._status_retry_base_delay = status_retry_base_delay
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def new_correlation_token(self, prefix: TokenPrefix) -> str:
        # payment_<ms>_<hex>; the prefix is what callbacks are matched on
        return f"{prefix.value}{self._now_ms()}_{secrets.token_hex(3)}"

    async def list_banks(self, country: Optional[str]) -> Any:
        """List ASPSPs for a two-letter country code (case-insensitive)."""
        code = normalize_country(country)
        if code is None:
            raise ValidationError(f"Invalid country code: {country}", fields=["country"])

        logger.info("Fetching banks for country: %s", code)
        return await self._client.call("GET", "/aspsps", params={"country": code})

    async def create_payment(
        self,
        *,
        amount: Any,
        creditor_iban: Optional[str],
        creditor_name: Optional[str],
        bank_name: Optional[str],
        bank_country: Optional[str],
        reference: Optional[str] = None,
    ) -> PaymentCreated:
        """
        Start a payment-initiation flow at the payer's bank.

        Raises:
            ValidationError: Before any upstream call, if input is incomplete.
            SigningError, UpstreamError, NetworkError: From the single upstream call.
        """
        result = check_payment(amount, creditor_iban, creditor_name, bank_name, bank_country)
        if not result.valid:
            logger.info("Payment request rejected: %s (%s)", result.message, ", ".join(result.fields))
            raise ValidationError(result.message, fields=result.fields)

        value = to_decimal(amount)
        country = normalize_country(bank_country)
        token = self.new_correlation_token(TokenPrefix.PAYMENT)
        request = self._payment_request(value, creditor_iban, creditor_name, reference, bank_name, country, token)

        logger.info("Creating payment session at %s (%s) for %s %s", bank_name, country, value, self._currency)
        data = _as_dict(await self._client.call("POST", "/payments", request))

        payment_id = data.get("payment_id")
        if not payment_id:
            logger.warning("Upstream returned no payment_id, keying session by %s", token)
            payment_id = token
        upstream_session_id = data.get("session_id")

        session = Session(
            id=str(payment_id),
            kind=SessionKind.PAYMENT,
            amount=value,
            currency=self._currency,
            creditor_iban=creditor_iban,
            creditor_name=creditor_name,
            reference=reference,
            bank_name=bank_name,
            bank_country=country,
            status=SessionStatus.PENDING.value,
            auth_url=data.get("url"),
            correlation_token=token,
            session_id=str(upstream_session_id) if upstream_session_id else None,
        )
        session.notes = append_note(None, f"Payment session created at {bank_name} ({country})")
        self._store.put(session)

        log_event("payment_created", session_id=session.id, details={
            "state": token,
            "upstream_session_id": session.session_id,
            "amount": _decimal_string(value),
            "currency": self._currency,
            "bank": bank_name,
            "country": country,
        })
        return PaymentCreated(id=session.id, auth_url=session.auth_url, session=session)

    def _payment_request(
        self,
        amount: Decimal,
        creditor_iban: str,
        creditor_name: str,
        reference: Optional[str],
        bank_name: str,
        bank_country: str,
        token: str,
    ) -> dict[str, Any]:
        stamp = self._now_ms()
        return {
            "aspsp": {"name": bank_name, "country": bank_country},
            "state": token,
            "redirect_url": self._redirect_url,
            "psu_type": PSU_TYPE,
            "payment_type": PAYMENT_TYPE,
            "payment_request": {
                "credit_transfer_transaction": [{
                    "instruction_id": f"INS{stamp}",
                    "end_to_end_id": f"E2E{stamp}",
                    "beneficiary": {
                        "creditor": {"name": creditor_name},
                        "creditor_account": {"scheme_name": "IBAN", "identification": creditor_iban},
                    },
                    "instructed_amount": {"currency": self._currency, "amount": _decimal_string(amount)},
                    "remittance_information_unstructured": reference or DEFAULT_REFERENCE,
                }],
            },
        }

    async def create_access_connection(
        self,
        *,
        bank_name: Optional[str],
        bank_country: Optional[str],
    ) -> AccessConnection:
        """
        Start an account-access (AIS) flow.

        Nothing is stored locally: access sessions are plain redirects, and
        their callbacks are treated as orphans.
        """
        result = check_access(bank_name, bank_country)
        if not result.valid:
            raise ValidationError(result.message, fields=result.fields)

        country = normalize_country(bank_country)
        token = self.new_correlation_token(TokenPrefix.ACCESS)
        valid_until = (
            datetime.fromtimestamp(self._clock(), timezone.utc) + timedelta(days=self._access_validity_days)
        ).date().isoformat()

        request = {
            "aspsp": {"name": bank_name, "country": country},
            "state": token,
            "redirect_url": self._redirect_url,
            "access": {"valid_until": valid_until},
        }
        data = _as_dict(await self._client.call("POST", "/auth", request))

        log_event("access_requested", details={
            "state": token,
            "upstream_session_id": data.get("session_id"),
            "bank": bank_name,
            "country": country,
            "valid_until": valid_until,
        })
        return AccessConnection(auth_url=data.get("url"), session_id=data.get("session_id"), correlation_token=token)

    async def get_status(self, session_id: str) -> Session:
        """
        Return a session, reconciled with upstream when possible.

        Reconciliation is advisory: a failed poll is logged and the last known
        local state is returned.

        Raises:
            SessionNotFound: Unknown id.
        """
        session = self._store.get(session_id)
        if not session.session_id:
            return session

        try:
            data = await with_retry(
                self._client.call,
                "GET",
                f"/payments/{session.session_id}",
                max_retries=self._status_max_retries,
                base_delay=self._status_retry_base_delay,
            )
        except BrokerError as e:
            logger.error("Error checking payment status for %s: %s", session_id, e)
            return session

        upstream_status = _as_dict(data).get("status")
        if not upstream_status:
            return session

        upstream_status = str(upstream_status)
        previous: dict[str, str] = {}

        def overwrite(draft: Session) -> bool:
            if draft.status == upstream_status:
                return False
            previous["status"] = draft.status
            draft.status = upstream_status
            draft.notes = append_note(draft.notes, f"Status from upstream: {upstream_status}")
            return True

        updated = self._store.update(session_id, overwrite)
        if previous:
            log_event("status_overwritten", session_id=session_id, details={
                "from": previous["status"],
                "to": upstream_status,
            })
        return updated

    def list_payments(self) -> list[Session]:
        return sorted(
            (s for s in self._store.list() if s.kind == SessionKind.PAYMENT),
            key=lambda s: s.created_at,
        )

    def handle_callback(
        self,
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> CallbackOutcome:
        """
        Ingest a bank redirect.

        Never raises for bookkeeping reasons: the user at the end of a bank
        redirect must always see a terminal page.
        """
        logger.info(
            "Received callback: code=%s state=%s error=%s",
            "present" if code else "missing",
            state,
            error,
        )

        if error:
            log_event("callback_error", details={
                "state": state,
                "error": error,
                "error_description": error_description,
            })
            return CallbackOutcome(
                success=False,
                state=state,
                error=error,
                error_description=error_description,
            )

        outcome = CallbackOutcome(success=True, state=state, code_received=bool(code))
        if not state or not state.startswith(TokenPrefix.PAYMENT.value):
            return outcome

        try:
            session = self._store.find_by_correlation_token(state)
        except SessionNotFound:
            logger.warning("Orphan callback, no session for state %s", state)
            return outcome

        applied = []

        def authorize(draft: Session) -> bool:
            if draft.auth_code is not None or draft.status == SessionStatus.AUTHORIZED.value:
                return False
            applied.append(draft.status)
            draft.status = SessionStatus.AUTHORIZED.value
            draft.auth_code = code
            draft.notes = append_note(draft.notes, "Authorized by bank callback")
            return True

        updated = self._store.update(session.id, authorize)
        outcome.session_id = updated.id

        if not applied:
            outcome.replay = True
            logger.info("Replayed callback for %s, state unchanged", updated.id)
        else:
            log_event("payment_authorized", session_id=updated.id, details={"from": applied[0], "state": state})
        return outcome
