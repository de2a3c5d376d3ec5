"""Session records tracked by the broker."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import SessionKind, SessionStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Schema serialized with camelCase keys, accepting snake_case names on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Session(CamelModel):
    """
    A payment (or account-access) session.

    Keyed by the upstream payment id, or by the local correlation token when
    the upstream omitted one. Amount, currency and counterparty fields are set
    at creation and never changed. `status` starts as "pending" and is
    overwritten verbatim by the upstream status on every successful poll, so
    callers must not assume transitions are monotonic.
    """

    id: str
    kind: SessionKind = SessionKind.PAYMENT
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    creditor_iban: Optional[str] = None
    creditor_name: Optional[str] = None
    reference: Optional[str] = None
    bank_name: str
    bank_country: str

    status: str = SessionStatus.PENDING.value
    auth_url: Optional[str] = None
    correlation_token: str
    session_id: Optional[str] = None  # upstream session id, used for status polling
    auth_code: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
