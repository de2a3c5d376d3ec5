"""
Payment endpoints.

POST /payments      - Start a payment at the payer's bank.
GET  /payments      - List all tracked payments.
GET  /payments/{id} - Get a payment, reconciled with upstream when possible.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import get_orchestrator
from app.engine.errors import ValidationError
from app.engine.orchestrator import PaymentOrchestrator
from app.models.session import CamelModel, Session

router = APIRouter(prefix="/payments", tags=["payments"])


class PaymentRequest(CamelModel):
    # All optional so missing fields reach the orchestrator's check and get a 400 envelope
    amount: Optional[Decimal] = None
    creditor_iban: Optional[str] = None
    creditor_name: Optional[str] = None
    reference: Optional[str] = None
    bank_name: Optional[str] = None
    bank_country: Optional[str] = None


class PaymentCreatedResponse(CamelModel):
    success: bool = True
    payment_id: str
    auth_url: Optional[str]
    payment: Session


@router.post("", response_model=PaymentCreatedResponse)
async def create_payment(
    body: PaymentRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    """Create a payment session; the caller redirects the user to authUrl."""
    try:
        created = await orchestrator.create_payment(
            amount=body.amount,
            creditor_iban=body.creditor_iban,
            creditor_name=body.creditor_name,
            reference=body.reference,
            bank_name=body.bank_name,
            bank_country=body.bank_country,
        )
    except ValidationError as e:
        e.received = body.model_dump(by_alias=True, mode="json", exclude_none=True)
        raise

    return PaymentCreatedResponse(payment_id=created.id, auth_url=created.auth_url, payment=created.session)


@router.get("", response_model=list[Session])
async def list_payments(orchestrator: PaymentOrchestrator = Depends(get_orchestrator)):
    return orchestrator.list_payments()


@router.get("/{payment_id}", response_model=Session)
async def get_payment(payment_id: str, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)):
    """
    Get a payment.

    If the session has an upstream id, upstream is polled first and its status
    replaces the local one. A failed poll still returns the last known state.
    """
    return await orchestrator.get_status(payment_id)
