"""
Bank discovery and account-access endpoints.

GET  /banks/{country} - ASPSPs available in a country (upstream passthrough).
POST /connect         - Start an account-access flow.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import get_orchestrator
from app.models.session import CamelModel
from app.engine.orchestrator import PaymentOrchestrator

router = APIRouter(tags=["banks"])


class ConnectRequest(CamelModel):
    bank_name: Optional[str] = None
    bank_country: Optional[str] = None


class ConnectResponse(CamelModel):
    success: bool = True
    auth_url: Optional[str]
    session_id: Optional[str]


@router.get("/banks/{country}")
async def list_banks(country: str, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.list_banks(country)


@router.post("/connect", response_model=ConnectResponse)
async def connect_account(
    body: ConnectRequest,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    connection = await orchestrator.create_access_connection(
        bank_name=body.bank_name,
        bank_country=body.bank_country,
    )
    return ConnectResponse(auth_url=connection.auth_url, session_id=connection.session_id)
