"""
Bank redirect target.

GET /callback - Always answers 200 with an HTML page: the user arriving
from the bank cannot retry an API call, so bookkeeping problems never leak
into the response.
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api.deps import get_orchestrator
from app.engine.orchestrator import PaymentOrchestrator

router = APIRouter(tags=["callback"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/callback", response_class=HTMLResponse)
async def bank_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    outcome = orchestrator.handle_callback(
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    template = "callback_success.html" if outcome.success else "callback_failure.html"
    return templates.TemplateResponse(request, template, {"outcome": outcome})
