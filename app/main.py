"""
PayFlow - Open-Banking Payment Broker.

Sits between a frontend and the Enable Banking API: signs every upstream
call with a short-lived assertion, starts payment and account-access
sessions at the user's bank, tracks payment authorization, and renders the
page the bank redirects the user back to.

Start the server:
    uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.banks import router as banks_router
from app.api.callback import router as callback_router
from app.api.errors import register_exception_handlers
from app.api.health import router as health_router
from app.api.payments import router as payments_router
from app.auth.signer import AssertionSigner
from app.config import Settings, settings
from app.engine.orchestrator import PaymentOrchestrator
from app.providers.base import UpstreamClient
from app.providers.enable_banking import EnableBankingClient
from app.providers.mock_provider import MockBankingClient
from app.store.session_store import InMemorySessionStore

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("payflow")


def build_upstream_client(config: Settings) -> UpstreamClient:
    """
    Build the upstream client for the configured mode.

    Raises:
        SigningError: If a private key is configured but unusable.
    """
    if config.use_mock_upstream:
        logger.warning("Using mock upstream, no calls leave this process")
        return MockBankingClient(latency_ms=config.mock_latency_ms)

    signer = AssertionSigner.from_encoded_key(
        config.enable_banking_app_id,
        config.enable_banking_private_key,
        ttl_seconds=config.assertion_ttl_seconds,
    )
    app_id = config.enable_banking_app_id
    logger.info("App ID: %s", f"{app_id[:8]}..." if app_id else "NOT SET")
    logger.info("Private Key: %s", "LOADED" if config.enable_banking_private_key else "NOT SET")
    if not signer.is_configured:
        logger.warning("Enable Banking credentials incomplete; upstream calls will fail")

    return EnableBankingClient.create(
        signer,
        base_url=config.api_base_url,
        timeout=config.upstream_timeout_seconds,
    )


def build_orchestrator(config: Settings, client: UpstreamClient) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        client,
        InMemorySessionStore(),
        redirect_url=config.redirect_url,
        currency=config.settlement_currency,
        access_validity_days=config.access_validity_days,
        status_max_retries=config.status_max_retries,
        status_retry_base_delay=config.status_retry_base_delay,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the upstream client and orchestrator; close the client on shutdown."""
    client = build_upstream_client(settings)
    app.state.orchestrator = build_orchestrator(settings, client)
    logger.info("Redirect URL: %s", settings.redirect_url)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(
    title="PayFlow",
    description=(
        "Open-banking payment broker. Initiates bank payments and account-access "
        "sessions through Enable Banking, tracks payment authorization, and "
        "handles the bank redirect callback."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(callback_router)
app.include_router(banks_router, prefix="/api")
app.include_router(payments_router, prefix="/api")

if Path(settings.static_dir).is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
