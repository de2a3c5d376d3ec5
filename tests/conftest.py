"""Shared test fixtures."""

import base64

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_orchestrator
from app.auth.signer import AssertionSigner
from app.engine.orchestrator import PaymentOrchestrator
from app.main import app
from app.models.session import Session
from app.providers.mock_provider import MockBankingClient
from app.store.session_store import InMemorySessionStore

APP_ID = "0f1e2d3c-aaaa-bbbb-cccc-123456789abc"
REDIRECT_URL = "https://broker.test/callback"
NOW = 1_735_689_600.0  # 2025-01-01T00:00:00Z


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def encoded_key(rsa_key) -> str:
    pem = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(pem).decode()


@pytest.fixture
def signer(rsa_key) -> AssertionSigner:
    return AssertionSigner(APP_ID, rsa_key)


@pytest.fixture
def mock_client() -> MockBankingClient:
    return MockBankingClient(latency_ms=0)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def orchestrator(mock_client, store) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        mock_client,
        store,
        redirect_url=REDIRECT_URL,
        status_max_retries=2,
        status_retry_base_delay=0,
        clock=lambda: NOW,
    )


@pytest.fixture
def pending_session() -> Session:
    """A pending payment keyed by its own correlation token."""
    return Session(
        id="payment_12345",
        amount="100",
        currency="EUR",
        creditor_iban="FI2112345600000785",
        creditor_name="Jane Doe",
        bank_name="Nordea",
        bank_country="FI",
        correlation_token="payment_12345",
    )


@pytest_asyncio.fixture
async def api_client(orchestrator):
    """HTTP client bound to the app, with the orchestrator under test injected."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_orchestrator, None)
