"""Tests for application wiring."""

import base64

import pytest

from app.config import Settings
from app.engine.errors import SigningError
from app.main import build_orchestrator, build_upstream_client
from app.providers.enable_banking import EnableBankingClient
from app.providers.mock_provider import MockBankingClient


def test_mock_mode():
    client = build_upstream_client(Settings(use_mock_upstream=True, mock_latency_ms=0))
    assert isinstance(client, MockBankingClient)


@pytest.mark.asyncio
async def test_configured_credentials(encoded_key):
    client = build_upstream_client(Settings(enable_banking_app_id="app-1", enable_banking_private_key=encoded_key))
    assert isinstance(client, EnableBankingClient)
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_credentials_still_start():
    client = build_upstream_client(Settings(enable_banking_app_id=None, enable_banking_private_key=None))
    assert isinstance(client, EnableBankingClient)
    await client.aclose()


def test_malformed_key_fails_startup():
    with pytest.raises(SigningError):
        build_upstream_client(
            Settings(enable_banking_app_id="app-1", enable_banking_private_key=base64.b64encode(b"junk").decode())
        )


def test_orchestrator_uses_configured_redirect():
    config = Settings(redirect_url="https://example.test/callback", use_mock_upstream=True)
    orchestrator = build_orchestrator(config, MockBankingClient(latency_ms=0))
    assert orchestrator.list_payments() == []
