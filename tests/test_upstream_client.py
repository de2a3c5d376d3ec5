"""Tests for the Enable Banking HTTP client."""

import json

import httpx
import jwt
import pytest

from app.auth.signer import AssertionSigner
from app.engine.errors import NetworkError, SigningError, UpstreamError
from app.providers.enable_banking import EnableBankingClient

from conftest import APP_ID

BASE_URL = "https://api.enablebanking.test"


def make_client(signer, handler) -> EnableBankingClient:
    return EnableBankingClient.create(
        signer,
        base_url=BASE_URL,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_attaches_fresh_bearer_assertion(signer, rsa_key):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"ok": True})

    client = make_client(signer, handler)
    await client.call("GET", "/aspsps", params={"country": "FI"})
    await client.call("GET", "/aspsps", params={"country": "SE"})
    await client.aclose()

    assert len(seen) == 2
    scheme, token = seen[0].split(" ", 1)
    assert scheme == "Bearer"
    assert jwt.get_unverified_header(token)["kid"] == APP_ID
    jwt.decode(token, rsa_key.public_key(), algorithms=["RS256"], audience="api.enablebanking.com")


@pytest.mark.asyncio
async def test_sends_json_body_and_query(signer):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["content_type"] = request.headers["Content-Type"]
        captured["body"] = json.loads(request.content) if request.content else None
        return httpx.Response(200, json={"payment_id": "p1"})

    client = make_client(signer, handler)
    result = await client.call("POST", "/payments", {"state": "payment_1"})
    await client.aclose()

    assert result == {"payment_id": "p1"}
    assert captured["method"] == "POST"
    assert captured["url"] == f"{BASE_URL}/payments"
    assert captured["content_type"] == "application/json"
    assert captured["body"] == {"state": "payment_1"}


@pytest.mark.asyncio
async def test_query_params_are_encoded(signer):
    urls = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(request.url)
        return httpx.Response(200, json=[])

    client = make_client(signer, handler)
    await client.call("GET", "/aspsps", params={"country": "FI"})
    await client.aclose()

    assert urls[0].path == "/aspsps"
    assert urls[0].params["country"] == "FI"


@pytest.mark.asyncio
async def test_client_error_keeps_status_and_body(signer):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, text='{"message": "ASPSP not supported"}')

    client = make_client(signer, handler)
    with pytest.raises(UpstreamError) as exc_info:
        await client.call("POST", "/payments", {"aspsp": {"name": "Nope", "country": "XX"}})
    await client.aclose()

    err = exc_info.value
    assert err.status == 422
    assert err.body == '{"message": "ASPSP not supported"}'
    assert err.is_client_error
    assert "422" in str(err)


@pytest.mark.asyncio
async def test_server_error_is_not_client_error(signer):
    client = make_client(signer, lambda request: httpx.Response(503, text="maintenance"))
    with pytest.raises(UpstreamError) as exc_info:
        await client.call("GET", "/payments/s1")
    await client.aclose()

    assert exc_info.value.status == 503
    assert not exc_info.value.is_client_error


@pytest.mark.asyncio
async def test_non_json_success_falls_back_to_raw_text(signer):
    client = make_client(signer, lambda request: httpx.Response(200, text="OK, not json"))
    result = await client.call("GET", "/payments/s1")
    await client.aclose()

    assert result == {"raw": "OK, not json"}


@pytest.mark.asyncio
async def test_connection_failure_is_network_error(signer):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(signer, handler)
    with pytest.raises(NetworkError):
        await client.call("GET", "/aspsps")
    await client.aclose()


@pytest.mark.asyncio
async def test_timeout_is_network_error(signer):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_client(signer, handler)
    with pytest.raises(NetworkError, match="timeout"):
        await client.call("GET", "/aspsps")
    await client.aclose()


@pytest.mark.asyncio
async def test_signing_failure_never_sends_unsigned_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    client = make_client(AssertionSigner(APP_ID, None), handler)
    with pytest.raises(SigningError):
        await client.call("GET", "/aspsps")
    await client.aclose()

    assert calls == []


@pytest.mark.asyncio
async def test_undecodable_body_is_network_error(signer):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")

    client = make_client(signer, handler)
    with pytest.raises(NetworkError):
        await client.call("GET", "/payments/s1")
    await client.aclose()
