"""Tests for the verification → issuance HTTP client (httpx.MockTransport)."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from app.services.issuance_client import (
    IssuanceClient,
    IssuanceClientError,
    IssuanceServiceUnavailableError,
)

RECORD = {
    "id": "3f2b8a9e-1c4d-4e5f-9a6b-7c8d9e0f1a2b",
    "holder_name": "John Doe",
    "issuer": "Test Authority",
    "issued_date": "2026-01-01T00:00:00.000Z",
    "credential_type": "certificate",
    "expiry_date": "2027-01-01T00:00:00.000Z",
    "worker_id": "issuer-3",
    "signature": "ab" * 32,
    "created_at": "2026-01-01T00:00:00.000Z",
    "updated_at": "2026-01-01T00:00:00.000Z",
    "is_valid": True,
    "is_expired": False,
}


def _client(handler) -> IssuanceClient:
    return IssuanceClient(
        "http://issuance.test/", timeout=2.0, transport=httpx.MockTransport(handler)
    )


def _get(client: IssuanceClient, credential_id: str = RECORD["id"]):
    return asyncio.run(client.get_credential(credential_id))


def test_found_returns_credential() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"success": True, "data": RECORD})

    credential = _get(_client(handler))
    assert credential is not None
    assert credential.id == RECORD["id"]
    assert credential.signature == RECORD["signature"]
    assert seen == [f"/api/credentials/{RECORD['id']}"]


def test_404_returns_none() -> None:
    client = _client(lambda r: httpx.Response(404, json={"success": False}))
    assert _get(client) is None


def test_unsuccessful_envelope_returns_none() -> None:
    client = _client(lambda r: httpx.Response(200, json={"success": False}))
    assert _get(client) is None


@pytest.mark.parametrize("status", [500, 502, 503, 429])
def test_unexpected_status_is_unavailable(status: int) -> None:
    client = _client(lambda r: httpx.Response(status, json={"success": False}))
    with pytest.raises(IssuanceServiceUnavailableError):
        _get(client)


def test_connection_error_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IssuanceServiceUnavailableError):
        _get(_client(handler))


def test_timeout_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(IssuanceServiceUnavailableError):
        _get(_client(handler))


def test_non_json_body_is_client_error() -> None:
    client = _client(lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(IssuanceClientError) as exc_info:
        _get(client)
    assert not isinstance(exc_info.value, IssuanceServiceUnavailableError)


def test_malformed_credential_is_client_error() -> None:
    client = _client(
        lambda r: httpx.Response(200, json={"success": True, "data": {"id": "x"}})
    )
    with pytest.raises(IssuanceClientError):
        _get(client)


def test_health_check_true_on_success_envelope() -> None:
    client = _client(lambda r: httpx.Response(200, json={"success": True}))
    assert asyncio.run(client.health_check()) is True


def test_health_check_false_on_503() -> None:
    client = _client(lambda r: httpx.Response(503, json={"success": False}))
    assert asyncio.run(client.health_check()) is False


def test_health_check_false_on_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(_client(handler).health_check()) is False
