"""Issuance service endpoints: POST/GET /api/credentials."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.services.signature_service import SignatureEngine
from tests.conftest import issue

# ---- POST /api/credentials ----


def test_issue_returns_201_with_signed_credential(issuance_client: TestClient) -> None:
    resp = issuance_client.post(
        "/api/credentials",
        json={"holder_name": "John Doe", "credential_type": "certificate"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["worker_id"] == "test-worker"
    assert body["message"] == "Credential issued by test-worker"
    assert body["timestamp"].endswith("Z")

    data = body["data"]
    assert data["holder_name"] == "John Doe"
    assert data["credential_type"] == "certificate"
    assert data["issuer"] == "Kube Credential Authority"
    assert data["worker_id"] == "test-worker"
    assert len(data["signature"]) == 64
    assert data["created_at"] == data["issued_date"]


def test_issued_credential_verifies_with_service_secret(
    issuance_client: TestClient,
) -> None:
    from app.models.credential import Credential

    data = issue(issuance_client)
    assert SignatureEngine("test-secret").verify(Credential.from_dict(data))


def test_issue_with_explicit_expiry(issuance_client: TestClient) -> None:
    data = issue(
        issuance_client,
        holder_name="Jane Roe",
        credential_type="license",
        expiry_date="2099-06-30T00:00:00Z",
    )
    assert data["expiry_date"] == "2099-06-30T00:00:00.000Z"


def test_duplicate_issue_returns_409_with_existing(issuance_client: TestClient) -> None:
    first = issue(issuance_client)
    resp = issuance_client.post(
        "/api/credentials",
        json={"holder_name": "John Doe", "credential_type": "certificate"},
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == (
        "Credential of type 'certificate' already issued for John Doe"
    )
    assert body["data"] == {
        "existing_credential_id": first["id"],
        "issued_date": first["issued_date"],
        "issued_by": "test-worker",
    }

    listing = issuance_client.get("/api/credentials").json()["data"]
    assert listing["pagination"]["total"] == 1


def test_holder_name_is_trimmed(issuance_client: TestClient) -> None:
    data = issue(issuance_client, holder_name="  John Doe  ")
    assert data["holder_name"] == "John Doe"


@pytest.mark.parametrize(
    "payload, fragment",
    [
        ({"credential_type": "certificate"}, "holder_name"),
        ({"holder_name": "J", "credential_type": "certificate"}, "at least 2 characters"),
        ({"holder_name": "J" * 101, "credential_type": "certificate"}, "not exceed 100"),
        ({"holder_name": "John 3rd", "credential_type": "certificate"}, "only letters and spaces"),
        ({"holder_name": "John Doe", "credential_type": "passport"}, "Credential type must be one of"),
        ({"holder_name": "John Doe"}, "credential_type"),
        (
            {"holder_name": "John Doe", "credential_type": "badge", "expiry_date": "2001-01-01T00:00:00Z"},
            "Expiry date must be in the future",
        ),
        (
            {"holder_name": "John Doe", "credential_type": "badge", "expiry_date": "someday"},
            "expiry_date",
        ),
    ],
)
def test_issue_validation_errors(
    issuance_client: TestClient, payload: dict, fragment: str
) -> None:
    resp = issuance_client.post("/api/credentials", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"].startswith("Validation error: ")
    assert fragment in body["message"]


def test_issue_rejects_malformed_json(issuance_client: TestClient) -> None:
    resp = issuance_client.post(
        "/api/credentials",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400


def test_unknown_fields_are_ignored(issuance_client: TestClient) -> None:
    data = issue(issuance_client, worker_id="spoofed")
    assert data["worker_id"] == "test-worker"


# ---- GET /api/credentials/{id} ----


def test_get_credential_includes_status_flags(issuance_client: TestClient) -> None:
    issued = issue(issuance_client)
    resp = issuance_client.get(f"/api/credentials/{issued['id']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == issued["id"]
    assert data["signature"] == issued["signature"]
    assert data["is_valid"] is True
    assert data["is_expired"] is False


def test_get_missing_credential_returns_404(issuance_client: TestClient) -> None:
    resp = issuance_client.get("/api/credentials/does-not-exist")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Credential not found"


def test_get_expired_credential_flags_it(issuance_client: TestClient) -> None:
    import asyncio

    from app.api.dependencies import credential_store
    from app.services.issuance_service import IssuanceWorkflow

    past = datetime(2020, 1, 1, tzinfo=timezone.utc)
    workflow = IssuanceWorkflow(
        credential_store,
        SignatureEngine("test-secret"),
        worker_id="test-worker",
        issuer="Kube Credential Authority",
        clock=lambda: past,
    )
    credential = asyncio.run(
        workflow.issue("Old Timer", "permit", past + timedelta(days=1))
    )

    data = issuance_client.get(f"/api/credentials/{credential.id}").json()["data"]
    assert data["is_expired"] is True
    assert data["is_valid"] is True


# ---- GET /api/credentials ----


def test_list_credentials_paginates_newest_first(issuance_client: TestClient) -> None:
    ids = [
        issue(issuance_client, holder_name=name)["id"]
        for name in ("Ann Lee", "Bob Ray", "Cid Moe")
    ]

    resp = issuance_client.get("/api/credentials", params={"page": 1, "limit": 2})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [c["id"] for c in data["credentials"]] == [ids[2], ids[1]]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    page2 = issuance_client.get("/api/credentials", params={"page": 2, "limit": 2})
    assert [c["id"] for c in page2.json()["data"]["credentials"]] == [ids[0]]


def test_list_credentials_empty(issuance_client: TestClient) -> None:
    data = issuance_client.get("/api/credentials").json()["data"]
    assert data["credentials"] == []
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 0, "pages": 0}


@pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}])
def test_list_credentials_rejects_bad_paging(
    issuance_client: TestClient, params: dict
) -> None:
    assert issuance_client.get("/api/credentials", params=params).status_code == 400
