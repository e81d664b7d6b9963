"""Both services together, in process.

The verification app's IssuanceClient talks to the issuance app through
httpx.ASGITransport, so the real HTTP contract between them is exercised.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import issue


def test_issue_then_verify_is_valid(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    credential = issue(issuance_client, holder_name="John Doe", credential_type="certificate")

    resp = linked_verification_client.post(
        "/api/verifications", json={"credential": credential}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["verification_status"] == "valid"
    assert data["is_valid"] is True
    assert data["issuer_worker_id"] == credential["worker_id"]
    assert data["issued_date"] == credential["issued_date"]


def test_reissue_is_409_with_first_id(issuance_client: TestClient) -> None:
    first = issue(issuance_client, holder_name="John Doe", credential_type="certificate")
    resp = issuance_client.post(
        "/api/credentials",
        json={"holder_name": "John Doe", "credential_type": "certificate"},
    )
    assert resp.status_code == 409
    assert resp.json()["data"]["existing_credential_id"] == first["id"]


def test_flipped_holder_name_is_signature_mismatch(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    credential = issue(issuance_client)
    tampered = dict(credential, holder_name="John Dog")

    data = linked_verification_client.post(
        "/api/verifications", json={"credential": tampered}
    ).json()["data"]
    assert data["verification_status"] == "signature_mismatch"


def test_credential_fetched_from_issuance_verifies(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    issued = issue(issuance_client, holder_name="Ann Lee", credential_type="badge")
    fetched = issuance_client.get(f"/api/credentials/{issued['id']}").json()["data"]
    fetched.pop("is_valid")
    fetched.pop("is_expired")

    data = linked_verification_client.post(
        "/api/verifications", json={"credential": fetched}
    ).json()["data"]
    assert data["verification_status"] == "valid"


def test_unissued_credential_is_not_found(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    from app.api.dependencies import credential_store

    credential = issue(issuance_client)
    credential_store.clear()

    data = linked_verification_client.post(
        "/api/verifications", json={"credential": credential}
    ).json()["data"]
    assert data["verification_status"] == "not_found"


def test_verification_history_is_recorded(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    credential = issue(issuance_client)
    for _ in range(2):
        linked_verification_client.post("/api/verifications", json={"credential": credential})

    data = linked_verification_client.get(
        f"/api/verifications/credential/{credential['id']}"
    ).json()["data"]
    assert data["count"] == 2
    assert {v["verification_status"] for v in data["verifications"]} == {"valid"}
