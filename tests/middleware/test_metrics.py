"""Tests for Prometheus metrics (middleware and domain counters).

prometheus-client uses a global registry and counters cannot be reset, so
every assertion is on a before/after delta.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import issue


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(issuance_client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    issuance_client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_endpoint_label_is_route_template(issuance_client: TestClient) -> None:
    labels = {
        "method": "GET",
        "endpoint": "/api/credentials/{credential_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    issuance_client.get("/api/credentials/first-id")
    issuance_client.get("/api/credentials/second-id")
    assert _get_sample("http_requests_total", labels) - before == 2


def test_unmatched_routes_share_one_label(issuance_client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    issuance_client.get("/no/such/route")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(issuance_client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    issuance_client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before >= 1


def test_issuance_outcomes_counted(issuance_client: TestClient) -> None:
    issued_before = _get_sample("credentials_issued_total", {"outcome": "issued"})
    dup_before = _get_sample("credentials_issued_total", {"outcome": "duplicate"})

    issue(issuance_client)
    issuance_client.post(
        "/api/credentials",
        json={"holder_name": "John Doe", "credential_type": "certificate"},
    )

    assert _get_sample("credentials_issued_total", {"outcome": "issued"}) - issued_before == 1
    assert _get_sample("credentials_issued_total", {"outcome": "duplicate"}) - dup_before == 1


def test_verification_status_counted(
    issuance_client: TestClient, linked_verification_client: TestClient
) -> None:
    before = _get_sample("credential_verifications_total", {"status": "valid"})
    lookups_before = _get_sample("issuance_lookups_total", {"outcome": "found"})

    credential = issue(issuance_client)
    linked_verification_client.post("/api/verifications", json={"credential": credential})

    assert _get_sample("credential_verifications_total", {"status": "valid"}) - before == 1
    assert _get_sample("issuance_lookups_total", {"outcome": "found"}) - lookups_before == 1


def test_metrics_endpoint_returns_prometheus_format(
    verification_client: TestClient,
) -> None:
    verification_client.get("/health")
    resp = verification_client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "credential_verifications_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(issuance_client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    issuance_client.get("/metrics")
    issuance_client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
