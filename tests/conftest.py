from __future__ import annotations

import os
import sys
from pathlib import Path

# Settings are read once at import; pin them before any app module loads.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("WORKER_ID", "test-worker")
os.environ.setdefault("CREDENTIAL_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "30")
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies import (  # noqa: E402
    credential_store,
    get_issuance_client,
    verification_store,
)
from app.api.ratelimit import _rate_limiter  # noqa: E402
from app.main import issuance_app, verification_app  # noqa: E402
from app.services.issuance_client import IssuanceClient  # noqa: E402

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Clear the in-memory credential and verification stores between tests."""
    credential_store.clear()
    verification_store.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_overrides():
    yield
    issuance_app.dependency_overrides.clear()
    verification_app.dependency_overrides.clear()


@pytest.fixture
def issuance_client() -> TestClient:
    return TestClient(issuance_app)


@pytest.fixture
def verification_client() -> TestClient:
    return TestClient(verification_app)


@pytest.fixture
def linked_verification_client() -> TestClient:
    """Verification app whose lookups are served in-process by the issuance app."""
    client = IssuanceClient(
        "http://issuance.test",
        transport=httpx.ASGITransport(app=issuance_app),
    )
    verification_app.dependency_overrides[get_issuance_client] = lambda: client
    return TestClient(verification_app)


def issue(
    client: TestClient,
    holder_name: str = "John Doe",
    credential_type: str = "certificate",
    **extra: str,
) -> dict:
    """POST a credential and return the issued record; asserts 201."""
    resp = client.post(
        "/api/credentials",
        json={"holder_name": holder_name, "credential_type": credential_type, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
