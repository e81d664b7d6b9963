"""HTTP client the verification service uses to reach the issuance service.

THREE OUTCOMES, KEPT APART
---------------------------
  404 from the issuance service  → None.  The credential was never issued;
                                   a normal business answer.
  network error / timeout / 5xx  → IssuanceServiceUnavailableError.  We do
                                   not know whether the credential exists,
                                   so no verification verdict may be drawn.
  200 with a credential body     → the parsed Credential.

A 200 whose body cannot be read as a credential raises the base
IssuanceClientError: the peer answered, but with something this client does
not understand.

One attempt per call, bounded by the configured timeout.  No retries: the
caller is an interactive request and a retry storm against a struggling
issuance service helps nobody.
"""

from __future__ import annotations

import logging

import httpx

from app.core.metrics import ISSUANCE_LOOKUPS
from app.models.credential import Credential

logger = logging.getLogger(__name__)


class IssuanceClientError(Exception):
    """The issuance service answered with something unusable."""


class IssuanceServiceUnavailableError(IssuanceClientError):
    """The issuance service could not be reached or failed to answer."""


class IssuanceClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Injected in tests (httpx.MockTransport / ASGITransport).
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def get_credential(self, credential_id: str) -> Credential | None:
        """Fetch the authoritative credential by id.

        Raises:
            IssuanceServiceUnavailableError: transport failure, timeout, or an
                unexpected HTTP status.
            IssuanceClientError: a 200 response that is not a credential.
        """
        path = f"/api/credentials/{credential_id}"
        logger.debug("GET %s%s", self.base_url, path)
        try:
            async with self._client() as client:
                resp = await client.get(path)
        except httpx.TimeoutException as e:
            ISSUANCE_LOOKUPS.labels(outcome="unavailable").inc()
            logger.warning("Issuance service timed out credential_id=%s", credential_id)
            raise IssuanceServiceUnavailableError(
                f"issuance service timed out after {self.timeout}s"
            ) from e
        except httpx.RequestError as e:
            ISSUANCE_LOOKUPS.labels(outcome="unavailable").inc()
            logger.warning(
                "Issuance service unreachable credential_id=%s error=%s",
                credential_id,
                e,
            )
            raise IssuanceServiceUnavailableError(
                f"issuance service unreachable: {e}"
            ) from e

        if resp.status_code == 404:
            ISSUANCE_LOOKUPS.labels(outcome="not_found").inc()
            logger.info("Credential not found in issuance service id=%s", credential_id)
            return None

        if resp.status_code != 200:
            ISSUANCE_LOOKUPS.labels(outcome="unavailable").inc()
            logger.warning(
                "Issuance service returned HTTP %d credential_id=%s",
                resp.status_code,
                credential_id,
            )
            raise IssuanceServiceUnavailableError(
                f"issuance service returned HTTP {resp.status_code}"
            )

        try:
            body = resp.json()
        except ValueError as e:
            ISSUANCE_LOOKUPS.labels(outcome="error").inc()
            raise IssuanceClientError("issuance service returned non-JSON body") from e

        if not isinstance(body, dict) or not body.get("success") or not body.get("data"):
            ISSUANCE_LOOKUPS.labels(outcome="not_found").inc()
            return None

        try:
            credential = Credential.from_dict(body["data"])
        except (KeyError, TypeError) as e:
            ISSUANCE_LOOKUPS.labels(outcome="error").inc()
            raise IssuanceClientError(
                f"issuance service returned a malformed credential: {e}"
            ) from e

        ISSUANCE_LOOKUPS.labels(outcome="found").inc()
        return credential

    async def health_check(self) -> bool:
        """True if the issuance service reports itself healthy.  Never raises."""
        try:
            async with self._client() as client:
                resp = await client.get("/health")
            return resp.status_code == 200 and resp.json().get("success") is True
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Issuance service health check failed: %s", e)
            return False
