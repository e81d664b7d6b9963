"""Credential verification state machine.

A submitted credential is driven through four checks, strictly in order.
The first check that fails decides the outcome and the rest are skipped:

    1. signature     : does the signature match the credential's own fields?
                        no  → signature_mismatch   (no network call made)
    2. lookup        : does the issuance service know this id?
                        no  → not_found
    3. field equality: does the submitted copy equal the issued record?
                        no  → invalid
    4. expiry        : is the issued record past its expiry_date?
                        yes → expired
                        no  → valid

Step 1 runs first because it is local and cheap: garbage input is rejected
without touching the issuance service.  Step 3 catches a credential that is
internally consistent but is not the one that was issued, e.g. fields
altered and re-signed with a different secret.

Every outcome is recorded: exactly one VerificationResult is written per
call, including failed verifications.  An unexpected error inside the checks
is recorded as invalid.

The one exception is IssuanceServiceUnavailableError.  If the issuance
service cannot be asked, nothing can be concluded about the credential, so
no verdict is recorded and the error propagates (the API answers 503).
"""

from __future__ import annotations

import logging
from datetime import datetime

from app.core.clock import Clock, to_iso, utc_now
from app.core.metrics import VERIFICATIONS
from app.models.credential import Credential
from app.models.verification import VerificationResult, VerificationStatus
from app.repos.verification_repo import VerificationRepo
from app.services.issuance_client import (
    IssuanceClient,
    IssuanceServiceUnavailableError,
)
from app.services.signature_service import SignatureEngine

logger = logging.getLogger(__name__)


class VerificationWorkflow:
    def __init__(
        self,
        repo: VerificationRepo,
        client: IssuanceClient,
        signer: SignatureEngine,
        *,
        worker_id: str,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repo
        self._client = client
        self._signer = signer
        self._worker_id = worker_id
        self._clock = clock

    async def verify(self, submitted: Credential) -> VerificationResult:
        """Classify and record one verification attempt.

        Raises:
            IssuanceServiceUnavailableError: the issuance service could not
                be reached; nothing is recorded.
            StoreUnavailableError: the result could not be persisted.
        """
        now = self._clock()
        issuer_worker_id: str | None = None
        issued_date: str | None = None

        try:
            status, authoritative = await self._classify(submitted, now)
        except IssuanceServiceUnavailableError:
            raise
        except Exception:
            logger.exception(
                "Unexpected error verifying credential_id=%s; recording as invalid",
                submitted.id,
            )
            status, authoritative = "invalid", None

        if authoritative is not None:
            issuer_worker_id = authoritative.worker_id
            issued_date = authoritative.issued_date

        result = VerificationResult.new(
            id=self._signer.generate_id(),
            credential_id=submitted.id,
            status=status,
            verified_by=self._worker_id,
            verified_at=to_iso(now),
            issuer_worker_id=issuer_worker_id,
            issued_date=issued_date,
        )
        await self._repo.add(result)

        VERIFICATIONS.labels(status=status).inc()
        logger.info(
            "Verification recorded id=%s credential_id=%s status=%s",
            result.id,
            result.credential_id,
            status,
        )
        return result

    async def _classify(
        self, submitted: Credential, now: datetime
    ) -> tuple[VerificationStatus, Credential | None]:
        """Run the checks; the credential is returned only when it matched."""
        if not self._signer.verify(submitted):
            logger.warning("Signature mismatch credential_id=%s", submitted.id)
            return "signature_mismatch", None

        authoritative = await self._client.get_credential(submitted.id)
        if authoritative is None:
            logger.warning("Credential not issued credential_id=%s", submitted.id)
            return "not_found", None

        differing = submitted.differing_fields(authoritative)
        if differing:
            logger.warning(
                "Credential differs from issued record credential_id=%s fields=%s",
                submitted.id,
                ",".join(differing),
            )
            return "invalid", None

        if authoritative.is_expired(now):
            logger.info("Credential expired credential_id=%s", submitted.id)
            return "expired", authoritative

        return "valid", authoritative
