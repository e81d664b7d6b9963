"""Credential issuance.

One credential per (holder_name, credential_type).  A second request for the
same pair is a conflict the client sees (409), not a silent no-op and not an
overwrite.

The read in step 1 is only a fast path.  Two concurrent requests can both
see "nothing there" and both try to insert; the store's uniqueness rule
rejects the loser, and the loser is reported exactly like a duplicate found
up front.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from app.core.clock import Clock, to_iso, utc_now
from app.core.metrics import CREDENTIALS_ISSUED
from app.models.credential import Credential
from app.repos.credential_repo import CredentialRepo
from app.repos.errors import DuplicateCredentialError, StoreUnavailableError
from app.services.signature_service import SignatureEngine

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY = timedelta(days=365)


class CredentialAlreadyIssuedError(Exception):
    def __init__(self, existing: Credential) -> None:
        super().__init__(
            f"credential of type {existing.credential_type!r} already issued "
            f"for {existing.holder_name!r}"
        )
        self.existing = existing


class IssuanceError(Exception):
    """Issuance failed for a reason other than a duplicate."""


class IssuanceWorkflow:
    def __init__(
        self,
        repo: CredentialRepo,
        signer: SignatureEngine,
        *,
        worker_id: str,
        issuer: str,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repo
        self._signer = signer
        self._worker_id = worker_id
        self._issuer = issuer
        self._clock = clock

    async def issue(
        self,
        holder_name: str,
        credential_type: str,
        expiry_date: datetime | None = None,
    ) -> Credential:
        """Create, sign and store a credential.

        Raises:
            CredentialAlreadyIssuedError: the holder already has one of this type.
            IssuanceError: the store failed, or the generated id collided.
        """
        try:
            existing = await self._repo.get_by_holder_and_type(
                holder_name, credential_type
            )
        except StoreUnavailableError as e:
            CREDENTIALS_ISSUED.labels(outcome="error").inc()
            logger.error("Duplicate check failed: %s", e)
            raise IssuanceError("failed to issue credential") from e

        if existing is not None:
            CREDENTIALS_ISSUED.labels(outcome="duplicate").inc()
            logger.warning(
                "Rejected duplicate issuance credential_type=%s existing_id=%s",
                credential_type,
                existing.id,
            )
            raise CredentialAlreadyIssuedError(existing)

        credential = self._build(holder_name, credential_type, expiry_date)

        try:
            await self._repo.add(credential)
        except DuplicateCredentialError as e:
            raise await self._lost_race_error(holder_name, credential_type) from e
        except StoreUnavailableError as e:
            CREDENTIALS_ISSUED.labels(outcome="error").inc()
            logger.error("Credential insert failed id=%s: %s", credential.id, e)
            raise IssuanceError("failed to issue credential") from e

        CREDENTIALS_ISSUED.labels(outcome="issued").inc()
        logger.info(
            "Credential issued id=%s credential_type=%s worker_id=%s",
            credential.id,
            credential.credential_type,
            self._worker_id,
        )
        return credential

    def _build(
        self,
        holder_name: str,
        credential_type: str,
        expiry_date: datetime | None,
    ) -> Credential:
        now = self._clock()
        issued = to_iso(now)
        fields = {
            "id": self._signer.generate_id(),
            "holder_name": holder_name,
            "issuer": self._issuer,
            "issued_date": issued,
            "credential_type": credential_type,
            "expiry_date": to_iso(expiry_date or now + DEFAULT_VALIDITY),
            "worker_id": self._worker_id,
        }
        return Credential(
            **fields,
            signature=self._signer.sign(fields),
            created_at=issued,
            updated_at=issued,
        )

    async def _lost_race_error(
        self, holder_name: str, credential_type: str
    ) -> Exception:
        """Explain a DuplicateCredentialError from the store."""
        try:
            winner = await self._repo.get_by_holder_and_type(holder_name, credential_type)
        except StoreUnavailableError:
            CREDENTIALS_ISSUED.labels(outcome="error").inc()
            return IssuanceError("failed to issue credential")

        if winner is not None:
            CREDENTIALS_ISSUED.labels(outcome="duplicate").inc()
            logger.warning(
                "Concurrent issuance lost to id=%s credential_type=%s",
                winner.id,
                credential_type,
            )
            return CredentialAlreadyIssuedError(winner)

        # Duplicate key but no holder/type match: the random id collided.
        CREDENTIALS_ISSUED.labels(outcome="error").inc()
        logger.error("Generated credential id collided; not retrying")
        return IssuanceError("failed to issue credential")
