from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

VerificationStatus = Literal[
    "valid",
    "invalid",
    "expired",
    "not_found",
    "signature_mismatch",
]

VERIFICATION_STATUSES: tuple[str, ...] = (
    "valid",
    "invalid",
    "expired",
    "not_found",
    "signature_mismatch",
)


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Audit record of one verification attempt.

    credential_id is whatever id the caller submitted; it need not exist.
    issuer_worker_id / issued_date come from the issuance service's record
    and are only set when that record matched (valid or expired).
    """

    id: str
    credential_id: str
    is_valid: bool
    is_expired: bool
    verification_status: VerificationStatus
    verified_by: str
    verified_at: str
    created_at: str
    issuer_worker_id: str | None = None
    issued_date: str | None = None

    @staticmethod
    def new(
        *,
        id: str,
        credential_id: str,
        status: VerificationStatus,
        verified_by: str,
        verified_at: str,
        issuer_worker_id: str | None = None,
        issued_date: str | None = None,
    ) -> VerificationResult:
        # The two flags are derived from the status so they cannot disagree.
        return VerificationResult(
            id=id,
            credential_id=credential_id,
            is_valid=status == "valid",
            is_expired=status == "expired",
            verification_status=status,
            verified_by=verified_by,
            verified_at=verified_at,
            created_at=verified_at,
            issuer_worker_id=issuer_worker_id,
            issued_date=issued_date,
        )

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
