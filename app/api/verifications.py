"""Verification service endpoints.

- POST /api/verifications                           verify a presented credential
- GET  /api/verifications/{id}                      one recorded result
- GET  /api/verifications/credential/{credential_id} all results for a credential
- GET  /api/verifications                           newest first, paginated

Every verification outcome, including a forged or unknown credential, is a
200: the verdict is in ``data.verification_status``.  Non-2xx means no
verdict could be reached.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator

from app.api.dependencies import get_verification_repo, get_verification_workflow
from app.api.envelope import Envelope, PaginationOut, envelope, pagination
from app.api.errors import AppError
from app.api.ratelimit import require_rate_limit
from app.core.clock import parse_iso
from app.core.config import SETTINGS
from app.models.credential import CREDENTIAL_TYPES, Credential
from app.models.verification import VerificationStatus
from app.repos.errors import StoreUnavailableError
from app.repos.verification_repo import VerificationRepo
from app.services.issuance_client import IssuanceServiceUnavailableError
from app.services.verification_service import VerificationWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/verifications",
    tags=["verifications"],
    dependencies=[Depends(require_rate_limit())],
)

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


# --- Request / Response schemas -------------------------------------------


class CredentialIn(BaseModel):
    """A credential as presented by its holder; every field is required."""

    id: str
    holder_name: str = Field(min_length=2, max_length=100)
    issuer: str = Field(min_length=1)
    issued_date: str
    credential_type: str
    expiry_date: str
    signature: str = Field(min_length=1)
    worker_id: str = Field(min_length=1)
    created_at: str
    updated_at: str

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        if not _UUID_RE.fullmatch(v):
            raise ValueError("must be a valid UUID")
        return v

    @field_validator("credential_type")
    @classmethod
    def _check_credential_type(cls, v: str) -> str:
        if v not in CREDENTIAL_TYPES:
            raise ValueError(
                "Credential type must be one of: " + ", ".join(CREDENTIAL_TYPES)
            )
        return v

    @field_validator("issued_date", "expiry_date", "created_at", "updated_at")
    @classmethod
    def _check_iso_date(cls, v: str) -> str:
        # Validated only; the original string is kept because the
        # signature covers its exact text.
        try:
            parse_iso(v)
        except ValueError:
            raise ValueError("must be a valid ISO 8601 date") from None
        return v


class VerifyRequestIn(BaseModel):
    credential: CredentialIn


class VerifyOut(BaseModel):
    verification_id: str
    credential_id: str
    is_valid: bool
    is_expired: bool
    verification_status: VerificationStatus
    verified_by: str
    verified_at: str
    issuer_worker_id: str | None
    issued_date: str | None


class VerificationOut(BaseModel):
    id: str
    credential_id: str
    is_valid: bool
    is_expired: bool
    verification_status: VerificationStatus
    verified_by: str
    verified_at: str
    created_at: str
    issuer_worker_id: str | None
    issued_date: str | None


class CredentialVerificationsOut(BaseModel):
    credential_id: str
    verifications: list[VerificationOut]
    count: int


class VerificationPageOut(BaseModel):
    verifications: list[VerificationOut]
    pagination: PaginationOut


# --- POST /api/verifications ----------------------------------------------


@router.post("", response_model=Envelope[VerifyOut])
async def verify_credential(
    payload: VerifyRequestIn,
    workflow: Annotated[VerificationWorkflow, Depends(get_verification_workflow)],
) -> dict:
    submitted = Credential(**payload.credential.model_dump())
    try:
        result = await workflow.verify(submitted)
    except IssuanceServiceUnavailableError as e:
        raise AppError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Issuance service unavailable, credential could not be verified",
        ) from e
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to verify credential"
        ) from e

    return envelope(
        f"Credential verification completed by {SETTINGS.worker_id}",
        {
            "verification_id": result.id,
            "credential_id": result.credential_id,
            "is_valid": result.is_valid,
            "is_expired": result.is_expired,
            "verification_status": result.verification_status,
            "verified_by": result.verified_by,
            "verified_at": result.verified_at,
            "issuer_worker_id": result.issuer_worker_id,
            "issued_date": result.issued_date,
        },
    )


# --- GET /api/verifications/credential/{credential_id} --------------------


@router.get(
    "/credential/{credential_id}",
    response_model=Envelope[CredentialVerificationsOut],
)
async def list_verifications_for_credential(
    credential_id: str,
    repo: Annotated[VerificationRepo, Depends(get_verification_repo)],
) -> dict:
    try:
        results = await repo.list_by_credential_id(credential_id)
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve verifications"
        ) from e

    return envelope(
        "Verifications retrieved successfully",
        {
            "credential_id": credential_id,
            "verifications": [r.to_dict() for r in results],
            "count": len(results),
        },
    )


# --- GET /api/verifications/{verification_id} -----------------------------


@router.get("/{verification_id}", response_model=Envelope[VerificationOut])
async def get_verification(
    verification_id: str,
    repo: Annotated[VerificationRepo, Depends(get_verification_repo)],
) -> dict:
    try:
        result = await repo.get_by_id(verification_id)
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve verification"
        ) from e

    if result is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "Verification not found")
    return envelope("Verification retrieved successfully", result.to_dict())


# --- GET /api/verifications -----------------------------------------------


@router.get("", response_model=Envelope[VerificationPageOut])
async def list_verifications(
    repo: Annotated[VerificationRepo, Depends(get_verification_repo)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> dict:
    try:
        results = await repo.list_recent(limit, (page - 1) * limit)
        total = await repo.count()
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve verifications"
        ) from e

    return envelope(
        "Verifications retrieved successfully",
        {
            "verifications": [r.to_dict() for r in results],
            "pagination": pagination(page, limit, total),
        },
    )
