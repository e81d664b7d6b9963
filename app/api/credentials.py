"""Issuance service endpoints.

- POST /api/credentials        issue a signed credential (201, or 409)
- GET  /api/credentials/{id}   one credential with its signature status
- GET  /api/credentials        newest first, paginated

GET by id is also what the verification service calls to fetch the
authoritative record.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, field_validator

from app.api.dependencies import (
    get_credential_repo,
    get_issuance_workflow,
    get_signer,
)
from app.api.envelope import Envelope, PaginationOut, envelope, pagination
from app.api.errors import AppError
from app.api.ratelimit import require_rate_limit
from app.core.clock import utc_now
from app.models.credential import CREDENTIAL_TYPES
from app.repos.credential_repo import CredentialRepo
from app.repos.errors import StoreUnavailableError
from app.services.issuance_service import (
    CredentialAlreadyIssuedError,
    IssuanceError,
    IssuanceWorkflow,
)
from app.services.signature_service import SignatureEngine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/credentials",
    tags=["credentials"],
    dependencies=[Depends(require_rate_limit())],
)

_HOLDER_NAME_RE = re.compile(r"[a-zA-Z\s]+")


# --- Request / Response schemas -------------------------------------------


class CredentialCreateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    holder_name: str
    credential_type: str
    expiry_date: datetime | None = None

    @field_validator("holder_name")
    @classmethod
    def _check_holder_name(cls, v: str) -> str:
        v = v.strip().replace("<", "").replace(">", "")
        if len(v) < 2:
            raise ValueError("Holder name must be at least 2 characters long")
        if len(v) > 100:
            raise ValueError("Holder name must not exceed 100 characters")
        if not _HOLDER_NAME_RE.fullmatch(v):
            raise ValueError("Holder name must contain only letters and spaces")
        return v

    @field_validator("credential_type")
    @classmethod
    def _check_credential_type(cls, v: str) -> str:
        if v not in CREDENTIAL_TYPES:
            raise ValueError(
                "Credential type must be one of: " + ", ".join(CREDENTIAL_TYPES)
            )
        return v

    @field_validator("expiry_date")
    @classmethod
    def _check_expiry_date(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v <= utc_now():
            raise ValueError("Expiry date must be in the future")
        return v


class CredentialOut(BaseModel):
    id: str
    holder_name: str
    issuer: str
    issued_date: str
    credential_type: str
    expiry_date: str
    worker_id: str
    signature: str
    created_at: str
    updated_at: str


class CredentialDetailOut(CredentialOut):
    is_valid: bool
    is_expired: bool


class CredentialPageOut(BaseModel):
    credentials: list[CredentialOut]
    pagination: PaginationOut


# --- POST /api/credentials ------------------------------------------------


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=Envelope[CredentialOut],
)
async def issue_credential(
    payload: CredentialCreateIn,
    workflow: Annotated[IssuanceWorkflow, Depends(get_issuance_workflow)],
) -> dict:
    try:
        credential = await workflow.issue(
            payload.holder_name,
            payload.credential_type,
            payload.expiry_date,
        )
    except CredentialAlreadyIssuedError as e:
        raise AppError(
            status.HTTP_409_CONFLICT,
            f"Credential of type '{payload.credential_type}' already issued "
            f"for {payload.holder_name}",
            data={
                "existing_credential_id": e.existing.id,
                "issued_date": e.existing.issued_date,
                "issued_by": e.existing.worker_id,
            },
        ) from e
    except IssuanceError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to issue credential"
        ) from e

    return envelope(f"Credential issued by {credential.worker_id}", credential.to_dict())


# --- GET /api/credentials/{credential_id} ---------------------------------


@router.get("/{credential_id}", response_model=Envelope[CredentialDetailOut])
async def get_credential(
    credential_id: str,
    repo: Annotated[CredentialRepo, Depends(get_credential_repo)],
    signer: Annotated[SignatureEngine, Depends(get_signer)],
) -> dict:
    try:
        credential = await repo.get_by_id(credential_id)
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve credential"
        ) from e

    if credential is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "Credential not found")

    data = credential.to_dict()
    data["is_valid"] = signer.verify(credential)
    data["is_expired"] = credential.is_expired(utc_now())
    return envelope("Credential retrieved successfully", data)


# --- GET /api/credentials -------------------------------------------------


@router.get("", response_model=Envelope[CredentialPageOut])
async def list_credentials(
    repo: Annotated[CredentialRepo, Depends(get_credential_repo)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> dict:
    try:
        credentials = await repo.list_recent(limit, (page - 1) * limit)
        total = await repo.count()
    except StoreUnavailableError as e:
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve credentials"
        ) from e

    return envelope(
        "Credentials retrieved successfully",
        {
            "credentials": [c.to_dict() for c in credentials],
            "pagination": pagination(page, limit, total),
        },
    )
