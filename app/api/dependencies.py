"""FastAPI dependencies: repositories, the signer, the issuance client, and
the two workflows built from them.

Without DATABASE_URL both services run on module-level in-memory stores
(dev and tests).  With it, every request gets its own session and the
repositories are bound to it.  Writes commit inside the repository, before
the response is built; the session closes after the response is sent
(rolling back whatever a failed request left open).

Tests swap pieces through ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from app.core.config import SETTINGS, Settings
from app.db.engine import async_session_factory, session_scope
from app.repos.credential_repo import CredentialRepo, InMemoryCredentialRepo
from app.repos.sql_credential_repo import SqlCredentialRepo
from app.repos.sql_verification_repo import SqlVerificationRepo
from app.repos.verification_repo import InMemoryVerificationRepo, VerificationRepo
from app.services.issuance_client import IssuanceClient
from app.services.issuance_service import IssuanceWorkflow
from app.services.signature_service import SignatureEngine
from app.services.verification_service import VerificationWorkflow

# In-memory fallbacks, shared by every request of this process.
credential_store = InMemoryCredentialRepo()
verification_store = InMemoryVerificationRepo()

_signer = SignatureEngine(SETTINGS.credential_secret)
_issuance_client = IssuanceClient(
    SETTINGS.issuance_service_url,
    timeout=SETTINGS.issuance_timeout_seconds,
)


def get_settings() -> Settings:
    return SETTINGS


def get_signer() -> SignatureEngine:
    return _signer


def get_issuance_client() -> IssuanceClient:
    return _issuance_client


async def get_credential_repo() -> AsyncGenerator[CredentialRepo, None]:
    if async_session_factory is None:
        yield credential_store
        return
    async with session_scope() as session:
        yield SqlCredentialRepo(session)


async def get_verification_repo() -> AsyncGenerator[VerificationRepo, None]:
    if async_session_factory is None:
        yield verification_store
        return
    async with session_scope() as session:
        yield SqlVerificationRepo(session)


def get_issuance_workflow(
    repo: Annotated[CredentialRepo, Depends(get_credential_repo)],
    signer: Annotated[SignatureEngine, Depends(get_signer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IssuanceWorkflow:
    return IssuanceWorkflow(
        repo,
        signer,
        worker_id=settings.worker_id,
        issuer=settings.credential_issuer,
    )


def get_verification_workflow(
    repo: Annotated[VerificationRepo, Depends(get_verification_repo)],
    client: Annotated[IssuanceClient, Depends(get_issuance_client)],
    signer: Annotated[SignatureEngine, Depends(get_signer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> VerificationWorkflow:
    return VerificationWorkflow(
        repo,
        client,
        signer,
        worker_id=settings.worker_id,
    )
