"""SQLAlchemy implementation of CredentialRepo (PostgreSQL or SQLite).

add() commits: a credential is durable before the 201 is built, and a
commit failure surfaces to the caller instead of after the response.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CredentialRow
from app.models.credential import Credential
from app.repos.errors import DuplicateCredentialError, StoreUnavailableError


class SqlCredentialRepo:
    """Satisfies the CredentialRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, credential: Credential) -> None:
        row = CredentialRow(**credential.to_dict())
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError as e:
            # Primary key or uq_credentials_holder_type.  Roll back so the
            # session stays usable for the caller's follow-up read.
            await self._session.rollback()
            raise DuplicateCredentialError(str(e.orig)) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise StoreUnavailableError("failed to insert credential") from e

    async def get_by_id(self, credential_id: str) -> Credential | None:
        stmt = select(CredentialRow).where(CredentialRow.id == credential_id)
        row = await self._scalar(stmt)
        return _row_to_credential(row) if row is not None else None

    async def get_by_holder_and_type(
        self, holder_name: str, credential_type: str
    ) -> Credential | None:
        stmt = (
            select(CredentialRow)
            .where(
                CredentialRow.holder_name == holder_name,
                CredentialRow.credential_type == credential_type,
            )
            .order_by(CredentialRow.created_at.desc())
            .limit(1)
        )
        row = await self._scalar(stmt)
        return _row_to_credential(row) if row is not None else None

    async def list_recent(self, limit: int, offset: int) -> list[Credential]:
        stmt = (
            select(CredentialRow)
            .order_by(CredentialRow.created_at.desc(), CredentialRow.id)
            .limit(limit)
            .offset(offset)
        )
        try:
            rows = (await self._session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to list credentials") from e
        return [_row_to_credential(r) for r in rows]

    async def count(self) -> int:
        stmt = select(func.count()).select_from(CredentialRow)
        try:
            return int((await self._session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to count credentials") from e

    async def _scalar(self, stmt) -> CredentialRow | None:
        try:
            return (await self._session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to read credentials") from e


def _row_to_credential(row: CredentialRow) -> Credential:
    return Credential(
        id=row.id,
        holder_name=row.holder_name,
        issuer=row.issuer,
        issued_date=row.issued_date,
        credential_type=row.credential_type,
        expiry_date=row.expiry_date,
        worker_id=row.worker_id,
        signature=row.signature,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
