"""SQLAlchemy implementation of VerificationRepo (PostgreSQL or SQLite).

add() commits, so a verification result is stored before its verdict is
returned.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import VerificationRow
from app.models.verification import VerificationResult
from app.repos.errors import StoreUnavailableError


class SqlVerificationRepo:
    """Satisfies the VerificationRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, result: VerificationResult) -> None:
        self._session.add(VerificationRow(**result.to_dict()))
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise StoreUnavailableError("failed to save verification record") from e

    async def get_by_id(self, verification_id: str) -> VerificationResult | None:
        stmt = select(VerificationRow).where(VerificationRow.id == verification_id)
        try:
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to read verification") from e
        return _row_to_result(row) if row is not None else None

    async def list_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationResult]:
        stmt = (
            select(VerificationRow)
            .where(VerificationRow.credential_id == credential_id)
            .order_by(VerificationRow.created_at.desc(), VerificationRow.id)
        )
        return await self._all(stmt)

    async def list_recent(self, limit: int, offset: int) -> list[VerificationResult]:
        stmt = (
            select(VerificationRow)
            .order_by(VerificationRow.created_at.desc(), VerificationRow.id)
            .limit(limit)
            .offset(offset)
        )
        return await self._all(stmt)

    async def count(self) -> int:
        stmt = select(func.count()).select_from(VerificationRow)
        try:
            return int((await self._session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to count verifications") from e

    async def _all(self, stmt) -> list[VerificationResult]:
        try:
            rows = (await self._session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StoreUnavailableError("failed to list verifications") from e
        return [_row_to_result(r) for r in rows]


def _row_to_result(row: VerificationRow) -> VerificationResult:
    return VerificationResult(
        id=row.id,
        credential_id=row.credential_id,
        is_valid=bool(row.is_valid),
        is_expired=bool(row.is_expired),
        verification_status=row.verification_status,  # type: ignore[arg-type]
        verified_by=row.verified_by,
        verified_at=row.verified_at,
        created_at=row.created_at,
        issuer_worker_id=row.issuer_worker_id,
        issued_date=row.issued_date,
    )
