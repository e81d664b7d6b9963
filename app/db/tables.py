"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.

Timestamps are stored as the exact ISO strings the services produced.  The
credential columns in particular must round-trip byte-for-byte, since the
signature covers their text.  The fixed-width ``…Z`` format also sorts
chronologically as plain text.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class CredentialRow(Base):
    __tablename__ = "credentials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    holder_name: Mapped[str] = mapped_column(String(100), nullable=False)
    issuer: Mapped[str] = mapped_column(String(255), nullable=False)
    issued_date: Mapped[str] = mapped_column(String(32), nullable=False)
    credential_type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # certificate|license|badge|diploma|permit|qualification
    expiry_date: Mapped[str] = mapped_column(String(32), nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)
    worker_id: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False)

    # One credential per holder and type.  Enforced here rather than by a
    # read-before-write so concurrent issuance cannot slip a second row in.
    __table_args__ = (
        UniqueConstraint(
            "holder_name", "credential_type", name="uq_credentials_holder_type"
        ),
        Index("ix_credentials_created_at", "created_at"),
    )


class VerificationRow(Base):
    __tablename__ = "verifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    credential_id: Mapped[str] = mapped_column(String(64), nullable=False)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False)
    verification_status: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # valid|invalid|expired|not_found|signature_mismatch
    verified_by: Mapped[str] = mapped_column(String(128), nullable=False)
    verified_at: Mapped[str] = mapped_column(String(32), nullable=False)
    issuer_worker_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    issued_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("ix_verifications_credential_id", "credential_id"),
        Index("ix_verifications_created_at", "created_at"),
    )
