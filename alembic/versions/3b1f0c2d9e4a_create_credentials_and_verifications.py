"""create credentials and verifications

Revision ID: 3b1f0c2d9e4a
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f0c2d9e4a"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("holder_name", sa.String(length=100), nullable=False),
        sa.Column("issuer", sa.String(length=255), nullable=False),
        sa.Column("issued_date", sa.String(length=32), nullable=False),
        sa.Column("credential_type", sa.String(length=32), nullable=False),
        sa.Column("expiry_date", sa.String(length=32), nullable=False),
        sa.Column("signature", sa.String(length=64), nullable=False),
        sa.Column("worker_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.String(length=32), nullable=False),
        sa.Column("updated_at", sa.String(length=32), nullable=False),
        sa.UniqueConstraint(
            "holder_name", "credential_type", name="uq_credentials_holder_type"
        ),
    )
    op.create_index("ix_credentials_created_at", "credentials", ["created_at"])

    op.create_table(
        "verifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("credential_id", sa.String(length=64), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("is_expired", sa.Boolean(), nullable=False),
        sa.Column("verification_status", sa.String(length=32), nullable=False),
        sa.Column("verified_by", sa.String(length=128), nullable=False),
        sa.Column("verified_at", sa.String(length=32), nullable=False),
        sa.Column("issuer_worker_id", sa.String(length=128), nullable=True),
        sa.Column("issued_date", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.String(length=32), nullable=False),
    )
    op.create_index(
        "ix_verifications_credential_id", "verifications", ["credential_id"]
    )
    op.create_index("ix_verifications_created_at", "verifications", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_verifications_created_at", table_name="verifications")
    op.drop_index("ix_verifications_credential_id", table_name="verifications")
    op.drop_table("verifications")
    op.drop_index("ix_credentials_created_at", table_name="credentials")
    op.drop_table("credentials")
