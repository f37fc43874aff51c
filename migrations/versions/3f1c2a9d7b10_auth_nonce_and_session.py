"""auth nonce and session tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-18 09:12:41.503218

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create nonce and session storage."""
    op.create_table(
        "auth_nonce",
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("value"),
    )
    op.create_index("ix_auth_nonce_expires_at", "auth_nonce", ["expires_at"])

    op.create_table(
        "auth_session",
        sa.Column("sid_hash", sa.String(length=64), nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("sid_hash"),
    )
    op.create_index("ix_auth_session_address", "auth_session", ["address"])
    op.create_index("ix_auth_session_expires_at", "auth_session", ["expires_at"])


def downgrade() -> None:
    """Drop nonce and session storage."""
    op.drop_index("ix_auth_session_expires_at", table_name="auth_session")
    op.drop_index("ix_auth_session_address", table_name="auth_session")
    op.drop_table("auth_session")
    op.drop_index("ix_auth_nonce_expires_at", table_name="auth_nonce")
    op.drop_table("auth_nonce")
