# src/watson_auth/models/session.py
"""Server-side session records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from watson_auth.db.session import Base
from watson_auth.db.time import utcnow


class AuthSession(Base):
    """Session bound to a verified address.

    Only the SHA-256 of the session id is stored; the raw id lives in the
    client's cookie.
    """

    __tablename__ = "auth_session"

    sid_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Lowercase 0x-prefixed hex
    address: Mapped[str] = mapped_column(String(42), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_auth_session_address", "address"),
        Index("ix_auth_session_expires_at", "expires_at"),
    )
