# src/watson_auth/models/nonce.py
"""One-time sign-in challenge tokens."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from watson_auth.db.session import Base
from watson_auth.db.time import utcnow


class AuthNonce(Base):
    """A challenge nonce; accepted at most once and only before ``expires_at``."""

    __tablename__ = "auth_nonce"

    value: Mapped[str] = mapped_column(Text, primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (Index("ix_auth_nonce_expires_at", "expires_at"),)
