"""Session lifecycle: create, resolve, revoke."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from watson_auth.core.security import generate_token_urlsafe, hash_token
from watson_auth.db.time import as_utc, utcnow
from watson_auth.models import AuthSession
from watson_auth.services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted session; ``id`` is the only copy of the raw credential."""

    id: str
    address: str
    expires_at: datetime


class SessionManager:
    """Owns the ``auth_session`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, address: str, ttl: timedelta) -> IssuedSession:
        """Mint a session bound to ``address`` (stored lowercased)."""
        sid = generate_token_urlsafe()
        record = AuthSession(
            sid_hash=hash_token(sid),
            address=address.lower(),
            expires_at=utcnow() + ttl,
        )
        try:
            self.db.add(record)
            self.db.commit()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        logger.info("Session created for %s", record.address)
        return IssuedSession(id=sid, address=record.address, expires_at=record.expires_at)

    def resolve(self, session_id: str) -> str | None:
        """Return the bound address, or None if absent or expired."""
        if not session_id:
            return None
        try:
            record = (
                self.db.query(AuthSession)
                .filter(AuthSession.sid_hash == hash_token(session_id))
                .first()
            )
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        if record is None:
            return None
        if as_utc(record.expires_at) <= utcnow():
            return None
        return record.address

    def revoke(self, session_id: str) -> None:
        """Delete the session if present. Revoking an unknown id is a no-op."""
        if not session_id:
            return
        try:
            deleted = (
                self.db.query(AuthSession)
                .filter(AuthSession.sid_hash == hash_token(session_id))
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        if deleted:
            logger.info("Session revoked")

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete sessions past their expiry and return how many were removed."""
        cutoff = now or utcnow()
        try:
            deleted = (
                self.db.query(AuthSession)
                .filter(AuthSession.expires_at <= cutoff)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        return int(deleted)
