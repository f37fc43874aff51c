"""One-time challenge nonces backed by the relational store."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from watson_auth.core.security import generate_token_hex
from watson_auth.db.time import utcnow
from watson_auth.models import AuthNonce
from watson_auth.services.errors import (
    NonceAlreadyUsedError,
    NonceExpiredError,
    NonceNotFoundError,
    StoreUnavailableError,
)

# 128 bits of entropy, hex encoded
NONCE_BYTES = 16

logger = logging.getLogger(__name__)


class NonceStore:
    """Issues nonces and consumes each of them at most once."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def issue(self, ttl: timedelta) -> AuthNonce:
        """Persist a fresh unconsumed nonce that expires ``ttl`` from now."""
        nonce = AuthNonce(
            value=generate_token_hex(NONCE_BYTES),
            expires_at=utcnow() + ttl,
            consumed=False,
        )
        try:
            self.db.add(nonce)
            self.db.commit()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        logger.debug("Issued nonce expiring at %s", nonce.expires_at.isoformat())
        return nonce

    def try_consume(self, value: str) -> None:
        """Atomically mark ``value`` consumed.

        The existence, consumed and expiry checks and the write are a single
        conditional UPDATE, so of any number of concurrent callers presenting
        the same nonce exactly one succeeds. The follow-up read only classifies
        an already-decided failure.

        Raises:
            NonceNotFoundError: No such nonce was issued.
            NonceAlreadyUsedError: The nonce was consumed before.
            NonceExpiredError: The nonce expired before this attempt.
        """
        now = utcnow()
        try:
            updated = (
                self.db.query(AuthNonce)
                .filter(
                    AuthNonce.value == value,
                    AuthNonce.consumed.is_(False),
                    AuthNonce.expires_at > now,
                )
                .update({AuthNonce.consumed: True}, synchronize_session=False)
            )
            if updated == 1:
                self.db.commit()
                return
            # Column query so the identity map cannot serve a stale flag
            row = self.db.query(AuthNonce.consumed).filter(AuthNonce.value == value).first()
            consumed = None if row is None else row.consumed
            self.db.rollback()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err

        if consumed is None:
            logger.info("Nonce consumption failed: not found")
            raise NonceNotFoundError()
        if consumed:
            logger.info("Nonce consumption failed: already used")
            raise NonceAlreadyUsedError()
        logger.info("Nonce consumption failed: expired")
        raise NonceExpiredError()

    def purge_expired(
        self, now: datetime | None = None, retention: timedelta = timedelta(0)
    ) -> int:
        """Delete nonces expired for longer than ``retention``; return the count.

        Until a row is deleted, :meth:`try_consume` still reports it as expired
        or already used rather than unknown.
        """
        cutoff = (now or utcnow()) - retention
        try:
            deleted = (
                self.db.query(AuthNonce)
                .filter(AuthNonce.expires_at <= cutoff)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except OperationalError as err:
            self.db.rollback()
            raise StoreUnavailableError() from err
        return int(deleted)
