"""Background removal of expired nonces and sessions.

Expiry is enforced lazily on every lookup; this worker only keeps the tables
from growing without bound.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from watson_auth.services.errors import StoreUnavailableError
from watson_auth.services.nonce_store import NonceStore
from watson_auth.services.sessions import SessionManager

DEFAULT_NONCE_RETENTION = timedelta(days=1)

logger = logging.getLogger(__name__)


class ExpiredRecordSweeper:
    """Periodically purges expired rows on a dedicated database session."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        interval_seconds: float,
        nonce_retention: timedelta = DEFAULT_NONCE_RETENTION,
    ) -> None:
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.nonce_retention = nonce_retention
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop; a non-positive interval disables it."""
        if self.interval_seconds <= 0:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop and wait for it to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> tuple[int, int]:
        """Purge expired records and return ``(nonces, sessions)`` removed."""
        db = self.session_factory()
        try:
            nonces = NonceStore(db).purge_expired(retention=self.nonce_retention)
            sessions = SessionManager(db).purge_expired()
        finally:
            db.close()
        logger.debug("Swept %d expired nonces and %d expired sessions", nonces, sessions)
        return nonces, sessions

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except StoreUnavailableError as e:
                logger.warning("ExpiredRecordSweeper could not reach the store: %s", e)
            except SQLAlchemyError as e:
                logger.error(
                    "ExpiredRecordSweeper encountered database error: %s", e, exc_info=True
                )

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                continue
