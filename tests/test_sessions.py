"""Tests for session creation, lookup and revocation."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.orm import Session

from watson_auth.core.security import hash_token
from watson_auth.models import AuthSession
from watson_auth.services.sessions import SessionManager

ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


def test_create_and_resolve_lowercases_address(db_session: Session) -> None:
    manager = SessionManager(db_session)
    session = manager.create(ADDRESS, timedelta(minutes=15))

    assert session.address == ADDRESS.lower()
    assert manager.resolve(session.id) == ADDRESS.lower()


def test_session_ids_are_unique_and_stored_hashed(db_session: Session) -> None:
    manager = SessionManager(db_session)
    first = manager.create(ADDRESS, timedelta(minutes=15))
    second = manager.create(ADDRESS, timedelta(minutes=15))

    assert first.id != second.id
    stored = {row.sid_hash for row in db_session.query(AuthSession).all()}
    assert stored == {hash_token(first.id), hash_token(second.id)}
    assert first.id not in stored


def test_expired_session_resolves_as_absent(db_session: Session) -> None:
    manager = SessionManager(db_session)
    session = manager.create(ADDRESS, timedelta(seconds=-1))

    assert manager.resolve(session.id) is None


def test_resolve_unknown_or_empty_id(db_session: Session) -> None:
    manager = SessionManager(db_session)
    assert manager.resolve("not-a-session") is None
    assert manager.resolve("") is None


def test_revoke_is_idempotent(db_session: Session) -> None:
    manager = SessionManager(db_session)
    session = manager.create(ADDRESS, timedelta(minutes=15))

    manager.revoke(session.id)
    assert manager.resolve(session.id) is None
    manager.revoke(session.id)
    manager.revoke("never-issued")


def test_purge_expired_sessions(db_session: Session) -> None:
    manager = SessionManager(db_session)
    live = manager.create(ADDRESS, timedelta(minutes=15))
    manager.create(ADDRESS, timedelta(seconds=-5))

    assert manager.purge_expired() == 1
    assert manager.resolve(live.id) == ADDRESS.lower()
