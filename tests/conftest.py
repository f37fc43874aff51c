# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SIWE_DOMAIN", "app.example")
os.environ.setdefault("SIWE_ORIGIN", "https://app.example")
os.environ.setdefault("SIWE_CHAIN_ID", "1")
os.environ.setdefault("RPC_URL", "http://rpc.test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("VERIFY_CHAIN_ON_STARTUP", "false")
os.environ.setdefault("SWEEP_INTERVAL_SECONDS", "0")

from watson_auth.api.v1.dependencies import get_chain
from watson_auth.core.settings import Settings, get_settings
from watson_auth.db.session import Base, sqlite_connect_args
from watson_auth.db.session import get_db as app_get_session
from watson_auth.main import app as fastapi_app
from watson_auth.services.chain import ChainClient

TEST_DB_URL = "sqlite://"

# Well-known throwaway key; never holds funds
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_PRIVATE_KEY = "0x" + "11" * 32


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args=sqlite_connect_args(),
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide the Settings instance the application was configured with."""
    return get_settings()


@pytest.fixture()
def chain() -> AsyncMock:
    """Chain collaborator that reports every address as an EOA."""
    mock = AsyncMock(spec=ChainClient)
    mock.code_at.return_value = b""
    mock.call.return_value = b""
    return mock


@pytest.fixture()
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def override_settings(app: FastAPI) -> Iterator[Callable[..., Settings]]:
    """Return a callable that swaps in settings with the given field overrides."""

    def _apply(**updates: Any) -> Settings:
        updated = get_settings().model_copy(update=updates)
        app.dependency_overrides[get_settings] = lambda: updated
        return updated

    try:
        yield _apply
    finally:
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture(autouse=True)
def override_dependencies(app: FastAPI, db_session: Session, chain: AsyncMock) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_chain] = lambda: chain
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_chain, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    # https so the Secure session cookie is sent back
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client


@pytest.fixture()
def account() -> LocalAccount:
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture()
def other_account() -> LocalAccount:
    return Account.from_key(OTHER_PRIVATE_KEY)


def sign_text(account: LocalAccount, message: str) -> str:
    """Return a 0x-prefixed personal_sign signature over ``message``."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()
