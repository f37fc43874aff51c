"""Schema creation through Alembic and the local init helper."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from watson_auth.db.session import Base
from watson_auth.init_db import init_db
from watson_auth.scripts.migrate import run_upgrade_head


def _columns(engine, table: str) -> set[str]:
    return {column["name"] for column in inspect(engine).get_columns(table)}


def test_upgrade_head_matches_models(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("ALEMBIC_URL", url)

    run_upgrade_head()

    engine = create_engine(url)
    try:
        assert {"auth_nonce", "auth_session", "alembic_version"} <= set(
            inspect(engine).get_table_names()
        )
        for table in Base.metadata.sorted_tables:
            assert _columns(engine, table.name) == {column.name for column in table.columns}
    finally:
        engine.dispose()


def test_init_db_creates_tables(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'local.db'}")
    monkeypatch.setattr("watson_auth.db.session.get_engine", lambda: engine)
    try:
        init_db()
        assert {"auth_nonce", "auth_session"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
