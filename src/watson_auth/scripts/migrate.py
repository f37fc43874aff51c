# src/watson_auth/scripts/migrate.py
from __future__ import annotations

import os

from alembic import command
from alembic.config import Config

from watson_auth.core.settings import get_settings

PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..", "..", "..")


def run_upgrade_head() -> None:
    cfg = Config(os.path.join(PROJECT_ROOT, "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", get_settings().database_url)
    cfg.set_main_option("script_location", os.path.abspath(os.path.join(PROJECT_ROOT, "migrations")))
    command.upgrade(cfg, "head")


if __name__ == "__main__":
    run_upgrade_head()
