"""
Programmatic Alembic migration runner.

Databases created by the earlier schema tooling already hold the registry
tables but no ``alembic_version``; those are stamped at the initial
revision before upgrading.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import psycopg2
from alembic import command
from alembic.config import Config

from gateway.persistence.database import get_database_url

logger = logging.getLogger("whatsapp-gateway")

_INITIAL_REVISION = "001"


def _get_alembic_config() -> Config:
    """Resolve and return an Alembic Config object."""
    ini_path = os.environ.get("ALEMBIC_INI")
    if ini_path is None:
        ini_path = str(Path(__file__).resolve().parent.parent / "alembic.ini")
    cfg = Config(ini_path)
    cfg.set_main_option(
        "script_location", str(Path(__file__).resolve().parent.parent / "migrations")
    )
    return cfg


def _table_exists(cur: psycopg2.extensions.cursor, name: str) -> bool:
    cur.execute(
        "SELECT 1 FROM information_schema.tables WHERE table_name = %s", (name,)
    )
    return cur.fetchone() is not None


def _is_pre_existing_database() -> bool:
    """Check if the DB has registry tables but no alembic_version table.

    Uses a direct connection (not from the pool) so this can run
    before the pool is ready.
    """
    conn = psycopg2.connect(get_database_url())
    try:
        with conn.cursor() as cur:
            return _table_exists(cur, "instances") and not _table_exists(cur, "alembic_version")
    finally:
        conn.close()


def run_migrations() -> None:
    """Bring the database to the latest revision."""
    cfg = _get_alembic_config()

    if _is_pre_existing_database():
        logger.info(
            "Pre-existing database detected, stamping revision %s",
            _INITIAL_REVISION,
        )
        command.stamp(cfg, _INITIAL_REVISION)

    logger.info("Running database migrations (upgrade to head)")
    command.upgrade(cfg, "head")
    logger.info("Database migrations complete")
