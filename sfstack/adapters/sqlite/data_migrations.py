"""Python data migrations, applied by ``SQLiteMigrator`` alongside the SQL files."""

import logging
import secrets
import sqlite3
from pathlib import Path

from sfstack.adapters.sqlite.migrator import DataMigration, SQLiteMigrator
from sfstack.adapters.sqlite.repos import SQLiteRecordSession
from sfstack.api.auth_utils import get_password_hash
from sfstack.domain.entities import INITIAL_SUPERUSER_EMAIL, Superuser

logger = logging.getLogger(__name__)


def create_default_superuser(conn: sqlite3.Connection) -> None:
    """Seed the placeholder superuser.

    Its password is random and never shown to anyone; the account only
    exists until the first real user is created through the bootstrap gate.
    """
    placeholder = Superuser(
        email=INITIAL_SUPERUSER_EMAIL,
        password_hash=get_password_hash(secrets.token_urlsafe(32)),
    )
    SQLiteRecordSession(conn).save(placeholder)
    logger.info("Placeholder superuser %s created", INITIAL_SUPERUSER_EMAIL)


DATA_MIGRATIONS: dict[str, DataMigration] = {
    "0001_create_default_superuser": create_default_superuser,
}


def apply_migrations(db_path: str) -> list[str]:
    """Create the database if needed and bring it up to date."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(db_path, data_migrations=DATA_MIGRATIONS)
    return migrator.run_migrations()
