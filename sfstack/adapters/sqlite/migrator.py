import logging
import os
import sqlite3
from collections.abc import Callable, Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

DataMigration = Callable[[sqlite3.Connection], None]

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


class MigrationError(RuntimeError):
    """Raised when a migration fails; the failing migration is not recorded."""

    def __init__(self, name: str, cause: Exception) -> None:
        self.name = name
        super().__init__(f"Migration {name} failed: {cause}")


class SQLiteMigrator:
    """Applies ``.sql`` files and Python data migrations in name order.

    SQL files run their ``-- Up`` part (everything before ``-- Down``).
    Data migrations are callables keyed by name that receive the open
    connection; their writes are committed together with the bookkeeping row.
    """

    def __init__(
        self,
        db_path: str,
        migrations_dir: str | Path = MIGRATIONS_DIR,
        data_migrations: Mapping[str, DataMigration] | None = None,
    ):
        self.db_path = db_path
        self.migrations_dir = str(migrations_dir)
        self.data_migrations = dict(data_migrations or {})

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _ensure_migration_table(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)

    def _get_applied_migrations(self, conn: sqlite3.Connection) -> set[str]:
        cursor = conn.execute("SELECT filename FROM _migrations")
        return {row[0] for row in cursor.fetchall()}

    def pending(self) -> list[str]:
        conn = self._get_connection()
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)
        finally:
            conn.close()
        return [name for name in self._all_migrations() if name not in applied]

    def _all_migrations(self) -> list[str]:
        files = [f for f in os.listdir(self.migrations_dir) if f.endswith(".sql")]
        return sorted([*files, *self.data_migrations])

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the names applied."""
        conn = self._get_connection()
        applied_now: list[str] = []
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)

            for name in self._all_migrations():
                if name in applied:
                    continue
                logger.info("Applying migration: %s", name)
                if name in self.data_migrations:
                    self._apply_data_migration(conn, name)
                else:
                    self._apply_migration(conn, name)
                applied_now.append(name)

            logger.info("All migrations applied (%d new).", len(applied_now))
            return applied_now
        finally:
            conn.close()

    def _read_up_script(self, filename: str) -> str:
        path = os.path.join(self.migrations_dir, filename)
        with open(path) as f:
            content = f.read()

        if "-- Down" in content:
            return content.split("-- Down")[0]
        return content

    def _apply_migration(self, conn: sqlite3.Connection, filename: str) -> None:
        script = self._read_up_script(filename)
        try:
            conn.executescript(script)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (filename,))
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise MigrationError(filename, e) from e

    def _apply_data_migration(self, conn: sqlite3.Connection, name: str) -> None:
        try:
            self.data_migrations[name](conn)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (name,))
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise MigrationError(name, e) from e
