import sqlite3

import pytest

from sfstack.adapters.sqlite.data_migrations import DATA_MIGRATIONS, apply_migrations
from sfstack.adapters.sqlite.migrator import MIGRATIONS_DIR, MigrationError, SQLiteMigrator
from sfstack.domain.entities import INITIAL_SUPERUSER_EMAIL


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def _applied(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return [row[0] for row in conn.execute("SELECT filename FROM _migrations ORDER BY id")]
    finally:
        conn.close()


def test_migrator_creates_migration_table(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path)
    migrator.run_migrations()

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='_migrations'"
    )
    assert cursor.fetchone() is not None
    conn.close()


def test_schema_migration_creates_collections(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()

    conn = sqlite3.connect(temp_db_path)
    tables = {
        row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    conn.close()

    assert {"users", "superusers"} <= tables


def test_apply_migrations_seeds_placeholder(temp_db_path):
    applied = apply_migrations(temp_db_path)

    assert applied == ["0000_initial_schema.sql", "0001_create_default_superuser"]
    assert _applied(temp_db_path) == applied

    conn = sqlite3.connect(temp_db_path)
    rows = conn.execute("SELECT email, password_hash FROM superusers").fetchall()
    conn.close()

    assert len(rows) == 1
    assert rows[0][0] == INITIAL_SUPERUSER_EMAIL
    assert rows[0][1].startswith("$argon2")


def test_apply_migrations_is_idempotent(temp_db_path):
    apply_migrations(temp_db_path)
    assert apply_migrations(temp_db_path) == []

    conn = sqlite3.connect(temp_db_path)
    assert conn.execute("SELECT count(*) FROM superusers").fetchone()[0] == 1
    conn.close()


def test_apply_migrations_creates_data_dir(tmp_path):
    db_path = tmp_path / "nested" / "pb_data" / "data.db"

    apply_migrations(str(db_path))

    assert db_path.exists()


def test_pending(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path, data_migrations=DATA_MIGRATIONS)
    assert migrator.pending() == ["0000_initial_schema.sql", "0001_create_default_superuser"]

    migrator.run_migrations()

    assert migrator.pending() == []


def test_down_section_is_not_applied(tmp_path):
    migrations_dir = tmp_path / "migrations"
    migrations_dir.mkdir()
    (migrations_dir / "0000_things.sql").write_text(
        "-- Up\nCREATE TABLE things (id TEXT);\n\n-- Down\nDROP TABLE things;\n"
    )
    db_path = str(tmp_path / "test.db")

    SQLiteMigrator(db_path, migrations_dir).run_migrations()

    conn = sqlite3.connect(db_path)
    assert conn.execute("SELECT count(*) FROM things").fetchone()[0] == 0
    conn.close()


def test_failed_data_migration_is_not_recorded(temp_db_path):
    def broken(conn):
        conn.execute("INSERT INTO superusers (id) VALUES ('x')")

    migrator = SQLiteMigrator(temp_db_path, data_migrations={"0001_broken": broken})

    with pytest.raises(MigrationError) as exc_info:
        migrator.run_migrations()

    assert exc_info.value.name == "0001_broken"
    assert _applied(temp_db_path) == ["0000_initial_schema.sql"]

    conn = sqlite3.connect(temp_db_path)
    assert conn.execute("SELECT count(*) FROM superusers").fetchone()[0] == 0
    conn.close()


def test_migrations_ship_with_package():
    assert (MIGRATIONS_DIR / "0000_initial_schema.sql").is_file()
