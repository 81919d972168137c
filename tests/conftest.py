import sqlite3

import pytest
from fastapi.testclient import TestClient

from sfstack.adapters.sqlite.data_migrations import apply_migrations
from sfstack.adapters.sqlite.repos import SQLiteRecordStore
from sfstack.api.deps import get_rate_limiter, get_settings
from sfstack.api.main import app
from sfstack.app_shell.config import AppConfig, ServerConfig
from sfstack.app_shell.rate_limit import RateLimiter

PASSWORD = "correct-horse-battery"


@pytest.fixture
def app_config(tmp_path):
    """Default configuration with the database under a temporary directory."""
    return AppConfig(server=ServerConfig(data_dir=str(tmp_path / "pb_data")))


@pytest.fixture
def db_path(app_config):
    return str(app_config.db_path)


@pytest.fixture
def migrated_db(db_path):
    """A freshly initialized database: schema plus the placeholder superuser."""
    apply_migrations(db_path)
    return db_path


@pytest.fixture
def store(migrated_db):
    return SQLiteRecordStore(migrated_db)


@pytest.fixture
def db_conn(migrated_db):
    conn = sqlite3.connect(migrated_db)
    yield conn
    conn.close()


@pytest.fixture
def client(app_config, migrated_db):
    """
    TestClient against the real app with settings pointed at the temp database.
    Every request gets a fresh rate limiter unless a test installs its own.
    """
    app.dependency_overrides[get_settings] = lambda: app_config
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(app_config.rate_limits)
    yield TestClient(app)
    app.dependency_overrides.clear()
