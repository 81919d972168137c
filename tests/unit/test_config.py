from pathlib import Path

import pytest

from sfstack.app_shell.config import (
    AppConfig,
    ConfigError,
    describe_config,
    env_name,
    load_config,
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "app.config.yaml"
    path.write_text(
        """
general:
  name: Test Stack
  initial_admin_registration: true
server:
  http:
    port: 9000
  data_dir: /srv/data
bootstrap:
  lock_timeout_seconds: 2.5
"""
    )
    return path


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.yaml", environ={})

    assert cfg == AppConfig()
    assert cfg.general.initial_admin_registration is True
    assert cfg.server.http.port == 8161
    assert cfg.bootstrap.lock_timeout_seconds is None


def test_load_yaml(config_file):
    cfg = load_config(config_file, environ={})

    assert cfg.general.name == "Test Stack"
    assert cfg.server.http.port == 9000
    assert cfg.server.http.address == "0.0.0.0"
    assert cfg.bootstrap.lock_timeout_seconds == 2.5
    assert cfg.db_path == Path("/srv/data") / "data.db"


def test_env_overrides_yaml(config_file):
    cfg = load_config(
        config_file,
        environ={
            "APP_GENERAL_INITIAL_ADMIN_REGISTRATION": "false",
            "APP_SERVER_HTTP_PORT": "9100",
            "APP_SERVER_ALLOWED_ORIGINS": "http://a.test, http://b.test",
            "APP_AUTH_TOKEN_TTL_MINUTES": "",
        },
    )

    assert cfg.general.initial_admin_registration is False
    assert cfg.server.http.port == 9100
    assert cfg.server.allowed_origins == ["http://a.test", "http://b.test"]
    # Empty values are ignored
    assert cfg.auth.token_ttl_minutes == 60 * 24
    # Untouched YAML values survive
    assert cfg.general.name == "Test Stack"


def test_config_path_from_environment(config_file):
    cfg = load_config(environ={"APP_CONFIG_PATH": str(config_file)})

    assert cfg.server.http.port == 9000


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("general: [unclosed")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path, environ={})


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(path, environ={})


def test_invalid_value(tmp_path):
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(tmp_path / "nope.yaml", environ={"APP_SERVER_HTTP_PORT": "eighty"})


def test_env_name():
    assert env_name(("general", "initial_admin_registration")) == (
        "APP_GENERAL_INITIAL_ADMIN_REGISTRATION"
    )


def test_describe_config_lists_every_leaf():
    entries = {e.path: e for e in describe_config(AppConfig())}

    registration = entries["general.initial_admin_registration"]
    assert registration.env == "APP_GENERAL_INITIAL_ADMIN_REGISTRATION"
    assert registration.value is True
    assert registration.description

    assert entries["rate_limits.bootstrap.max_attempts"].value == 5
    assert "server.http" not in entries
