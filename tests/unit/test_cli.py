import pytest

from sfstack.adapters.sqlite.repos import SQLiteRecordStore
from sfstack.app_shell import cli
from sfstack.domain.entities import User


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "app.config.yaml"
    path.write_text(f"server:\n  data_dir: {tmp_path / 'pb_data'}\n")
    # main() exports --config to the environment; restore it afterwards
    monkeypatch.setenv("APP_CONFIG_PATH", str(path))
    return path


def test_migrate_then_nothing_to_apply(config_path, capsys):
    cli.main(["--config", str(config_path), "migrate"])
    out = capsys.readouterr().out
    assert "Applied: 0000_initial_schema.sql" in out
    assert "Applied: 0001_create_default_superuser" in out

    cli.main(["--config", str(config_path), "migrate"])
    assert "Nothing to apply." in capsys.readouterr().out


def test_status_before_migrate_fails(config_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--config", str(config_path), "status"])

    assert exc_info.value.code == 1
    assert "run 'migrate' first" in capsys.readouterr().out


def test_status_fresh_then_initialized(config_path, tmp_path, capsys):
    cli.main(["--config", str(config_path), "migrate"])
    capsys.readouterr()

    cli.main(["--config", str(config_path), "status"])
    assert "Fresh install" in capsys.readouterr().out

    store = SQLiteRecordStore(str(tmp_path / "pb_data" / "data.db"))
    store.save(User(email="a@example.com", password_hash="h"))

    cli.main(["--config", str(config_path), "status"])
    assert "Initialized" in capsys.readouterr().out


def test_status_registration_disabled(config_path, monkeypatch, capsys):
    monkeypatch.setenv("APP_GENERAL_INITIAL_ADMIN_REGISTRATION", "false")
    cli.main(["--config", str(config_path), "migrate"])
    capsys.readouterr()

    cli.main(["--config", str(config_path), "status"])

    assert "disabled" in capsys.readouterr().out


def test_config_command(config_path, capsys):
    cli.main(["--config", str(config_path), "config"])

    out = capsys.readouterr().out
    assert "--- Loaded Configuration ---" in out
    assert "general.initial_admin_registration: True" in out
    assert "APP_GENERAL_INITIAL_ADMIN_REGISTRATION" in out


def test_invalid_config_exits(tmp_path, monkeypatch):
    path = tmp_path / "bad.yaml"
    monkeypatch.setenv("APP_CONFIG_PATH", str(path))
    path.write_text("server: [unclosed")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--config", str(path), "config"])

    assert exc_info.value.code == 1


def test_command_required():
    with pytest.raises(SystemExit):
        cli.main([])
