import argparse
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from sfstack.adapters.auth.crypto import JWTAuthAdapter
from sfstack.adapters.sqlite.data_migrations import apply_migrations
from sfstack.adapters.sqlite.repos import SQLiteRecordStore
from sfstack.app_shell.config import (
    CONFIG_PATH_ENV,
    AppConfig,
    ConfigError,
    describe_config,
    load_config,
)
from sfstack.components.bootstrap import BootstrapError, BootstrapGate

logger = logging.getLogger("cli")


def handle_serve(cfg: AppConfig, args: argparse.Namespace) -> None:
    import uvicorn

    host = args.host or cfg.server.http.address
    port = args.port or cfg.server.http.port
    dev = args.dev or cfg.server.force_dev_mode

    applied = apply_migrations(str(cfg.db_path))
    logger.info("Database %s ready (%d migrations applied)", cfg.db_path, len(applied))

    uvicorn.run(
        "sfstack.api.main:app",
        host=host,
        port=port,
        reload=dev,
        log_level="debug" if dev else "info",
    )


def handle_migrate(cfg: AppConfig, args: argparse.Namespace) -> None:
    applied = apply_migrations(str(cfg.db_path))
    if applied:
        for name in applied:
            print(f"Applied: {name}")
    else:
        print("Nothing to apply.")


def handle_config(cfg: AppConfig, args: argparse.Namespace) -> None:
    print("--- Loaded Configuration ---")
    for entry in describe_config(cfg):
        print(f"  {entry.path}: {entry.value}")

    print("")
    print("--- Environment Variable Mappings ---")
    for entry in describe_config(cfg):
        print(f"  {entry.env}")
        print(f"    Path:        {entry.path}")
        print(f"    Description: {entry.description}")
        env_value = os.environ.get(entry.env)
        if env_value:
            print(f"    Env Value:   {env_value}")


def handle_status(cfg: AppConfig, args: argparse.Namespace) -> None:
    if not cfg.db_path.exists():
        print(f"Database {cfg.db_path} does not exist yet; run 'migrate' first.")
        sys.exit(1)

    store = SQLiteRecordStore(
        str(cfg.db_path),
        query_timeout_seconds=cfg.server.database.query_timeout_seconds,
    )
    gate = BootstrapGate(store=store, auth_adapter=JWTAuthAdapter())
    try:
        exists = gate.check_exists()
    except BootstrapError as e:
        logger.error("Could not determine bootstrap state: %s", e)
        sys.exit(1)

    if exists:
        print("Initialized: user accounts exist, first-user registration is closed.")
    elif cfg.general.initial_admin_registration:
        print("Fresh install: the first admin can be created via POST /api/user/create.")
    else:
        print("Fresh install, but initial admin registration is disabled in the configuration.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simple Frontend Stack backend")
    parser.add_argument(
        "--config",
        help=f"Path to the YAML config file (default: ${CONFIG_PATH_ENV} or ./app.config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run migrations and start the HTTP server")
    serve_parser.add_argument("--host", help="Override server.http.address")
    serve_parser.add_argument("--port", type=int, help="Override server.http.port")
    serve_parser.add_argument("--dev", action="store_true", help="Auto-reload and debug logging")

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # config
    subparsers.add_parser("config", help="Print the effective configuration")

    # status
    subparsers.add_parser("status", help="Show whether the first admin can still be created")

    return parser


HANDLERS = {
    "serve": handle_serve,
    "migrate": handle_migrate,
    "config": handle_config,
    "status": handle_status,
}


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    if args.config:
        # The served app loads its own config; point it at the same file
        os.environ[CONFIG_PATH_ENV] = args.config

    try:
        cfg = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    HANDLERS[args.command](cfg, args)


if __name__ == "__main__":
    main()
