"""
Application configuration.

Loaded from a YAML file (``app.config.yaml`` by default, or the path in
``APP_CONFIG_PATH``) and then overridden leaf by leaf from environment
variables named ``APP_<SECTION>_<FIELD>``, e.g.
``APP_GENERAL_INITIAL_ADMIN_REGISTRATION=false`` or
``APP_SERVER_HTTP_PORT=9000``. List values are comma separated.
"""

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, get_origin

import yaml
from pydantic import BaseModel, Field, ValidationError

CONFIG_PATH_ENV = "APP_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path("app.config.yaml")
ENV_PREFIX = "APP"


class ConfigError(Exception):
    """Configuration file or environment could not be turned into an AppConfig."""


class GeneralConfig(BaseModel):
    name: str = Field("Simple Frontend Stack", description="The application name.")
    description: str = Field(
        "PocketBase-style backend for a single-page frontend.",
        description="A brief description of the application.",
    )
    version: str = Field("0.1.0", description="The current version of the application.")
    url: str = Field("http://localhost:8161", description="The URL this application is hosted at.")
    initial_admin_registration: bool = Field(
        True,
        description="Allow creating the first admin account through the API while no users exist.",
    )


class HTTPConfig(BaseModel):
    address: str = Field("0.0.0.0", description="TCP address to listen for the HTTP server.")
    port: int = Field(8161, description="TCP port to listen for the HTTP server.")


class DatabaseConfig(BaseModel):
    query_timeout_seconds: int = Field(
        30, description="Seconds to wait for a locked database before failing."
    )


class ServerConfig(BaseModel):
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list of CORS allowed origins.",
    )
    force_dev_mode: bool = Field(False, description="Run with auto-reload and debug logging.")
    data_dir: str = Field("./pb_data", description="Directory holding the SQLite database.")


class AuthConfig(BaseModel):
    token_ttl_minutes: int = Field(60 * 24, description="Lifetime of issued access tokens.")
    secure_cookies: bool = Field(False, description="Mark the auth cookie Secure (HTTPS only).")


class BootstrapConfig(BaseModel):
    lock_timeout_seconds: float | None = Field(
        None,
        description="Give up waiting for the first-user lock after this many seconds (unset waits forever).",
    )


class RateLimitWindow(BaseModel):
    window_seconds: int
    max_attempts: int


class LoginRateLimit(RateLimitWindow):
    window_seconds: int = Field(60, description="Login rate limit window.")
    max_attempts: int = Field(10, description="Login attempts allowed per client per window.")


class BootstrapRateLimit(RateLimitWindow):
    window_seconds: int = Field(60, description="First-user creation rate limit window.")
    max_attempts: int = Field(5, description="Creation attempts allowed per client per window.")


class RateLimitConfig(BaseModel):
    login: LoginRateLimit = Field(default_factory=LoginRateLimit)
    bootstrap: BootstrapRateLimit = Field(default_factory=BootstrapRateLimit)


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @property
    def db_path(self) -> Path:
        return Path(self.server.data_dir) / "data.db"


@dataclass(frozen=True)
class ConfigEntry:
    env: str
    path: str
    value: Any
    description: str


def _is_section(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _walk(model: type[BaseModel], path: tuple[str, ...]) -> Iterator[tuple[tuple[str, ...], Any]]:
    for name, field in model.model_fields.items():
        if _is_section(field.annotation):
            yield from _walk(field.annotation, (*path, name))
        else:
            yield (*path, name), field


def env_name(path: tuple[str, ...]) -> str:
    return "_".join((ENV_PREFIX, *path)).upper()


def _apply_env(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    for path, field in _walk(AppConfig, ()):
        raw = environ.get(env_name(path))
        if raw is None or raw == "":
            continue

        value: Any = raw
        if get_origin(field.annotation) is list:
            value = [item.strip() for item in raw.split(",") if item.strip()]

        node = data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return data


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """
    Load the YAML config (if present) and apply environment overrides.
    Raises ConfigError on invalid YAML or values that fail validation.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env.get(CONFIG_PATH_ENV, str(DEFAULT_CONFIG_PATH)))

    data: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        data = loaded or {}

    data = _apply_env(data, env)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e


@lru_cache
def get_config() -> AppConfig:
    return load_config()


def describe_config(cfg: AppConfig) -> list[ConfigEntry]:
    """Every leaf setting with its environment variable, for the ``config`` command."""
    entries = []
    for path, field in _walk(AppConfig, ()):
        value: Any = cfg
        for key in path:
            value = getattr(value, key)
        entries.append(
            ConfigEntry(
                env=env_name(path),
                path=".".join(path),
                value=value,
                description=field.description or "",
            )
        )
    return entries
