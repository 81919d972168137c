from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from sfstack.adapters.auth.crypto import JWTAuthAdapter
from sfstack.adapters.sqlite.repos import SQLiteRecordStore
from sfstack.app_shell.config import AppConfig, get_config
from sfstack.app_shell.rate_limit import RateLimiter
from sfstack.components.bootstrap import BootstrapGate
from sfstack.domain.entities import USERS, User


# --- Settings ---
def get_settings() -> AppConfig:
    return get_config()


# --- Store ---
def get_record_store(settings: AppConfig = Depends(get_settings)) -> SQLiteRecordStore:
    return SQLiteRecordStore(
        str(settings.db_path),
        query_timeout_seconds=settings.server.database.query_timeout_seconds,
    )


# Adapters needed for component injection
def get_auth_adapter() -> JWTAuthAdapter:
    return JWTAuthAdapter()


# --- Bootstrap gate ---
# One gate per database file: the gate's lock is what serializes first-user
# creation, so every request against the same store must share it.
_gates: dict[str, BootstrapGate] = {}
_gates_lock = Lock()


def get_bootstrap_gate(
    settings: AppConfig = Depends(get_settings),
    store: SQLiteRecordStore = Depends(get_record_store),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
) -> BootstrapGate:
    key = str(Path(store.db_path).resolve())
    with _gates_lock:
        gate = _gates.get(key)
        if gate is None:
            gate = BootstrapGate(
                store=store,
                auth_adapter=auth_adapter,
                lock_timeout=settings.bootstrap.lock_timeout_seconds,
            )
            _gates[key] = gate
        return gate


def require_registration_enabled(settings: AppConfig = Depends(get_settings)) -> None:
    """Hide the bootstrap endpoints entirely when registration is switched off."""
    if not settings.general.initial_admin_registration:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


# --- Rate limiting ---
_rate_limiter_instance: RateLimiter | None = None


def get_rate_limiter(settings: AppConfig = Depends(get_settings)) -> RateLimiter:
    """Get rate limiter singleton."""
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = RateLimiter(settings.rate_limits)
    return _rate_limiter_instance


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class RequestAuthContext:
    user: User | None

    def identity(self) -> str | None:
        return str(self.user.id) if self.user else None


def get_optional_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    store: SQLiteRecordStore = Depends(get_record_store),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
) -> User | None:
    # Cookie (HttpOnly) wins over the Authorization header
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ", 1)[1]

    if not token:
        return None

    user_id = auth_adapter.validate_token(token)
    if user_id is None:
        return None

    try:
        uid = UUID(user_id)
    except ValueError:
        return None

    record = store.get_by_id(USERS, uid)
    return record if isinstance(record, User) else None


def get_auth_context(
    user: User | None = Depends(get_optional_user),
) -> RequestAuthContext:
    return RequestAuthContext(user=user)


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
