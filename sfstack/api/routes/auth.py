import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from sfstack.adapters.auth.crypto import JWTAuthAdapter
from sfstack.adapters.sqlite.repos import SQLiteRecordStore
from sfstack.api.deps import (
    client_key,
    get_auth_adapter,
    get_current_user,
    get_rate_limiter,
    get_record_store,
    get_settings,
)
from sfstack.app_shell.config import AppConfig
from sfstack.app_shell.rate_limit import RateLimiter
from sfstack.domain.entities import USERS, User

logger = logging.getLogger(__name__)

router = APIRouter()


class Token(BaseModel):
    access_token: str
    token_type: str


@router.post("/login", response_model=Token)
def login_for_access_token(
    request: Request,
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    store: SQLiteRecordStore = Depends(get_record_store),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: AppConfig = Depends(get_settings),
) -> Token:
    """Authenticate a regular user with email + password and return an access token."""
    if not limiter.check_login(client_key(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts, try again later",
        )

    user = store.find_by_email(USERS, form_data.username)
    if not isinstance(user, User) or not auth_adapter.verify_password(
        form_data.password, user.password_hash
    ):
        logger.info("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ttl_minutes = settings.auth.token_ttl_minutes
    access_token = auth_adapter.create_token(user.id, ttl_minutes)

    # Set HttpOnly Cookie
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        max_age=ttl_minutes * 60,
        expires=ttl_minutes * 60,
        samesite="lax",
        secure=settings.auth.secure_cookies,
    )

    return Token(access_token=access_token, token_type="bearer")


@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    """Log out user by clearing cookie."""
    response.delete_cookie(key="access_token")
    return {"status": "success"}


@router.get("/me")
def read_users_me(
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Get current user info."""
    return {
        "id": str(current_user.id),
        "email": current_user.email,
        "verified": current_user.verified,
    }
