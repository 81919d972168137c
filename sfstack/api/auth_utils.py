"""Password hashing and access tokens for the ``users`` collection."""

import os
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt
from passlib.context import CryptContext

SECRET_KEY = os.environ.get("APP_AUTH_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
TOKEN_TYPE = "auth"

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    result: bool = pwd_context.verify(plain_password, hashed_password)
    return result


def get_password_hash(password: str) -> str:
    result: str = pwd_context.hash(password)
    return result


def create_access_token(
    subject: str,
    ttl: timedelta,
    now_utc: datetime | None = None,
) -> str:
    """
    Create a signed token for ``subject`` (a user id).

    Args:
        subject: Value stored in the ``sub`` claim
        ttl: How long the token stays valid
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    issued_at = now_utc if now_utc is not None else datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": subject,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    encoded_jwt: str = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.JWTError:
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    return cast(dict[str, Any], payload)


def token_subject(token: str) -> str | None:
    """The ``sub`` claim of a valid token, or None for anything else."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None
