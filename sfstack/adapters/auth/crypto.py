from datetime import timedelta

from sfstack.api.auth_utils import (
    create_access_token,
    get_password_hash,
    token_subject,
    verify_password,
)


class JWTAuthAdapter:
    """Auth adapter that uses JWT tokens and passlib (argon2) for password hashing."""

    def hash_password(self, password: str) -> str:
        return get_password_hash(password)

    def verify_password(self, plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)

    def create_token(self, user_id: object, ttl_minutes: int) -> str:
        return create_access_token(str(user_id), timedelta(minutes=ttl_minutes))

    def validate_token(self, token: str) -> str | None:
        return token_subject(token)
