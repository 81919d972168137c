from datetime import UTC, datetime, timedelta
from uuid import uuid4

from jose import jwt

from sfstack.adapters.auth.crypto import JWTAuthAdapter
from sfstack.api.auth_utils import (
    ALGORITHM,
    SECRET_KEY,
    create_access_token,
    decode_access_token,
    token_subject,
)


def test_hash_verify_success():
    auth = JWTAuthAdapter()
    pwd = "my-secret-password"
    hashed = auth.hash_password(pwd)

    assert hashed != pwd
    assert hashed.startswith("$argon2")
    assert auth.verify_password(pwd, hashed) is True


def test_verify_fail():
    auth = JWTAuthAdapter()
    hashed = auth.hash_password("password")

    assert auth.verify_password("wrong", hashed) is False


def test_token_round_trip():
    auth = JWTAuthAdapter()
    uid = uuid4()

    token = auth.create_token(uid, 60)

    assert auth.validate_token(token) == str(uid)


def test_token_claims():
    issued = datetime(2026, 1, 1, tzinfo=UTC)
    token = create_access_token("uid", timedelta(minutes=5), now_utc=issued)

    claims = jwt.decode(
        token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_exp": False}
    )
    assert claims["sub"] == "uid"
    assert claims["type"] == "auth"
    assert claims["exp"] - claims["iat"] == 300


def test_expired_token_rejected():
    token = create_access_token("uid", timedelta(minutes=-1))

    assert decode_access_token(token) is None
    assert JWTAuthAdapter().validate_token(token) is None


def test_foreign_token_type_rejected():
    token = jwt.encode({"sub": "uid", "type": "refresh"}, SECRET_KEY, algorithm=ALGORITHM)

    assert token_subject(token) is None


def test_wrong_signature_rejected():
    token = jwt.encode({"sub": "uid", "type": "auth"}, "other-secret", algorithm=ALGORITHM)

    assert token_subject(token) is None


def test_garbage_rejected():
    assert JWTAuthAdapter().validate_token("not-a-jwt") is None
