from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest
from jose import jwt, JWTError, ExpiredSignatureError

from vidtube.core.config import settings
from vidtube.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("correct horse battery")
    assert hashed != "correct horse battery"
    assert verify_password("correct horse battery", hashed)
    assert not verify_password("wrong password", hashed)


def test_password_longer_than_bcrypt_limit_is_accepted():
    long_password = "x" * 100
    hashed = get_password_hash(long_password)
    assert verify_password(long_password, hashed)


def test_access_token_claims():
    user_id = uuid4()
    token = create_access_token(subject=user_id)
    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["sub"] == str(user_id)
    assert claims["type"] == ACCESS_TOKEN_TYPE
    assert "exp" in claims


def test_refresh_token_uses_its_own_secret():
    user_id = uuid4()
    token = create_refresh_token(subject=user_id)

    with pytest.raises(JWTError):
        jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

    payload = decode_refresh_token(token)
    assert payload.sub == str(user_id)
    assert payload.type == REFRESH_TOKEN_TYPE


def test_decode_refresh_token_rejects_access_token():
    token = create_access_token(subject=uuid4())
    with pytest.raises(JWTError):
        decode_refresh_token(token)


def test_decode_access_token_rejects_refresh_token_signed_with_access_secret():
    forged = jwt.encode(
        {"sub": str(uuid4()), "type": REFRESH_TOKEN_TYPE},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(forged)


def test_expired_refresh_token():
    token = create_refresh_token(subject=uuid4(), expires_delta=timedelta(seconds=-5))
    with pytest.raises(ExpiredSignatureError):
        decode_refresh_token(token)


def test_refresh_tokens_minted_in_same_second_differ():
    user_id = uuid4()
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)

    with patch("vidtube.core.security.datetime") as mock_datetime:
        mock_datetime.now.return_value = frozen
        first = create_refresh_token(subject=user_id)
        second = create_refresh_token(subject=user_id)

    assert first != second
    first_claims = jwt.get_unverified_claims(first)
    second_claims = jwt.get_unverified_claims(second)
    assert first_claims["exp"] == second_claims["exp"]
    assert first_claims["jti"] != second_claims["jti"]
