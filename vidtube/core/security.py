from datetime import datetime, timedelta, timezone
from typing import Union, Optional, Any, Literal
from uuid import uuid4

import bcrypt
from jose import jwt, JWTError
from pydantic import BaseModel

from vidtube.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenPayload(BaseModel):
    sub: Optional[Union[str, Any]] = None
    type: Literal["access", "refresh"] = ACCESS_TOKEN_TYPE
    exp: Optional[datetime] = None
    # Unique per token so a rotated refresh token never equals its predecessor
    jti: Optional[str] = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def _encode(payload: TokenPayload, secret: str) -> str:
    to_encode = payload.model_dump(exclude_none=True)
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    return _encode(
        TokenPayload(sub=str(subject), type=ACCESS_TOKEN_TYPE, exp=expire, jti=uuid4().hex),
        settings.SECRET_KEY,
    )


def create_refresh_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Long-lived token used only to mint a new access/refresh pair."""

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            days=settings.REFRESH_TOKEN_EXPIRE_DAYS
        )

    return _encode(
        TokenPayload(sub=str(subject), type=REFRESH_TOKEN_TYPE, exp=expire, jti=uuid4().hex),
        settings.REFRESH_SECRET_KEY,
    )


def decode_refresh_token(token: str) -> TokenPayload:
    """Decode and validate a refresh token.

    Raises ``JWTError`` (including ``ExpiredSignatureError``) when the token is
    malformed, expired, signed with the wrong key or is not a refresh token.
    """

    payload = TokenPayload(
        **jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    )
    if payload.type != REFRESH_TOKEN_TYPE or payload.sub is None:
        raise JWTError("Not a refresh token")
    return payload


def decode_access_token(token: str) -> TokenPayload:
    """Decode an access token; raises ``JWTError`` for anything else."""

    payload = TokenPayload(
        **jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    )
    if payload.type != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    return payload
