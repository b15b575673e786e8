"""Password hashing and the bearer tokens that identify a principal.

An access token is an HS256 JWT whose ``sub`` claim is the user id. The board
engine only ever sees that id; everything else about the user stays in the
relational store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class InvalidTokenError(Exception):
    """The bearer token is malformed, expired, or not an access token."""


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str
    expires_at: datetime
    expires_in: int


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


def issue_access_token(user_id: int, settings: Settings, *, lifetime: timedelta | None = None) -> IssuedToken:
    """Sign an access token for ``user_id``."""

    lifetime = lifetime or timedelta(minutes=settings.access_token_expire_minutes)
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + lifetime
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
        "jti": uuid4().hex,
        "type": ACCESS_TOKEN_TYPE,
    }
    return IssuedToken(
        token=jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm),
        expires_at=expires_at,
        expires_in=int(lifetime.total_seconds()),
    )


def read_principal_id(token: str, settings: Settings) -> int:
    """Return the user id a valid access token was issued to."""

    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise InvalidTokenError("signature or expiry check failed") from exc

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("not an access token")
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("subject is not a user id") from exc


__all__ = [
    "ACCESS_TOKEN_TYPE",
    "InvalidTokenError",
    "IssuedToken",
    "hash_password",
    "issue_access_token",
    "read_principal_id",
    "verify_password",
]
