"""Signup payload and the token response shared by signup and login."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from ..core.security import IssuedToken
from ..models import User
from .user import UserPublic


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str | None = None


class AuthTokens(BaseModel):
    access_token: str
    token_type: str = Field(default="bearer", frozen=True)
    expires_in: int = Field(description="Seconds until the access token expires")


class AuthResponse(BaseModel):
    user: UserPublic
    tokens: AuthTokens

    @classmethod
    def build(cls, user: User, token: IssuedToken) -> "AuthResponse":
        return cls(
            user=UserPublic.model_validate(user),
            tokens=AuthTokens(access_token=token.token, expires_in=token.expires_in),
        )


__all__ = ["AuthResponse", "AuthTokens", "SignupRequest"]
