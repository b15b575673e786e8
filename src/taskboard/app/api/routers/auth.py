"""Account signup and password login."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from ...deps import DatabaseSessionDependency, SettingsDependency
from ...schemas.auth import AuthResponse, SignupRequest
from ...services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def signup(
    payload: SignupRequest,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> AuthResponse:
    user, token = await AuthService(session, settings).signup(
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
    )
    return AuthResponse.build(user, token)


@router.post("/login", response_model=AuthResponse, summary="Exchange email and password for an access token")
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> AuthResponse:
    """``username`` carries the email address, as OAuth2 password forms require."""
    user, token = await AuthService(session, settings).login(form_data.username, form_data.password)
    return AuthResponse.build(user, token)
