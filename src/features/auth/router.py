"""Authentication router (register, login, token renewal)."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings, get_settings
from src.database.dependencies import get_db_session
from src.features.account.service import AccountService

from .dependencies import get_auth_service, get_current_identity
from .jwt_utils import Identity
from .schemas import (
    AuthResponse,
    CredentialsRequest,
    CurrentUserResponse,
    PublicConfigResponse,
    RefreshTokenRequest,
    SetupCheckResponse,
    TokenResponse,
    VersionResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: CredentialsRequest, service: AuthService = Depends(get_auth_service)):
    """Register a new account and get tokens.

    - **username**: 3 to 50 characters
    - **password**: At least 8 characters with an uppercase letter, a number and a special character

    The first account ever registered becomes the administrator.
    """
    tokens = await service.register(data.username, data.password)
    await service.session.commit()
    return tokens


@router.post("/login", response_model=AuthResponse)
async def login(data: CredentialsRequest, service: AuthService = Depends(get_auth_service)):
    """Login and get tokens.

    Returns 429 once too many failed attempts were made for the username.
    """
    tokens = await service.login(data.username, data.password)
    await service.session.commit()
    return tokens


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(data: RefreshTokenRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new access token and refresh token.

    The submitted refresh token is consumed and cannot be used again.
    """
    tokens = await service.refresh(data.refresh_token)
    await service.session.commit()
    return tokens


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(identity: Identity = Depends(get_current_identity)):
    """Get the identity carried by the caller's access token."""
    return CurrentUserResponse(user_id=identity.user_id, username=identity.username, is_admin=identity.is_admin)


@router.get("/setup/required", response_model=SetupCheckResponse)
async def check_setup_required(session: AsyncSession = Depends(get_db_session)):
    """Report whether the first (administrator) account still has to be created."""
    return SetupCheckResponse(setup_required=await AccountService.count_accounts(session) == 0)


@router.get("/config", response_model=PublicConfigResponse)
async def get_config(settings: Settings = Depends(get_settings)):
    """Client-facing configuration."""
    return PublicConfigResponse(
        allow_registration=settings.allow_registration,
        access_token_expire_hours=settings.access_token_expire_hours,
    )


@router.get("/version", response_model=VersionResponse)
async def get_version(settings: Settings = Depends(get_settings)):
    """Running service version."""
    return VersionResponse(version=settings.app_version)
