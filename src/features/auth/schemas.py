"""Authentication schemas (DTOs)."""

from pydantic import BaseModel, Field


# Request schemas
class CredentialsRequest(BaseModel):
    """Username/password pair for register and login.

    Length and strength rules are enforced by the service so that they
    answer with 400 rather than FastAPI's 422.
    """

    username: str = Field(..., max_length=255)
    password: str = Field(..., max_length=1024)


class RefreshTokenRequest(BaseModel):
    """Refresh token request."""

    refresh_token: str


# Response schemas
class TokenResponse(BaseModel):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class AuthResponse(TokenResponse):
    """Token pair plus the username it was issued to."""

    username: str


class CurrentUserResponse(BaseModel):
    """Identity carried by the caller's access token."""

    user_id: int
    username: str
    is_admin: bool


class SetupCheckResponse(BaseModel):
    """Whether the instance still needs its first (elevated) account."""

    setup_required: bool


class PublicConfigResponse(BaseModel):
    """Client-facing configuration."""

    allow_registration: bool
    access_token_expire_hours: int


class VersionResponse(BaseModel):
    """Running service version."""

    version: str
