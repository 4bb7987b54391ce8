"""Authentication dependencies for FastAPI."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings, get_settings
from src.database.dependencies import get_db_session

from .exceptions import InsufficientPrivilegeException, NotAuthenticatedException
from .jwt_utils import Identity, TokenIssuer
from .service import AuthService

# auto_error=False: a missing header is answered by our own 401, not FastAPI's default
security = HTTPBearer(auto_error=False)


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    """Token issuer built from the signing configuration."""
    return TokenIssuer.from_settings(settings)


async def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(session, issuer, settings)


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Identity:
    """Authenticate the request from its bearer token.

    The identity is read from the verified claims alone (no database
    round trip) and stored on `request.state.identity` for downstream code.

    Raises:
        NotAuthenticatedException: If no bearer token was sent
        InvalidTokenException: If the token is malformed, mis-signed or expired

    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedException()

    identity = issuer.verify(credentials.credentials)
    request.state.identity = identity
    return identity


async def require_elevated(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Authenticate, then require the elevated flag.

    Raises:
        InsufficientPrivilegeException: If the token is valid but not elevated

    """
    if not identity.is_admin:
        raise InsufficientPrivilegeException()
    return identity
