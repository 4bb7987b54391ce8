"""Refresh token store: issue, single-use redemption, and retention."""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import ensure_utc, utc_now

from .exceptions import RefreshTokenExpiredException, RefreshTokenNotFoundException
from .models import RefreshToken

logger = logging.getLogger(__name__)

# 32 bytes = 256 bits of entropy
REFRESH_TOKEN_BYTES = 32


def generate_refresh_token() -> str:
    """Generate a cryptographically secure, URL-safe refresh token."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


class RefreshTokenStore:
    """Persists refresh tokens for one session (one request transaction)."""

    def __init__(self, session: AsyncSession, ttl_days: int = 7):
        self.session = session
        self.ttl_days = ttl_days

    async def issue(self, user_id: int, ttl_days: int | None = None) -> str:
        """Create and persist a new refresh token for an account.

        Args:
            user_id: Owning account id
            ttl_days: Optional lifetime override in days

        Returns:
            The opaque token string handed to the client

        """
        token = generate_refresh_token()
        lifetime = timedelta(days=self.ttl_days if ttl_days is None else ttl_days)

        self.session.add(RefreshToken(user_id=user_id, token=token, expires_at=utc_now() + lifetime))
        await self.session.flush()
        return token

    async def redeem(self, token: str) -> int:
        """Consume a refresh token and return the owning account id.

        The row is removed with a conditional delete; only the caller whose
        delete actually removed it wins. A redeemed string is gone for good,
        so replaying it afterwards reports not found.

        Raises:
            RefreshTokenNotFoundException: Unknown or already redeemed token
            RefreshTokenExpiredException: Token is past its expiry

        """
        stmt = select(RefreshToken.id, RefreshToken.user_id, RefreshToken.expires_at).where(
            RefreshToken.token == token
        )
        row = (await self.session.execute(stmt)).one_or_none()

        if row is None:
            raise RefreshTokenNotFoundException()

        now = utc_now()
        if ensure_utc(row.expires_at) <= now:
            raise RefreshTokenExpiredException()

        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.id == row.id, RefreshToken.expires_at > now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Refresh token for user {row.user_id} was redeemed concurrently")
            raise RefreshTokenNotFoundException()

        return row.user_id

    async def purge_expired(self) -> int:
        """Delete every refresh token whose expiry has passed."""
        result = await self.session.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= utc_now()).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
