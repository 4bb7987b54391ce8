"""Account service layer."""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utc_now
from src.features.auth.models import RefreshToken
from src.shared.pagination.pagination import PaginationParams

from .exceptions import AlreadyElevated, CannotDeleteOwnAccount, UsernameAlreadyExists
from .models import Account
from .schemas import AdminStatsResponse

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account store operations."""

    @staticmethod
    async def get_by_username(session: AsyncSession, username: str) -> Account | None:
        """Get account by exact username."""
        stmt = select(Account).where(Account.username == username)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_account(session: AsyncSession, account_id: int) -> Account | None:
        """Get account by ID."""
        stmt = select(Account).where(Account.id == account_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def count_accounts(session: AsyncSession) -> int:
        """Count every registered account."""
        result = await session.execute(select(func.count()).select_from(Account))
        return result.scalar_one()

    @staticmethod
    async def create_account(session: AsyncSession, username: str, password: str) -> Account:
        """Create a new account.

        The very first account becomes elevated so the instance can be
        administered; every later account starts without elevation.

        Args:
            session: Database session
            username: Unique username
            password: Plain text password, already checked against the policy

        Returns:
            Created Account object (flushed, so `id` is populated)

        Raises:
            UsernameAlreadyExists: If username already exists

        """
        if await AccountService.get_by_username(session, username):
            raise UsernameAlreadyExists()

        is_admin = await AccountService.count_accounts(session) == 0

        account = Account(
            username=username,
            hashed_password=Account.hash_password(password),
            is_admin=is_admin,
        )
        session.add(account)

        try:
            await session.flush()
        except IntegrityError as err:
            # Lost a race against a concurrent registration of the same name
            await session.rollback()
            raise UsernameAlreadyExists() from err

        logger.info(f"New account registered: {account.username} (admin={account.is_admin})")
        return account

    @staticmethod
    async def list_accounts(session: AsyncSession, pagination: PaginationParams) -> tuple[list[Account], int]:
        """Get paginated accounts list, newest first.

        Args:
            session: Database session
            pagination: PaginationParams with page and page_size

        Returns:
            Tuple of (accounts, total_count)

        """
        total = await AccountService.count_accounts(session)

        stmt = select(Account).order_by(Account.created_at.desc(), Account.id.desc())
        if pagination.is_paginated:
            stmt = stmt.offset(pagination.skip).limit(pagination.limit)

        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def delete_account(session: AsyncSession, acting_user_id: int, account_id: int) -> bool:
        """Delete an account and every refresh token it owns.

        Raises:
            CannotDeleteOwnAccount: If the acting account targets itself

        """
        if acting_user_id == account_id:
            raise CannotDeleteOwnAccount()

        account = await AccountService.get_account(session, account_id)
        if account is None:
            return False

        await session.execute(delete(RefreshToken).where(RefreshToken.user_id == account_id))
        await session.delete(account)
        await session.flush()

        logger.info(f"Account deleted: {account.username}")
        return True

    @staticmethod
    async def promote_account(session: AsyncSession, account: Account) -> Account:
        """Grant the elevated flag to an account.

        Raises:
            AlreadyElevated: If the account is already elevated

        """
        if account.is_admin:
            raise AlreadyElevated()

        account.is_admin = True
        account.updated_at = utc_now()
        logger.info(f"Account promoted to admin: {account.username}")
        return account

    @staticmethod
    async def get_stats(session: AsyncSession) -> AdminStatsResponse:
        """Aggregate account and credential counts."""
        total_users = await AccountService.count_accounts(session)

        admins = await session.execute(select(func.count()).select_from(Account).where(Account.is_admin.is_(True)))
        live_tokens = await session.execute(
            select(func.count()).select_from(RefreshToken).where(RefreshToken.expires_at > utc_now())
        )

        return AdminStatsResponse(
            total_users=total_users,
            total_admins=admins.scalar_one(),
            active_refresh_tokens=live_tokens.scalar_one(),
        )
