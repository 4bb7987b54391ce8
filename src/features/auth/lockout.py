"""Failed login attempt ledger and lockout evaluation."""

import asyncio
import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import ensure_utc, utc_now

from .models import LoginAttempt

logger = logging.getLogger(__name__)


class UsernameLocks:
    """In-process registry of per-username locks.

    A lock lives only while some request holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, username: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(username, asyncio.Lock())
        self._users[username] = self._users.get(username, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[username] -= 1
            if self._users[username] == 0:
                del self._users[username]
                del self._locks[username]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every request served by this process
username_locks = UsernameLocks()


class LockoutTracker:
    """Counts failed login attempts per username inside a trailing window."""

    def __init__(self, session: AsyncSession, max_attempts: int = 5, window_minutes: int = 30):
        self.session = session
        self.max_attempts = max_attempts
        self.window_minutes = window_minutes

    @asynccontextmanager
    async def serialized(self, username: str) -> AsyncIterator[None]:
        """Run a check-then-record sequence for `username` with no other login interleaving.

        The caller must commit (or roll back) before leaving the block.
        Within one process an asyncio lock orders requests. On PostgreSQL a
        transaction-scoped advisory lock extends that to every worker.
        """
        async with username_locks.hold(username):
            if self.session.get_bind().dialect.name == "postgresql":
                await self.session.execute(select(func.pg_advisory_xact_lock(func.hashtext(username))))
            yield

    def _window_start(self, window_minutes: int | None = None) -> datetime:
        window = self.window_minutes if window_minutes is None else window_minutes
        return utc_now() - timedelta(minutes=window)

    async def failed_attempts(self, username: str, window_minutes: int | None = None) -> int:
        """Count failures for `username` newer than the window start."""
        stmt = (
            select(func.count())
            .select_from(LoginAttempt)
            .where(
                LoginAttempt.username == username,
                LoginAttempt.success.is_(False),
                LoginAttempt.attempted_at > self._window_start(window_minutes),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def is_locked(
        self, username: str, max_attempts: int | None = None, window_minutes: int | None = None
    ) -> bool:
        """Check whether `username` has hit the failure threshold.

        Works on the username string alone, so it gives the same answer
        whether or not an account with that name exists.
        """
        threshold = self.max_attempts if max_attempts is None else max_attempts
        return await self.failed_attempts(username, window_minutes) >= threshold

    async def retry_after_seconds(self, username: str) -> int:
        """Seconds until `username` drops below the threshold again.

        The lock lifts once the threshold-th newest failure leaves the window.
        Returns 0 when the username is not locked.
        """
        stmt = (
            select(LoginAttempt.attempted_at)
            .where(
                LoginAttempt.username == username,
                LoginAttempt.success.is_(False),
                LoginAttempt.attempted_at > self._window_start(),
            )
            .order_by(LoginAttempt.attempted_at.desc())
            .offset(self.max_attempts - 1)
            .limit(1)
        )
        unlocking = (await self.session.execute(stmt)).scalar_one_or_none()
        if unlocking is None:
            return 0

        remaining = ensure_utc(unlocking) + timedelta(minutes=self.window_minutes) - utc_now()
        return max(1, math.ceil(remaining.total_seconds()))

    async def record_attempt(self, username: str, success: bool) -> None:
        """Append one attempt to the ledger."""
        self.session.add(LoginAttempt(username=username, success=success))
        await self.session.flush()

        if not success:
            logger.warning(f"Failed login attempt for username: {username}")

    async def purge_before(self, cutoff: datetime) -> int:
        """Delete attempts recorded before `cutoff`."""
        result = await self.session.execute(
            delete(LoginAttempt).where(LoginAttempt.attempted_at < cutoff).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
