"""Tests for the failed login ledger."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from src.database.base import utc_now
from src.features.auth.lockout import LockoutTracker, UsernameLocks
from src.features.auth.models import LoginAttempt


async def _fail(tracker: LockoutTracker, username: str, times: int) -> None:
    for _ in range(times):
        await tracker.record_attempt(username, success=False)


class TestFailedAttempts:
    async def test_counts_only_failures(self, session):
        tracker = LockoutTracker(session)
        await _fail(tracker, "bob", 2)
        await tracker.record_attempt("bob", success=True)

        assert await tracker.failed_attempts("bob") == 2

    async def test_counts_per_username(self, session):
        tracker = LockoutTracker(session)
        await _fail(tracker, "bob", 3)
        await _fail(tracker, "carol", 1)

        assert await tracker.failed_attempts("bob") == 3
        assert await tracker.failed_attempts("carol") == 1
        assert await tracker.failed_attempts("dave") == 0

    async def test_success_does_not_reset_the_count(self, session):
        tracker = LockoutTracker(session)
        await _fail(tracker, "bob", 2)
        await tracker.record_attempt("bob", success=True)
        await _fail(tracker, "bob", 1)

        assert await tracker.failed_attempts("bob") == 3

    async def test_attempts_outside_window_are_ignored(self, session):
        tracker = LockoutTracker(session, window_minutes=30)
        session.add(LoginAttempt(username="bob", success=False, attempted_at=utc_now() - timedelta(minutes=31)))
        await session.flush()
        await _fail(tracker, "bob", 1)

        assert await tracker.failed_attempts("bob") == 1
        assert await tracker.failed_attempts("bob", window_minutes=60) == 2


class TestIsLocked:
    async def test_locks_at_threshold(self, session):
        tracker = LockoutTracker(session, max_attempts=5)
        await _fail(tracker, "bob", 4)
        assert await tracker.is_locked("bob") is False

        await _fail(tracker, "bob", 1)
        assert await tracker.is_locked("bob") is True

    async def test_unknown_username_can_be_locked(self, session):
        """The ledger keys on the name alone, account or not."""
        tracker = LockoutTracker(session, max_attempts=2)
        await _fail(tracker, "nobody-has-this-name", 2)

        assert await tracker.is_locked("nobody-has-this-name") is True

    async def test_lock_expires_with_window(self, session):
        tracker = LockoutTracker(session, max_attempts=2, window_minutes=30)
        old = utc_now() - timedelta(minutes=45)
        session.add_all([LoginAttempt(username="bob", success=False, attempted_at=old) for _ in range(3)])
        await session.flush()

        assert await tracker.is_locked("bob") is False

    async def test_overrides(self, session):
        tracker = LockoutTracker(session, max_attempts=5)
        await _fail(tracker, "bob", 2)

        assert await tracker.is_locked("bob", max_attempts=2) is True


class TestRetryAfter:
    async def test_not_locked_is_zero(self, session):
        tracker = LockoutTracker(session, max_attempts=3)
        await _fail(tracker, "bob", 2)

        assert await tracker.retry_after_seconds("bob") == 0

    async def test_fresh_lock_covers_whole_window(self, session):
        tracker = LockoutTracker(session, max_attempts=3, window_minutes=30)
        await _fail(tracker, "bob", 3)

        assert 1790 < await tracker.retry_after_seconds("bob") <= 1800

    async def test_counts_from_threshold_th_newest_failure(self, session):
        """Older failures leave the window first; the lock lifts when the count drops below the threshold."""
        tracker = LockoutTracker(session, max_attempts=2, window_minutes=30)
        now = utc_now()
        session.add_all(
            [
                LoginAttempt(username="bob", success=False, attempted_at=now - timedelta(minutes=25)),
                LoginAttempt(username="bob", success=False, attempted_at=now - timedelta(minutes=20)),
                LoginAttempt(username="bob", success=False, attempted_at=now - timedelta(minutes=10)),
            ]
        )
        await session.flush()

        # The 20-minute-old failure is the second newest: ten minutes left
        assert 590 < await tracker.retry_after_seconds("bob") <= 600


class TestUsernameLocks:
    async def test_same_username_is_serialized(self):
        locks = UsernameLocks()
        order = []

        async def _login(name: str, tag: str):
            async with locks.hold(name):
                order.append(f"{tag}-in")
                await asyncio.sleep(0.01)
                order.append(f"{tag}-out")

        await asyncio.gather(_login("alice", "a1"), _login("alice", "a2"))

        assert order == ["a1-in", "a1-out", "a2-in", "a2-out"]

    async def test_different_usernames_overlap(self):
        locks = UsernameLocks()
        order = []

        async def _login(name: str):
            async with locks.hold(name):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(_login("alice"), _login("bob"))

        assert order[:2] == ["alice-in", "bob-in"]

    async def test_registry_is_emptied_after_use(self):
        locks = UsernameLocks()
        async with locks.hold("alice"):
            assert len(locks) == 1

        assert len(locks) == 0

    async def test_registry_is_emptied_after_error(self):
        locks = UsernameLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("alice"):
                raise RuntimeError("boom")

        assert len(locks) == 0


class TestPurgeBefore:
    async def test_purge_deletes_older_rows_only(self, session):
        tracker = LockoutTracker(session)
        session.add(LoginAttempt(username="bob", success=False, attempted_at=utc_now() - timedelta(days=40)))
        await session.flush()
        await _fail(tracker, "bob", 1)

        deleted = await tracker.purge_before(utc_now() - timedelta(days=30))

        assert deleted == 1
        remaining = await session.execute(select(func.count()).select_from(LoginAttempt))
        assert remaining.scalar_one() == 1
