"""Tests for the refresh token store."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from src.database.base import utc_now
from src.features.auth.exceptions import RefreshTokenExpiredException, RefreshTokenNotFoundException
from src.features.auth.models import RefreshToken
from src.features.auth.refresh_tokens import RefreshTokenStore, generate_refresh_token


async def _count_tokens(session) -> int:
    result = await session.execute(select(func.count()).select_from(RefreshToken))
    return result.scalar_one()


async def _expire(session, token: str) -> None:
    row = (await session.execute(select(RefreshToken).where(RefreshToken.token == token))).scalar_one()
    row.expires_at = utc_now() - timedelta(seconds=1)
    await session.flush()


class TestGenerateRefreshToken:
    def test_tokens_are_url_safe_and_unique(self):
        tokens = {generate_refresh_token() for _ in range(50)}

        assert len(tokens) == 50
        for token in tokens:
            assert len(token) >= 43  # 32 bytes base64url encoded
            assert all(c.isalnum() or c in "-_" for c in token)


class TestIssue:
    async def test_issue_persists_row(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session, ttl_days=7)

        token = await store.issue(account.id)

        row = (await session.execute(select(RefreshToken).where(RefreshToken.token == token))).scalar_one()
        assert row.user_id == account.id
        lifetime = row.expires_at.replace(tzinfo=None) - row.created_at.replace(tzinfo=None)
        assert timedelta(days=6, hours=23) < lifetime <= timedelta(days=7, seconds=5)

    async def test_each_issue_creates_a_new_token(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)

        first = await store.issue(account.id)
        second = await store.issue(account.id)

        assert first != second
        assert await _count_tokens(session) == 2


class TestRedeem:
    async def test_redeem_returns_owner_and_consumes_token(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        token = await store.issue(account.id)

        assert await store.redeem(token) == account.id
        assert await _count_tokens(session) == 0

    async def test_second_redeem_is_not_found(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        token = await store.issue(account.id)
        await store.redeem(token)

        with pytest.raises(RefreshTokenNotFoundException):
            await store.redeem(token)

    async def test_unknown_token_is_not_found(self, session):
        with pytest.raises(RefreshTokenNotFoundException):
            await RefreshTokenStore(session).redeem("never-issued")

    async def test_expired_token_is_rejected_and_kept(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        token = await store.issue(account.id)
        await _expire(session, token)

        with pytest.raises(RefreshTokenExpiredException):
            await store.redeem(token)

        # Left for the retention sweep
        assert await _count_tokens(session) == 1

    async def test_redeem_only_touches_the_given_token(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        keep = await store.issue(account.id)
        spend = await store.issue(account.id)

        await store.redeem(spend)

        assert await store.redeem(keep) == account.id


class TestPurgeExpired:
    async def test_purge_removes_only_expired(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        live = await store.issue(account.id)
        dead = await store.issue(account.id)
        await _expire(session, dead)

        assert await store.purge_expired() == 1
        assert await _count_tokens(session) == 1
        assert await store.redeem(live) == account.id

    async def test_purge_with_nothing_expired(self, session, make_account):
        account = await make_account()
        store = RefreshTokenStore(session)
        await store.issue(account.id)

        assert await store.purge_expired() == 0
