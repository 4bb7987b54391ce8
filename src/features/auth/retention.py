"""Background retention sweep for refresh tokens and login attempts."""

import logging
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings, settings
from src.database.base import utc_now
from src.database.client import get_session

from .lockout import LockoutTracker
from .refresh_tokens import RefreshTokenStore

logger = logging.getLogger(__name__)

RETENTION_JOB_ID = "purge-expired-credentials"

_scheduler: AsyncIOScheduler | None = None


def login_attempt_cutoff(config: Settings) -> datetime:
    """Oldest attempt timestamp still kept.

    Never cuts inside the lockout window, whatever the retention setting says.
    """
    keep = max(
        timedelta(days=config.login_attempt_retention_days),
        timedelta(minutes=config.account_lockout_duration_minutes),
    )
    return utc_now() - keep


async def purge_stale_rows(session: AsyncSession, config: Settings) -> tuple[int, int]:
    """Delete expired refresh tokens and login attempts past retention.

    Returns:
        Tuple of (refresh_tokens_deleted, login_attempts_deleted)

    """
    tokens = await RefreshTokenStore(session).purge_expired()
    attempts = await LockoutTracker(session).purge_before(login_attempt_cutoff(config))
    return tokens, attempts


async def purge_expired_credentials() -> None:
    """Scheduler entry point: one sweep in its own transaction."""
    async with get_session() as session:
        tokens, attempts = await purge_stale_rows(session, settings)
    logger.info(f"Retention sweep removed {tokens} refresh tokens and {attempts} login attempts")


def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


def start_retention_sweep() -> None:
    """Schedule the sweep on an interval, running it once immediately."""
    scheduler = get_scheduler()
    scheduler.add_job(
        purge_expired_credentials,
        trigger=IntervalTrigger(minutes=settings.retention_sweep_interval_minutes),
        id=RETENTION_JOB_ID,
        replace_existing=True,
        next_run_time=utc_now(),
    )
    if not scheduler.running:
        scheduler.start()
        logger.info(f"Retention sweep scheduled every {settings.retention_sweep_interval_minutes} minutes")


def stop_retention_sweep() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Retention sweep stopped")
    _scheduler = None
