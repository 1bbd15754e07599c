# appvote/scheduler/jobs.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from appvote.config.settings import Settings
from appvote.services.contest import ContestManager

log = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_contest_state"


async def refresh_contest_state(contest: ContestManager) -> None:
    """
    Periodic full re-fetch. Picks up changes made outside this process
    (another bot instance, manual SQL) that the change feed never sees.
    """
    result = await contest.refresh()
    if not result:
        log.warning("Periodic contest refresh failed: %s", result.message)


def build_scheduler(contest: ContestManager, settings: Settings) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    if settings.contest_refresh_minutes > 0:
        scheduler.add_job(
            refresh_contest_state,
            trigger=IntervalTrigger(minutes=settings.contest_refresh_minutes),
            kwargs={"contest": contest},
            id=REFRESH_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=60,
        )
    else:
        log.info("Periodic contest refresh disabled (CONTEST_REFRESH_MINUTES=0)")

    return scheduler
