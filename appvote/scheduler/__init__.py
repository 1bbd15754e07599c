# appvote/scheduler/__init__.py
from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from appvote.config.settings import Settings
from appvote.scheduler.jobs import build_scheduler
from appvote.services.contest import ContestManager


def setup_scheduler(contest: ContestManager, settings: Settings) -> AsyncIOScheduler:
    scheduler = build_scheduler(contest=contest, settings=settings)
    scheduler.start()
    return scheduler
