"""Tests for the periodic contest refresh job."""

from unittest.mock import AsyncMock

import pytest

from appvote.config import Settings
from appvote.scheduler.jobs import REFRESH_JOB_ID, build_scheduler, refresh_contest_state
from appvote.services.contest import OperationResult


def _settings(minutes):
    return Settings(bot_token="1:x", bot_username="b", contest_refresh_minutes=minutes)


def test_refresh_job_registered():
    scheduler = build_scheduler(contest=AsyncMock(), settings=_settings(5))
    job = scheduler.get_job(REFRESH_JOB_ID)
    assert job is not None
    assert job.trigger.interval.total_seconds() == 300


def test_refresh_job_disabled():
    scheduler = build_scheduler(contest=AsyncMock(), settings=_settings(0))
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_job_calls_refresh():
    contest = AsyncMock()
    contest.refresh.return_value = OperationResult(False, "Failed to load contest data")
    await refresh_contest_state(contest)
    contest.refresh.assert_awaited_once()
