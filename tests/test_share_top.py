"""Tests for the "Top 10 apps" share text and the /share_top command."""

from unittest.mock import AsyncMock

import pytest
from aiogram.filters import CommandObject

from appvote.config import Settings
from appvote.database.models import WeekStatus
from appvote.handlers.admin.panel import DENIED_TEXT
from appvote.handlers.admin.winners_admin import share_top_cmd
from appvote.services.submissions import RankedApp, SubmissionService, top_apps_text

from conftest import ADMIN, USER, FakeStore, app_row, week


def _ranked(n):
    return [RankedApp(rank=i, app=app_row(f"a{i}", name=f"App {i}")) for i in range(1, n + 1)]


class TestTopAppsText:
    def test_lists_rank_name_link_and_votes(self):
        ranked = [
            RankedApp(rank=1, app=app_row("a1", name="Rocket")),
            RankedApp(rank=2, app=app_row("a2", name="Comet")),
        ]
        text = top_apps_text(ranked, week_name="Week 1")

        lines = text.splitlines()
        assert lines[0] == "📱 <b>Top 10 Apps</b> · Week 1"
        assert lines[2] == "1. Rocket - https://example.com/a1 (0 votes)"
        assert lines[3] == "2. Comet - https://example.com/a2 (0 votes)"
        assert lines[-1] == "Shared from AppVote"

    def test_caps_at_ten(self):
        text = top_apps_text(_ranked(12))
        assert "10. App 10" in text
        assert "11. App 11" not in text

    def test_escapes_names(self):
        text = top_apps_text([RankedApp(rank=1, app=app_row("a1", name="<b>x</b>"))])
        assert "&lt;b&gt;x&lt;/b&gt;" in text

    def test_empty_week(self):
        assert "No apps submitted yet." in top_apps_text([])


@pytest.fixture
def store():
    apps = [app_row("a1", name="Rocket"), app_row("a2", name="Comet"), app_row("b1", week_id=2)]
    s = FakeStore(weeks=[week(1, WeekStatus.ENDED), week(2, WeekStatus.ACTIVE)], apps=apps)
    s.votes.append((7, "a2", 1))
    return s


@pytest.fixture
def submissions(store, manager):
    return SubmissionService(store, manager)


def _message():
    message = AsyncMock()
    message.bot = AsyncMock()
    return message


def _command(args=None):
    return CommandObject(prefix="/", command="share_top", args=args)


class TestShareTopCommand:
    @pytest.mark.asyncio
    async def test_posts_to_group(self, manager, submissions):
        message = _message()
        settings = Settings(bot_token="1:x", bot_username="appvote_bot", group_id=-100123)

        await share_top_cmd(message, _command("1"), manager, submissions, settings, actor=ADMIN)

        message.bot.send_message.assert_awaited_once()
        kwargs = message.bot.send_message.await_args.kwargs
        assert kwargs["chat_id"] == -100123
        assert kwargs["text"].splitlines()[2].startswith("1. Comet")
        assert "Rocket" in kwargs["text"]
        assert kwargs["reply_markup"].inline_keyboard[0][0].url == "https://t.me/appvote_bot"
        message.answer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_group_replies_with_text(self, manager, submissions):
        message = _message()
        settings = Settings(bot_token="1:x", bot_username="appvote_bot")

        await share_top_cmd(message, _command(), manager, submissions, settings, actor=ADMIN)

        message.bot.send_message.assert_not_awaited()
        text = message.answer.await_args.args[0]
        # no argument means the current (active) week
        assert "Week 2" in text
        assert "App b1" in text

    @pytest.mark.asyncio
    async def test_admin_only(self, manager, submissions):
        message = _message()
        settings = Settings(bot_token="1:x", bot_username="b", group_id=-1)

        await share_top_cmd(message, _command(), manager, submissions, settings, actor=USER)

        message.answer.assert_awaited_once_with(DENIED_TEXT)
        message.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_week(self, manager, submissions):
        message = _message()
        settings = Settings(bot_token="1:x", bot_username="b")

        await share_top_cmd(message, _command("9"), manager, submissions, settings, actor=ADMIN)

        message.answer.assert_awaited_once_with("Contest week not found")
