# appvote/services/announcer.py
from __future__ import annotations

import logging
from html import escape

from aiogram import Bot
from aiogram.types import BufferedInputFile

from appvote.config.settings import Settings
from appvote.database.models import WeekStatus
from appvote.keyboards.main import open_bot_kb
from appvote.services.contest import ContestSnapshot
from appvote.utils.cards.winners_card import CardWinner, render_winners_card
from appvote.utils.dt import fmt_utc

log = logging.getLogger(__name__)


def newly_completed(previous: ContestSnapshot, current: ContestSnapshot) -> list[int]:
    """Week ids that are completed in `current` but were known and not completed in `previous`."""
    before = {w.id: w.status for w in previous.weeks}
    return [
        w.id
        for w in current.weeks
        if w.status == WeekStatus.COMPLETED
        and w.id in before
        and before[w.id] != WeekStatus.COMPLETED
    ]


class WinnersAnnouncer:
    """
    Contest listener: posts a winners card to the group when a week completes.
    Must not write to the store (it runs inside the manager's reload).
    """

    def __init__(self, bot: Bot, settings: Settings) -> None:
        self.bot = bot
        self.settings = settings

    async def __call__(self, previous: ContestSnapshot, current: ContestSnapshot) -> None:
        for week_id in newly_completed(previous, current):
            await self.announce(current, week_id)

    async def announce(self, snapshot: ContestSnapshot, week_id: int) -> None:
        if not self.settings.group_id:
            log.warning("Skipping winners post for week %s: GROUP_ID is not set", week_id)
            return

        week = next((w for w in snapshot.weeks if w.id == week_id), None)
        if week is None:
            return
        rows = snapshot.winners.get(week_id, ())
        if not rows:
            log.info("Skipping winners post for week %s: no winners selected", week_id)
            return

        png = render_winners_card(
            week_name=week.name,
            subtitle=f"Voting closed: {fmt_utc(week.end_date)}",
            winners=[
                CardWinner(position=r.position, app_name=r.app_name or "Unknown app", owner=r.owner_name or "Unknown")
                for r in rows
            ],
        )
        lines = [f"🏆 <b>{escape(week.name)} winners</b>"]
        medals = {1: "🥇", 2: "🥈", 3: "🥉"}
        for r in rows:
            lines.append(f"{medals.get(r.position, r.position)} {escape(r.app_name or 'Unknown app')} — {escape(r.owner_name or 'Unknown')}")

        await self.bot.send_photo(
            chat_id=self.settings.group_id,
            photo=BufferedInputFile(png, filename=f"winners_week_{week_id}.png"),
            caption="\n".join(lines),
            reply_markup=open_bot_kb(self.settings.bot_username),
        )
        log.info("Posted winners for contest week %s", week_id)
