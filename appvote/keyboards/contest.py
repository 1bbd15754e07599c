# appvote/keyboards/contest.py
"""
Inline keyboards for the contest screens.

callback_data formats (Telegram caps them at 64 bytes):
  week:<week_id>                     switch the browsed week
  vote:<app_id>                      toggle a vote
  cw:<week_id>:<status>              admin: set week status
  win:<week_id>:<position>:<app_id>  admin: pick a winner
  noop                               label button, ignored
"""
from __future__ import annotations

from typing import Iterable

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from appvote.database.models import WeekStatus
from appvote.database.repo.apps_repo import AppRow
from appvote.database.repo.contest_repo import WeekRow

NOOP = "noop"

STATUS_ICONS = {
    WeekStatus.UPCOMING: "⏳",
    WeekStatus.ACTIVE: "🟢",
    WeekStatus.ENDED: "🔴",
    WeekStatus.COMPLETED: "🏁",
}


def _clip(s: str, limit: int) -> str:
    return s if len(s) <= limit else s[: limit - 1] + "…"


def week_browser_kb(weeks: Iterable[WeekRow], selected_id: int | None) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for w in weeks:
        mark = "• " if w.id == selected_id else ""
        kb.add(
            InlineKeyboardButton(
                text=f"{mark}{STATUS_ICONS.get(w.status, '')} {w.name}",
                callback_data=f"week:{w.id}",
            )
        )
    kb.adjust(2)
    return kb.as_markup()


def vote_kb(apps: Iterable[AppRow], voted: set[str]) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for a in apps:
        icon = "✅" if a.id in voted else "☑️"
        kb.add(
            InlineKeyboardButton(
                text=f"{icon} {_clip(a.name, 28)} ({a.votes})",
                callback_data=f"vote:{a.id}",
            )
        )
    kb.adjust(1)
    return kb.as_markup()


def status_admin_kb(weeks: Iterable[WeekRow]) -> InlineKeyboardMarkup:
    """One row per week: buttons for every status the week is not already in."""
    rows: list[list[InlineKeyboardButton]] = []
    for w in weeks:
        row = [InlineKeyboardButton(text=f"{w.name}:", callback_data=NOOP)]
        for status in (WeekStatus.UPCOMING, WeekStatus.ACTIVE, WeekStatus.ENDED, WeekStatus.COMPLETED):
            if status == w.status:
                continue
            row.append(
                InlineKeyboardButton(
                    text=STATUS_ICONS[status],
                    callback_data=f"cw:{w.id}:{status.value}",
                )
            )
        rows.append(row)
    return InlineKeyboardMarkup(inline_keyboard=rows)


def winner_pick_kb(week_id: int, apps: Iterable[AppRow]) -> InlineKeyboardMarkup:
    rows: list[list[InlineKeyboardButton]] = []
    for a in apps:
        rows.append([InlineKeyboardButton(text=f"{_clip(a.name, 36)} ({a.votes})", callback_data=NOOP)])
        rows.append(
            [
                InlineKeyboardButton(text=label, callback_data=f"win:{week_id}:{pos}:{a.id}")
                for pos, label in ((1, "🥇 1st"), (2, "🥈 2nd"), (3, "🥉 3rd"))
            ]
        )
    return InlineKeyboardMarkup(inline_keyboard=rows)
