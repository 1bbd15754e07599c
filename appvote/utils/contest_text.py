# appvote/utils/contest_text.py
from __future__ import annotations

from html import escape
from typing import Iterable

from appvote.database.repo.apps_repo import AppRow
from appvote.database.repo.contest_repo import WeekRow, WinnerRow
from appvote.keyboards.contest import STATUS_ICONS
from appvote.utils.dt import fmt_utc

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def week_line(w: WeekRow) -> str:
    return f"{STATUS_ICONS.get(w.status, '')} <b>{escape(w.name)}</b> · {w.status.value}"


def week_details(w: WeekRow) -> str:
    lines = [week_line(w)]
    if w.description:
        lines.append(escape(w.description))
    lines.append(f"Start: {fmt_utc(w.start_date)}")
    lines.append(f"End: {fmt_utc(w.end_date)}")
    return "\n".join(lines)


def winners_block(rows: Iterable[WinnerRow]) -> str:
    lines = []
    for r in rows:
        name = escape(r.app_name or "Unknown app")
        if r.app_link:
            name = f'<a href="{escape(r.app_link, quote=True)}">{name}</a>'
        lines.append(f"{MEDALS.get(r.position, r.position)} {name} — {escape(r.owner_name or 'Unknown')}")
    return "\n".join(lines)


def app_line(rank: int, a: AppRow) -> str:
    name = f'<a href="{escape(a.link, quote=True)}">{escape(a.name)}</a>'
    owner = escape(a.owner_name or "Unknown")
    return f"{rank}. {name} by {owner} · <b>{a.votes}</b> votes\n   <code>{a.id}</code>"
