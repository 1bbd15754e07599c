# appvote/handlers/user/apps.py
from __future__ import annotations

import logging
from html import escape

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from appvote.keyboards.contest import vote_kb
from appvote.keyboards.main import BTN_APPS
from appvote.services.contest import ContestManager
from appvote.services.errors import ContestError
from appvote.services.identity import Actor
from appvote.services.store import Store
from appvote.services.voting import VotingService
from appvote.utils.contest_text import app_line
from appvote.utils.reply import reply_safe, reply_unavailable

log = logging.getLogger(__name__)

router = Router()


async def _apps_view(
    contest: ContestManager,
    store: Store,
    voting: VotingService,
    actor: Actor,
):
    week = contest.current_week
    apps = await store.list_apps(week.id if week else None)
    voted = set(await voting.votes_for(actor))

    title = escape(week.name) if week else "Contest"
    lines = [f"🗳 <b>{title} apps</b>"]
    if not apps:
        lines.append("\nNo apps submitted yet. Use /submit to add yours.")
    else:
        lines.append(f"Your votes: {len(voted)}/{voting.vote_limit}\n")
        lines += [app_line(i, a) for i, a in enumerate(apps, start=1)]

    markup = vote_kb(apps, voted) if apps and contest.can_vote() else None
    if apps and not contest.can_vote():
        lines.append("\n⏸ Voting is closed.")
    return "\n".join(lines), markup


@router.message(F.text == BTN_APPS)
@router.message(Command("apps"))
async def apps_cmd(
    message: Message,
    contest: ContestManager,
    store: Store,
    voting: VotingService,
    actor: Actor | None = None,
) -> None:
    if not contest.has_valid_contest_structure:
        await reply_unavailable(message)
        return
    if actor is None:
        await reply_safe(message, "⚠️ Please try again.")
        return

    try:
        text, markup = await _apps_view(contest, store, voting, actor)
    except ContestError as e:
        await reply_safe(message, f"⚠️ {escape(e.message)}")
        return

    await message.answer(text, reply_markup=markup, disable_web_page_preview=True)


@router.callback_query(F.data.startswith("vote:"))
async def vote_cb(
    callback: CallbackQuery,
    contest: ContestManager,
    store: Store,
    voting: VotingService,
    actor: Actor | None = None,
) -> None:
    app_id = callback.data.split(":", 1)[1]

    result = await voting.toggle_vote(actor, app_id)
    await callback.answer(result.message, show_alert=not result.ok)
    if not result or actor is None or callback.message is None:
        return

    try:
        text, markup = await _apps_view(contest, store, voting, actor)
    except ContestError as e:
        log.warning("Failed to redraw apps list after vote: %s", e.message)
        return
    await callback.message.edit_text(text, reply_markup=markup, disable_web_page_preview=True)
