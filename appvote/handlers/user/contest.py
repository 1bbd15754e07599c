# appvote/handlers/user/contest.py
from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from appvote.database.models import WeekStatus
from appvote.database.repo.contest_repo import WeekRow
from appvote.keyboards.contest import week_browser_kb
from appvote.keyboards.main import BTN_CONTEST, BTN_WINNERS
from appvote.services.contest import ContestManager
from appvote.utils.contest_text import week_details, winners_block
from appvote.utils.reply import reply_safe, reply_unavailable

router = Router()


def _render_week(contest: ContestManager, week: WeekRow | None) -> str:
    if week is None:
        return "🗓 No contest weeks yet."

    parts = ["🗓 <b>AppVote Contest</b>", "", week_details(week)]
    if contest.current_week and contest.current_week.id == week.id:
        parts.append("")
        if contest.can_vote():
            parts.append("✅ Submissions and voting are open.")
        else:
            parts.append("⏸ Submissions and voting are closed.")

    winners = contest.get_winners_for_week(week.id)
    if winners:
        parts += ["", "🏆 <b>Winners</b>", winners_block(winners)]
    return "\n".join(parts)


@router.message(F.text == BTN_CONTEST)
@router.message(Command("contest"))
async def contest_cmd(message: Message, contest: ContestManager) -> None:
    if not contest.has_valid_contest_structure:
        await reply_unavailable(message)
        return

    week = contest.current_week
    await message.answer(
        _render_week(contest, week),
        reply_markup=week_browser_kb(contest.get_all_weeks(), week.id if week else None),
        disable_web_page_preview=True,
    )


@router.callback_query(F.data.startswith("week:"))
async def week_cb(callback: CallbackQuery, contest: ContestManager) -> None:
    try:
        week_id = int(callback.data.split(":", 1)[1])
    except (IndexError, ValueError):
        await callback.answer("Bad request", show_alert=True)
        return

    # switch + read happen without an await in between
    if not contest.switch_week(week_id):
        await callback.answer("This contest week no longer exists", show_alert=True)
        return
    week = contest.selected_week

    await callback.answer()
    if callback.message:
        await callback.message.edit_text(
            _render_week(contest, week),
            reply_markup=week_browser_kb(contest.get_all_weeks(), week.id if week else None),
            disable_web_page_preview=True,
        )


@router.message(F.text == BTN_WINNERS)
@router.message(Command("winners"))
async def winners_cmd(message: Message, contest: ContestManager) -> None:
    if not contest.has_valid_contest_structure:
        await reply_unavailable(message)
        return

    sections = []
    for week in contest.get_all_weeks():
        if week.status not in (WeekStatus.ENDED, WeekStatus.COMPLETED):
            continue
        rows = contest.get_winners_for_week(week.id)
        body = winners_block(rows) if rows else "<i>Winners not announced yet</i>"
        sections.append(f"<b>{escape(week.name)}</b>\n{body}")

    if not sections:
        await reply_safe(message, "🏆 No finished contest weeks yet.")
        return
    await reply_safe(message, "🏆 <b>Contest winners</b>\n\n" + "\n\n".join(sections), disable_web_page_preview=True)
