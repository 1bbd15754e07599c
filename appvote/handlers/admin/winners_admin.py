# appvote/handlers/admin/winners_admin.py
from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from appvote.config import Settings
from appvote.database.models import WeekStatus
from appvote.handlers.admin.panel import require_admin_or_alert, require_admin_or_reply
from appvote.keyboards.admin import BTN_RANKING
from appvote.keyboards.contest import winner_pick_kb
from appvote.keyboards.main import open_bot_kb
from appvote.services.contest import ContestManager
from appvote.services.errors import ContestError
from appvote.services.identity import Actor
from appvote.services.submissions import SubmissionService, top_apps_text
from appvote.utils.contest_text import app_line, week_line, winners_block

router = Router()

PICK_LIMIT = 10


def _pick_week(contest: ContestManager, args: str):
    if args:
        return next((w for w in contest.get_all_weeks() if w.id == int(args)), None)
    return contest.current_week


@router.message(F.text == BTN_RANKING)
@router.message(Command("ranking"))
async def ranking_cmd(
    message: Message,
    contest: ContestManager,
    submissions: SubmissionService,
    command: CommandObject | None = None,
    actor: Actor | None = None,
) -> None:
    if not await require_admin_or_reply(message, actor):
        return
    if not contest.has_valid_contest_structure:
        await message.answer("🚧 Contest feature unavailable. Run /contest_schema.")
        return

    args = (command.args or "").strip() if command else ""
    if args and not args.isdigit():
        await message.answer("Usage: <code>/ranking [week_id]</code>")
        return
    week = _pick_week(contest, args)
    if week is None:
        await message.answer("Contest week not found")
        return

    try:
        ranked = await submissions.ranking(week.id)
    except ContestError as e:
        await message.answer(f"⚠️ {escape(e.message)}")
        return

    lines = [f"📈 <b>Ranking</b>\n{week_line(week)}\n"]
    if not ranked:
        lines.append("No apps submitted for this week.")
    lines += [app_line(r.rank, r.app) for r in ranked]

    winners = contest.get_winners_for_week(week.id)
    if winners:
        lines += ["", "🏆 <b>Winners</b>", winners_block(winners)]

    markup = None
    if week.status == WeekStatus.ENDED and ranked:
        lines.append("\nPick winners with the buttons below.")
        markup = winner_pick_kb(week.id, [r.app for r in ranked[:PICK_LIMIT]])

    await message.answer("\n".join(lines), reply_markup=markup, disable_web_page_preview=True)


@router.message(Command("winner"))
async def winner_cmd(
    message: Message,
    command: CommandObject,
    contest: ContestManager,
    actor: Actor | None = None,
) -> None:
    if not await require_admin_or_reply(message, actor):
        return

    parts = (command.args or "").split()
    if len(parts) != 3 or not parts[0].isdigit() or not parts[1].isdigit():
        await message.answer("Usage: <code>/winner &lt;week_id&gt; &lt;1|2|3&gt; &lt;app_id&gt;</code>")
        return

    result = await contest.select_winner(int(parts[0]), parts[2], int(parts[1]))
    await message.answer(f"{'✅' if result else '⚠️'} {escape(result.message)}")


@router.callback_query(F.data.startswith("win:"))
async def winner_cb(callback: CallbackQuery, contest: ContestManager, actor: Actor | None = None) -> None:
    if not await require_admin_or_alert(callback, actor):
        return

    try:
        _, week_id, position, app_id = callback.data.split(":", 3)
        week_id, position = int(week_id), int(position)
    except ValueError:
        await callback.answer("Bad request", show_alert=True)
        return

    result = await contest.select_winner(week_id, app_id, position)
    await callback.answer(result.message, show_alert=True)


@router.message(Command("share_top"))
async def share_top_cmd(
    message: Message,
    command: CommandObject,
    contest: ContestManager,
    submissions: SubmissionService,
    settings: Settings,
    actor: Actor | None = None,
) -> None:
    if not await require_admin_or_reply(message, actor):
        return
    if not contest.has_valid_contest_structure:
        await message.answer("🚧 Contest feature unavailable. Run /contest_schema.")
        return

    args = (command.args or "").strip()
    if args and not args.isdigit():
        await message.answer("Usage: <code>/share_top [week_id]</code>")
        return
    week = _pick_week(contest, args)
    if week is None:
        await message.answer("Contest week not found")
        return

    try:
        ranked = await submissions.ranking(week.id)
    except ContestError as e:
        await message.answer(f"⚠️ {escape(e.message)}")
        return

    text = top_apps_text(ranked, week_name=week.name)
    if not settings.group_id:
        # nowhere to post: hand the text back for copying
        await message.answer(text, disable_web_page_preview=True)
        return

    await message.bot.send_message(
        chat_id=settings.group_id,
        text=text,
        reply_markup=open_bot_kb(settings.bot_username),
        disable_web_page_preview=True,
    )
    await message.answer(f"✅ Top apps of {escape(week.name)} posted to the group")
