# appvote/handlers/admin/contest_admin.py
from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from appvote.handlers.admin.panel import require_admin_or_alert, require_admin_or_reply
from appvote.keyboards.admin import BTN_CONTEST_ADMIN
from appvote.keyboards.contest import status_admin_kb
from appvote.services.contest import ContestManager
from appvote.services.identity import Actor
from appvote.utils.contest_text import week_details

router = Router()


def _overview(contest: ContestManager) -> str:
    weeks = contest.get_all_weeks()
    if not weeks:
        return "🛠 <b>Contest admin</b>\n\nNo contest weeks. Try /contest_repair."
    current = contest.current_week
    blocks = [
        week_details(w) + ("\n<i>current</i>" if current and current.id == w.id else "")
        for w in weeks
    ]
    return "🛠 <b>Contest admin</b>\n\n" + "\n\n".join(blocks) + "\n\n⏳ upcoming · 🟢 active · 🔴 ended · 🏁 completed"


def _unavailable(contest: ContestManager) -> str:
    reason = escape(contest.last_error or "contest tables are missing")
    return f"🚧 Contest feature unavailable: {reason}\nRun /contest_schema or /contest_repair."


@router.message(F.text == BTN_CONTEST_ADMIN)
@router.message(Command("contest_admin"))
async def contest_admin_cmd(message: Message, contest: ContestManager, actor: Actor | None = None) -> None:
    if not await require_admin_or_reply(message, actor):
        return
    if not contest.has_valid_contest_structure:
        await message.answer(_unavailable(contest))
        return
    await message.answer(_overview(contest), reply_markup=status_admin_kb(contest.get_all_weeks()))


@router.message(Command("week_status"))
async def week_status_cmd(
    message: Message,
    command: CommandObject,
    contest: ContestManager,
    actor: Actor | None = None,
) -> None:
    if not await require_admin_or_reply(message, actor):
        return

    parts = (command.args or "").split()
    if len(parts) != 2 or not parts[0].isdigit():
        await message.answer("Usage: <code>/week_status &lt;week_id&gt; upcoming|active|ended|completed</code>")
        return

    result = await contest.update_contest_status(int(parts[0]), parts[1].lower())
    await message.answer(f"{'✅' if result else '⚠️'} {escape(result.message)}")


@router.callback_query(F.data.startswith("cw:"))
async def week_status_cb(callback: CallbackQuery, contest: ContestManager, actor: Actor | None = None) -> None:
    if not await require_admin_or_alert(callback, actor):
        return

    try:
        _, week_id, status = callback.data.split(":", 2)
        week_id = int(week_id)
    except ValueError:
        await callback.answer("Bad request", show_alert=True)
        return

    result = await contest.update_contest_status(week_id, status)
    await callback.answer(result.message, show_alert=not result.ok)
    if result and callback.message:
        await callback.message.edit_text(_overview(contest), reply_markup=status_admin_kb(contest.get_all_weeks()))


@router.message(Command("contest_reload"))
async def contest_reload_cmd(message: Message, contest: ContestManager, actor: Actor | None = None) -> None:
    if not await require_admin_or_reply(message, actor):
        return

    result = await contest.refresh()
    if result:
        await message.answer(f"✅ Contest state reloaded ({len(contest.get_all_weeks())} weeks).")
    else:
        await message.answer(f"⚠️ Reload failed: {escape(result.message or 'unknown error')}")
