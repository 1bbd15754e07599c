# appvote/handlers/admin/panel.py
from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from appvote.keyboards.admin import BTN_BACK, admin_panel_kb
from appvote.services.errors import AuthorizationDenied
from appvote.services.identity import Actor, require_admin
from appvote.utils.reply import reply_safe

router = Router()

DENIED_TEXT = "⛔ You are not allowed to use admin commands."


async def require_admin_or_reply(message: Message, actor: Actor | None) -> bool:
    try:
        require_admin(actor)
    except AuthorizationDenied:
        await message.answer(DENIED_TEXT)
        return False
    return True


async def require_admin_or_alert(callback: CallbackQuery, actor: Actor | None) -> bool:
    try:
        require_admin(actor)
    except AuthorizationDenied:
        await callback.answer(DENIED_TEXT, show_alert=True)
        return False
    return True


@router.message(Command("admin"))
async def open_admin_panel(message: Message, actor: Actor | None = None) -> None:
    if not await require_admin_or_reply(message, actor):
        return
    await message.answer(
        "🛠 <b>Admin panel</b>\n\n"
        "/contest_admin — weeks and status buttons\n"
        "/week_status &lt;week_id&gt; &lt;status&gt; — set a week status\n"
        "/ranking [week_id] — apps by votes, pick winners\n"
        "/winner &lt;week_id&gt; &lt;position&gt; &lt;app_id&gt; — set a winner\n"
        "/share_top [week_id] — post the top 10 apps to the group\n"
        "/contest_schema — check contest tables\n"
        "/contest_repair — create missing contest tables\n"
        "/contest_reload — reload contest state",
        reply_markup=admin_panel_kb(),
    )


@router.message(F.text == BTN_BACK)
async def back_to_menu(message: Message) -> None:
    await reply_safe(message, "Main menu 👇")
