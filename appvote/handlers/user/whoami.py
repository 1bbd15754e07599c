# appvote/handlers/user/whoami.py
from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from appvote.database.models import User
from appvote.services.auth import AuthResult
from appvote.utils.reply import reply_safe

router = Router()


@router.message(Command("whoami"))
async def whoami(message: Message, db_user: User | None = None, authz: AuthResult | None = None) -> None:
    if db_user is None or authz is None:
        await reply_safe(message, "⚠️ Please try again.")
        return

    username = f"@{db_user.username}" if db_user.username else "(none)"
    text = (
        "👤 <b>Your identity</b>\n"
        f"• Telegram ID: <code>{db_user.telegram_id}</code>\n"
        f"• Username: {username}\n"
        f"• Role: {authz.role}\n"
    )
    await reply_safe(message, text)
