# appvote/utils/reply.py
from __future__ import annotations

from aiogram.types import Message

from appvote.keyboards.main import main_menu_kb

UNAVAILABLE_TEXT = (
    "🚧 <b>The contest feature is not available right now.</b>\n"
    "Submissions and voting are disabled until an admin sets it up."
)


async def reply_safe(message: Message, text: str, **kwargs) -> None:
    """
    Attach the main menu only in private chats; groups get no reply keyboard.
    """
    if message.chat.type == "private":
        kwargs.setdefault("reply_markup", main_menu_kb())
    else:
        kwargs.setdefault("reply_markup", None)

    await message.answer(text, **kwargs)


async def reply_unavailable(message: Message) -> None:
    await reply_safe(message, UNAVAILABLE_TEXT)
