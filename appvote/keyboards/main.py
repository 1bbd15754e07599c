# appvote/keyboards/main.py
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup

BTN_CONTEST = "🗓 Contest"
BTN_APPS = "🗳 Vote"
BTN_SUBMIT = "📤 Submit App"
BTN_WINNERS = "🏆 Winners"


def main_menu_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_CONTEST), KeyboardButton(text=BTN_APPS)],
            [KeyboardButton(text=BTN_SUBMIT), KeyboardButton(text=BTN_WINNERS)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Choose an action…",
        selective=False,
        one_time_keyboard=False,
    )


def open_bot_kb(bot_username: str) -> InlineKeyboardMarkup:
    """Deep link attached to group posts."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="➡️ Open Bot",
                    url=f"https://t.me/{bot_username.lstrip('@')}",
                )
            ]
        ]
    )
