# appvote/keyboards/admin.py
from aiogram.types import ReplyKeyboardMarkup, KeyboardButton

BTN_CONTEST_ADMIN = "🛠 Contest Admin"
BTN_RANKING = "📈 Ranking"
BTN_SCHEMA = "🩺 Contest Schema"
BTN_BACK = "⬅️ Back to Menu"


def admin_panel_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_CONTEST_ADMIN), KeyboardButton(text=BTN_RANKING)],
            [KeyboardButton(text=BTN_SCHEMA)],
            [KeyboardButton(text=BTN_BACK)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Admin panel…",
        selective=False,
        one_time_keyboard=False,
    )
