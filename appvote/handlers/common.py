# appvote/handlers/common.py
from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import CallbackQuery, Message

from appvote.config.settings import Settings
from appvote.keyboards.contest import NOOP
from appvote.services.contest import ContestManager
from appvote.utils.reply import reply_safe

router = Router(name="common")


@router.message(CommandStart())
async def cmd_start(message: Message, contest: ContestManager, settings: Settings) -> None:
    text = (
        "👋 Welcome to the <b>AppVote</b> contest!\n\n"
        "Every contest week makers submit their apps and the community votes.\n"
        f"You have {settings.vote_limit} votes per week.\n\n"
        "Use /help to see commands."
    )
    if not contest.has_valid_contest_structure:
        text += "\n\n🚧 The contest is not running yet."
    await reply_safe(message, text)


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await reply_safe(
        message,
        "📌 Available commands:\n"
        "/contest — contest weeks and status\n"
        "/apps — apps of the running week, tap to vote\n"
        "/submit App name | https://link — submit your app (photo caption works too)\n"
        "/winners — winners of finished weeks\n"
        "/whoami — your profile + role\n\n"
        "You can also use the menu buttons.",
    )


@router.callback_query(F.data == NOOP)
async def noop_cb(callback: CallbackQuery) -> None:
    await callback.answer()
