# appvote/handlers/user/submit.py
from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from appvote.keyboards.main import BTN_SUBMIT
from appvote.services.contest import ContestManager
from appvote.services.errors import ValidationFailure
from appvote.services.identity import Actor
from appvote.services.submissions import SubmissionService, parse_submission
from appvote.utils.reply import reply_safe, reply_unavailable

router = Router()

USAGE = (
    "📤 <b>Submit your app</b>\n\n"
    "Send:\n<code>/submit App name | https://link</code>\n\n"
    "Attach a screenshot by sending it as a photo with that text as caption."
)


@router.message(F.text == BTN_SUBMIT)
async def submit_help(message: Message, contest: ContestManager) -> None:
    if not contest.has_valid_contest_structure:
        await reply_unavailable(message)
        return
    await reply_safe(message, USAGE)


# Command also matches photo captions
@router.message(Command("submit"))
async def submit_cmd(
    message: Message,
    command: CommandObject,
    contest: ContestManager,
    submissions: SubmissionService,
    actor: Actor | None = None,
) -> None:
    if not contest.has_valid_contest_structure:
        await reply_unavailable(message)
        return
    if not command.args:
        await reply_safe(message, USAGE)
        return

    try:
        name, link = parse_submission(command.args)
    except ValidationFailure as e:
        await reply_safe(message, f"⚠️ {escape(e.message)}")
        return

    # screenshot kept as a Telegram file_id
    image = message.photo[-1].file_id if message.photo else None

    result = await submissions.submit_app(actor, name, link, image_url=image)
    icon = "✅" if result else "⚠️"
    await reply_safe(message, f"{icon} {escape(result.message)}")
