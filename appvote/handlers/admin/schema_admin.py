# appvote/handlers/admin/schema_admin.py
from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from appvote.database.session import Database
from appvote.handlers.admin.panel import require_admin_or_reply
from appvote.keyboards.admin import BTN_SCHEMA
from appvote.services.bootstrap import probe_schema, repair_contest_schema
from appvote.services.contest import ContestManager
from appvote.services.identity import Actor
from appvote.services.store import Store

router = Router()


def _mark(ok: bool | None) -> str:
    return "✅" if ok else "❌"


@router.message(F.text == BTN_SCHEMA)
@router.message(Command("contest_schema"))
async def contest_schema_cmd(message: Message, store: Store, actor: Actor | None = None) -> None:
    if not await require_admin_or_reply(message, actor):
        return

    report = await probe_schema(store)
    lines = ["🩺 <b>Contest schema</b>", ""]
    lines += [f"{_mark(ok)} table <code>{name}</code>" for name, ok in report.tables.items()]
    lines += [f"{_mark(ok)} column <code>{name}</code>" for name, ok in report.columns.items()]
    if report.week_count is not None:
        lines.append(f"\nContest weeks: {report.week_count}")
    if report.issues:
        lines += ["", "<b>Issues</b>"] + [f"• {escape(i)}" for i in report.issues]
        lines.append("\nRun /contest_repair to fix.")
    else:
        lines.append("\nAll good.")
    await message.answer("\n".join(lines))


@router.message(Command("contest_repair"))
async def contest_repair_cmd(
    message: Message,
    db: Database,
    store: Store,
    contest: ContestManager,
    actor: Actor | None = None,
) -> None:
    if not await require_admin_or_reply(message, actor):
        return

    await message.answer("⏳ Repairing contest schema...")
    report = await repair_contest_schema(db, store)
    reload = await contest.refresh()

    lines = ["✅ Repair finished" if report.success else "⚠️ Repair finished with errors", ""]
    lines += [f"• {escape(op)}" for op in report.operations]
    lines.append("")
    lines.append("Contest feature is ready." if reload else f"Contest still unavailable: {escape(reload.message)}")
    await message.answer("\n".join(lines))
