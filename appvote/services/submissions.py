# appvote/services/submissions.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from html import escape
from typing import Optional

from appvote.database.repo.apps_repo import AppRow
from appvote.services.contest import ContestManager, OperationResult
from appvote.services.errors import ContestError, ValidationFailure
from appvote.services.identity import Actor
from appvote.services.store import Store

log = logging.getLogger(__name__)

SHARE_LIMIT = 10
NAME_MAX = 100
LINK_MAX = 500
_LINK_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class RankedApp:
    rank: int
    app: AppRow


def parse_submission(raw: str) -> tuple[str, str]:
    """
    "My App | https://example.com" -> ("My App", "https://example.com")
    """
    if "|" not in (raw or ""):
        raise ValidationFailure("Use: /submit App name | https://link")
    name, _, link = raw.partition("|")
    return name.strip(), link.strip()


def validate_app(name: str, link: str) -> None:
    if not name:
        raise ValidationFailure("App name is required")
    if len(name) > NAME_MAX:
        raise ValidationFailure(f"App name must be at most {NAME_MAX} characters")
    if not link or len(link) > LINK_MAX or not _LINK_RE.match(link):
        raise ValidationFailure("App link must be a valid http(s) URL")


class SubmissionService:
    def __init__(self, store: Store, contest: ContestManager) -> None:
        self.store = store
        self.contest = contest

    async def submit_app(
        self,
        actor: Optional[Actor],
        name: str,
        link: str,
        image_url: Optional[str] = None,
    ) -> OperationResult:
        name = (name or "").strip()
        link = (link or "").strip()
        try:
            if actor is None:
                raise ValidationFailure("You must be logged in to submit an app")
            if not self.contest.can_submit_apps():
                raise ValidationFailure("Apps can only be submitted during active contests")
            validate_app(name, link)

            week = self.contest.current_week
            row = await self.store.insert_app(
                name=name,
                link=link,
                image_url=image_url,
                user_id=actor.id,
                contest_week_id=week.id if week else None,
            )
        except ContestError as e:
            return OperationResult(False, e.message)

        log.info("App submitted id=%s user=%s week=%s", row.id, actor.id, row.contest_week_id)
        return OperationResult(True, f"App “{row.name}” submitted")

    async def ranking(self, week_id: Optional[int]) -> list[RankedApp]:
        apps = await self.store.list_apps(week_id)
        return [RankedApp(rank=i, app=a) for i, a in enumerate(apps, start=1)]


def top_apps_text(ranked: list[RankedApp], *, week_name: Optional[str] = None, limit: int = SHARE_LIMIT) -> str:
    """
    Shareable "Top N" post (HTML), one line per app:
      1. Name - https://link (12 votes)
    """
    title = f"📱 <b>Top {limit} Apps</b>"
    if week_name:
        title += f" · {escape(week_name)}"
    body = [
        f"{r.rank}. {escape(r.app.name)} - {escape(r.app.link)} ({r.app.votes} vote{'' if r.app.votes == 1 else 's'})"
        for r in ranked[:limit]
    ]
    if not body:
        body = ["No apps submitted yet."]
    return "\n".join([title, "", *body, "", "Shared from AppVote"])
