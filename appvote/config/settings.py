# appvote/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./appvote.db"


def _require(env: Mapping[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _optional_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    return _to_int(raw, key)


def _parse_int_list(raw: str | None, key_name: str) -> list[int]:
    """
    Parses comma/space/newline separated ints.
    Accepts:
      "951258732"
      "951258732,123"
      "951258732 123"
      "[951258732, 123]"  (brackets ignored)
    """
    if not raw:
        return []

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return []

    parts = [p for p in re.split(r"[,\s]+", cleaned) if p]

    out: list[int] = []
    for p in parts:
        p2 = p.strip().strip("'\"")
        if not p2:
            continue
        out.append(_to_int(p2, key_name))
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # --- required ---
    bot_token: str
    bot_username: str

    # --- optional ---
    database_url: str = DEFAULT_DATABASE_URL

    # --- security / admin ---
    root_admin_ids: tuple[int, ...] = ()

    # --- telegram targets ---
    group_id: Optional[int] = None

    # --- contest ---
    vote_limit: int = 5
    contest_refresh_minutes: int = 5

    # --- scheduler / time ---
    timezone: str = "UTC"

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for required fields.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        bot_token = _require(env, "BOT_TOKEN")
        bot_username = _require(env, "BOT_USERNAME")

        database_url = (env.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()

        root_admin_ids = tuple(_parse_int_list(env.get("ROOT_ADMIN_IDS"), "ROOT_ADMIN_IDS"))

        group_id_raw = (env.get("GROUP_ID") or "").strip()
        group_id = _to_int(group_id_raw, "GROUP_ID") if group_id_raw else None

        vote_limit = _optional_int(env, "VOTE_LIMIT", 5)
        if vote_limit < 1:
            raise RuntimeError(f"VOTE_LIMIT must be positive, got {vote_limit}")

        contest_refresh_minutes = _optional_int(env, "CONTEST_REFRESH_MINUTES", 5)
        if contest_refresh_minutes < 0:
            raise RuntimeError("CONTEST_REFRESH_MINUTES must be >= 0")

        timezone = (env.get("TIMEZONE") or "UTC").strip() or "UTC"
        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            bot_token=bot_token,
            bot_username=bot_username,
            database_url=database_url,
            root_admin_ids=root_admin_ids,
            group_id=group_id,
            vote_limit=vote_limit,
            contest_refresh_minutes=contest_refresh_minutes,
            timezone=timezone,
            environment=environment,
        )
