from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def utc_now_naive() -> datetime:
    # stored in DB as naive UTC (timezone=False columns)
    return datetime.now(tz=ZoneInfo("UTC")).replace(tzinfo=None)


def fmt_utc(dt: datetime | None) -> str:
    if dt is None:
        return "—"
    return dt.strftime("%Y-%m-%d %H:%M UTC")
