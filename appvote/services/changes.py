"""In-process change notifications for contest tables.

The store publishes one ChangeEvent per committed write; subscribers (the
contest manager) react by reloading. A failing handler is logged and does not
affect other handlers or the write that produced the event.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Dict, List

log = logging.getLogger(__name__)

ChangeHandler = Callable[["ChangeEvent"], Coroutine[Any, Any, None]]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    table: str
    op: str  # insert | update | delete
    row_ids: tuple = field(default_factory=tuple)


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, handler: ChangeHandler) -> None:
        self._feed = feed
        self.table = table
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Subscription]] = {}

    def subscribe(self, table: str, handler: ChangeHandler) -> Subscription:
        sub = Subscription(self, table, handler)
        self._subscribers.setdefault(table, []).append(sub)
        return sub

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, []))

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.table, [])
        if sub in subs:
            subs.remove(sub)

    async def publish(self, event: ChangeEvent) -> None:
        # copy: handlers may unsubscribe while we iterate
        for sub in list(self._subscribers.get(event.table, [])):
            if not sub.active:
                continue
            try:
                await sub.handler(event)
            except Exception:
                log.exception(
                    "Change handler %s failed for %s/%s",
                    getattr(sub.handler, "__name__", sub.handler),
                    event.table,
                    event.op,
                )
