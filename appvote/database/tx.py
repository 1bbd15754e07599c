# appvote/database/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transactional(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    One unit of work on `session` (SQLAlchemy 2.x autobegin aware).

    - nested inside an open transaction -> SAVEPOINT
    - otherwise -> BEGIN ... COMMIT, rolled back if the block raises
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield session
    else:
        async with session.begin():
            yield session
