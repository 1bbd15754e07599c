# appvote/database/errors.py
from __future__ import annotations

import re

from sqlalchemy.exc import DBAPIError, IntegrityError

RELATION_MISSING = "relation_missing"
COLUMN_MISSING = "column_missing"
UNIQUE_VIOLATION = "unique_violation"
OTHER = "other"

# Postgres SQLSTATE codes (asyncpg exposes .sqlstate, psycopg2 exposes .pgcode)
_SQLSTATE = {
    "42P01": RELATION_MISSING,
    "42703": COLUMN_MISSING,
    "23505": UNIQUE_VIOLATION,
}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if isinstance(code, str) and code:
            return code
    cause = getattr(orig, "__cause__", None)
    code = getattr(cause, "sqlstate", None)
    return code if isinstance(code, str) else None


def classify_db_error(exc: BaseException) -> str:
    """
    Maps a driver error to one of RELATION_MISSING / COLUMN_MISSING / UNIQUE_VIOLATION / OTHER.
    """
    if not isinstance(exc, DBAPIError):
        return OTHER

    code = _sqlstate(exc)
    if code in _SQLSTATE:
        return _SQLSTATE[code]

    msg = str(getattr(exc, "orig", exc)).lower()
    if "no such table" in msg or ("relation" in msg and "does not exist" in msg):
        return RELATION_MISSING
    if "no such column" in msg or ("column" in msg and "does not exist" in msg):
        return COLUMN_MISSING
    if isinstance(exc, IntegrityError) and ("unique constraint" in msg or "duplicate key" in msg):
        return UNIQUE_VIOLATION
    return OTHER


_COLUMN_RES = (
    re.compile(r"no such column:\s*\"?([\w.]+)\"?"),
    re.compile(r"column \"?([\w.]+)\"?(?: of relation \"?\w+\"?)? does not exist"),
)


def missing_column(exc: BaseException) -> str | None:
    """Column name from a "no such column" / "column ... does not exist" error, if it names one."""
    msg = str(getattr(exc, "orig", exc))
    for rx in _COLUMN_RES:
        m = rx.search(msg)
        if m:
            return m.group(1).rsplit(".", 1)[-1]
    return None
