"""
Typed contest errors.

Services raise these; the contest manager and the voting/submission services
turn them into an OperationResult at their public boundary, so handlers only
ever see a success flag and a message.
"""
from __future__ import annotations


class ContestError(Exception):
    """Base class for contest failures. `message` is safe to show to users."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SchemaAbsent(ContestError):
    """A contest table (or column) does not exist in the database."""

    def __init__(self, table: str, column: str | None = None) -> None:
        self.table = table
        self.column = column
        what = f"Column {table}.{column}" if column else f"Table {table}"
        super().__init__(f"{what} does not exist")


class AuthorizationDenied(ContestError):
    """A non-admin actor attempted an admin-only operation."""


class StoreFailure(ContestError):
    """Generic storage failure. No retry is attempted."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ValidationFailure(ContestError):
    """Request rejected before touching the store."""
