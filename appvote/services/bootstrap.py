# appvote/services/bootstrap.py
"""
Contest schema bootstrap.

Normal startup only probes and seeds (prepare_contest_schema). Creating tables
and columns is a separate diagnostic path (repair_contest_schema) that runs
only when an admin asks for it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from appvote.database import Database
from appvote.database.models import CONTEST_TABLES
from appvote.database.repo.contest_repo import NewWeek
from appvote.services.errors import SchemaAbsent, StoreFailure
from appvote.services.store import APPS, VOTES, WEEKS, WINNERS, DuplicateRow, Store

log = logging.getLogger(__name__)

DEFAULT_WEEKS = (
    NewWeek(id=1, name="Week 1", description="First week of the app contest"),
    NewWeek(id=2, name="Week 2", description="Second week of the app contest"),
    NewWeek(id=3, name="Week 3", description="Third week of the app contest"),
    NewWeek(id=4, name="Week 4", description="Final week of the app contest"),
)

CONTEST_WEEK_COLUMN = "contest_week_id"


@dataclass(slots=True)
class SchemaReport:
    tables: dict[str, bool] = field(default_factory=dict)
    columns: dict[str, bool] = field(default_factory=dict)
    week_count: int | None = None
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def tables_present(self) -> bool:
        return bool(self.tables.get(WEEKS)) and bool(self.tables.get(WINNERS))


@dataclass(slots=True)
class RepairReport:
    operations: list[str] = field(default_factory=list)
    success: bool = True


async def _probe_one(store: Store, report: SchemaReport, table: str, column: str | None = None) -> int | None:
    key = f"{table}.{column}" if column else table
    bucket = report.columns if column else report.tables
    try:
        n = await store.probe(table, column)
    except SchemaAbsent as e:
        bucket[key] = False
        report.issues.append(e.message)
        return None
    except StoreFailure as e:
        bucket[key] = False
        report.issues.append(e.message)
        return None
    bucket[key] = True
    return n


async def probe_schema(store: Store) -> SchemaReport:
    report = SchemaReport()

    await _probe_one(store, report, WEEKS)
    await _probe_one(store, report, WINNERS)
    await _probe_one(store, report, APPS, CONTEST_WEEK_COLUMN)
    await _probe_one(store, report, VOTES, CONTEST_WEEK_COLUMN)

    if report.tables.get(WEEKS):
        try:
            report.week_count = await store.count_weeks()
        except (SchemaAbsent, StoreFailure) as e:
            report.issues.append(e.message)

    for issue in report.issues:
        log.warning("Contest schema issue: %s", issue)
    return report


async def seed_default_weeks(store: Store) -> bool:
    """
    Inserts Week 1..4 when the weeks table is empty.
    Returns True if rows were inserted. A uniqueness violation means another
    initializer seeded first and is not an error.
    """
    if await store.count_weeks() > 0:
        return False
    try:
        await store.insert_weeks(DEFAULT_WEEKS)
    except DuplicateRow:
        log.info("Contest weeks already seeded by a concurrent initializer")
        return False
    log.info("Seeded %d default contest weeks", len(DEFAULT_WEEKS))
    return True


async def prepare_contest_schema(store: Store) -> SchemaReport:
    report = await probe_schema(store)
    if not report.tables_present:
        log.warning(
            "Contest tables are missing: submissions and votes are disabled. "
            "An admin can run /contest_repair to create them."
        )
        return report

    if report.week_count == 0:
        try:
            if await seed_default_weeks(store):
                report.week_count = len(DEFAULT_WEEKS)
        except (SchemaAbsent, StoreFailure) as e:
            report.issues.append(f"Failed to insert initial contest weeks: {e.message}")
    return report


async def _add_column(db: Database, table: str, column: str) -> None:
    async with db.engine.begin() as conn:
        await conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} INTEGER"))


async def repair_contest_schema(db: Database, store: Store) -> RepairReport:
    """
    Diagnostic-only repair: create missing contest tables and columns, then seed.
    Each step is attempted independently and recorded in the report.
    """
    result = RepairReport()
    report = await probe_schema(store)

    missing_tables = [t for t in CONTEST_TABLES if report.tables.get(t.name) is False]
    if missing_tables:
        names = ", ".join(t.name for t in missing_tables)
        try:
            await db.create_tables(missing_tables)
            result.operations.append(f"Created tables: {names}")
        except SQLAlchemyError as e:
            log.exception("Failed to create contest tables")
            result.operations.append(f"Failed to create tables {names}: {e}")
            result.success = False

    for table in (APPS, VOTES):
        key = f"{table}.{CONTEST_WEEK_COLUMN}"
        if report.columns.get(key) is not False:
            continue
        try:
            await _add_column(db, table, CONTEST_WEEK_COLUMN)
            result.operations.append(f"Added {CONTEST_WEEK_COLUMN} column to {table}")
        except SQLAlchemyError as e:
            log.exception("Failed to add %s", key)
            result.operations.append(f"Failed to add {CONTEST_WEEK_COLUMN} to {table}: {e}")
            result.success = False

    try:
        if await seed_default_weeks(store):
            result.operations.append(f"Added {len(DEFAULT_WEEKS)} initial contest weeks")
    except (SchemaAbsent, StoreFailure) as e:
        result.operations.append(f"Failed to insert initial contest weeks: {e.message}")
        result.success = False

    if not result.operations:
        result.operations.append("Nothing to repair")
    return result
