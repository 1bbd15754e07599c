# appvote/main.py
import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from appvote.config import Settings
from appvote.database import Database

# IMPORTANT: register models
from appvote.database.models import *  # noqa: F401,F403

from appvote.handlers.router import router as handlers_router
from appvote.scheduler import setup_scheduler
from appvote.services.announcer import WinnersAnnouncer
from appvote.services.bootstrap import prepare_contest_schema
from appvote.services.changes import ChangeFeed
from appvote.services.contest import ContestManager
from appvote.services.identity import ContextIdentity
from appvote.services.store import ContestStore
from appvote.services.submissions import SubmissionService
from appvote.services.voting import VotingService
from appvote.utils.middleware import DbSessionMiddleware, IdentityMiddleware


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy logs: WARNING+ (no query/pool spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "aiosqlite",
        "asyncpg",
        "apscheduler",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("appvote")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    feed = ChangeFeed()
    store = ContestStore(db, feed)

    report = await prepare_contest_schema(store)
    if report.ok:
        log.info("Contest schema OK (%s weeks)", report.week_count)

    identity = ContextIdentity()
    contest = ContestManager(store, identity)
    loaded = await contest.initialize()
    if loaded:
        week = contest.current_week
        log.info("Contest state loaded, current week: %s", week.name if week else None)
    else:
        log.warning("Contest state not loaded: %s", loaded.message)

    voting = VotingService(store, contest, vote_limit=settings.vote_limit)
    submissions = SubmissionService(store, contest)

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    contest.add_listener(WinnersAnnouncer(bot, settings))

    dp = Dispatcher()

    # Inject workflow data
    dp.workflow_data["settings"] = settings
    dp.workflow_data["db"] = db
    dp.workflow_data["store"] = store
    dp.workflow_data["contest"] = contest
    dp.workflow_data["voting"] = voting
    dp.workflow_data["submissions"] = submissions

    # DB session per update, then actor per update
    dp.update.middleware(DbSessionMiddleware(db))
    dp.update.middleware(IdentityMiddleware(settings, identity))

    # Include routers (admin/user/common)
    dp.include_router(handlers_router)

    scheduler = setup_scheduler(contest=contest, settings=settings)
    log.info("Scheduler started")

    try:
        await dp.start_polling(bot)
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Bot crashed")
        raise
    finally:
        try:
            await contest.close()
        except Exception:
            log.exception("Failed to close contest manager")

        # Stop scheduler
        try:
            scheduler.shutdown(wait=False)
        except Exception:
            log.exception("Failed to shutdown scheduler")

        # Close DB + bot session
        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")

        try:
            await bot.session.close()
        except Exception:
            log.exception("Failed to close bot session")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
