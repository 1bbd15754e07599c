# appvote/handlers/user/router.py
from aiogram import Router

from appvote.handlers.user.whoami import router as whoami_router
from appvote.handlers.user.contest import router as contest_router
from appvote.handlers.user.apps import router as apps_router
from appvote.handlers.user.submit import router as submit_router

router = Router(name="user")

router.include_router(whoami_router)
router.include_router(contest_router)
router.include_router(apps_router)
router.include_router(submit_router)
