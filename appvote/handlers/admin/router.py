# appvote/handlers/admin/router.py
from aiogram import Router

from appvote.handlers.admin.panel import router as panel_router
from appvote.handlers.admin.contest_admin import router as contest_admin_router
from appvote.handlers.admin.winners_admin import router as winners_admin_router
from appvote.handlers.admin.schema_admin import router as schema_admin_router

router = Router(name="admin")

router.include_router(panel_router)
router.include_router(contest_admin_router)
router.include_router(winners_admin_router)
router.include_router(schema_admin_router)
