"""
Handlers module - Telegram bot routers.

Root aggregation: user (start screen, referral form).
"""
from aiogram import Router

from .user import router as user_router

router = Router()

router.include_router(user_router)
