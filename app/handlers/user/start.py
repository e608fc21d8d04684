"""
User command: /start
"""
import logging
from typing import Optional

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import BaseEventIsolation
from aiogram.types import Message

from app.handlers.common.keyboards import get_hero_keyboard
from app.handlers.common.screens import render_hero_text
from app.handlers.user.referrals import close_referral_form
from app.i18n import resolve_language

user_router = Router()
logger = logging.getLogger(__name__)


@user_router.message(Command("start"))
async def cmd_start(message: Message, bot: Bot, state: FSMContext,
                    referral_lock: Optional[BaseEventIsolation] = None):
    """Hero screen with the «Refer Now» call-to-action. Closes a form left open."""
    # Private chats only
    if message.chat.type != "private":
        return

    if await close_referral_form(bot, message.chat.id, state, lock=referral_lock):
        logger.info("Open referral form closed by /start: user=%s", message.from_user.id)

    language = resolve_language(message.from_user.language_code)
    await message.answer(
        render_hero_text(language),
        reply_markup=get_hero_keyboard(language),
        parse_mode="HTML",
    )
