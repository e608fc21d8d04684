"""
Shared handler utilities: input sanitizing, widget persistence in FSM storage,
safe edits and deletes of the form message.
"""
import logging
import re
from typing import AsyncContextManager, Optional, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import BaseEventIsolation
from aiogram.fsm.storage.memory import SimpleEventIsolation
from aiogram.types import InlineKeyboardMarkup

from app.services.referrals.service import ReferralWidget

logger = logging.getLogger(__name__)

WIDGET_KEY = "referral_widget"
FORM_MESSAGE_KEY = "referral_form_message_id"
PROMPT_MESSAGE_KEY = "referral_prompt_message_id"

MAX_INPUT_LENGTH = 254

# Used when no isolation is injected (single process, in-memory storage)
_local_isolation = SimpleEventIsolation()

_CALLBACK_DATA_RE = re.compile(r"^[a-zA-Z0-9_:.\-]+$")
MAX_CALLBACK_DATA_LENGTH = 64

# Control chars, zero-width and bidi overrides
_DANGEROUS_UNICODE_RE = re.compile(
    r"[\u0000-\u001f"
    r"\u007f-\u009f"
    r"\u200b-\u200f"
    r"\u2028-\u202f"
    r"\u2060-\u206f"
    r"\ufeff"
    r"]"
)

_EDIT_GONE_MARKERS = (
    "message to edit not found",
    "message can't be edited",
    "message is inaccessible",
)


def sanitize_input(text: Optional[str]) -> str:
    """
    Clean a typed field value.

    - Removes control, zero-width and bidi override characters
    - Strips surrounding whitespace
    - Truncates to MAX_INPUT_LENGTH
    """
    if not text:
        return ""
    text = _DANGEROUS_UNICODE_RE.sub("", text).strip()
    if len(text) > MAX_INPUT_LENGTH:
        text = text[:MAX_INPUT_LENGTH].rstrip()
    return text


def validate_callback_data(data: Optional[str]) -> bool:
    """Callback data length and charset check."""
    if not data or len(data) > MAX_CALLBACK_DATA_LENGTH:
        return False
    return bool(_CALLBACK_DATA_RE.match(data))


def widget_lock(state: FSMContext, isolation: Optional[BaseEventIsolation] = None) -> AsyncContextManager[None]:
    """
    Per-chat lock for a load, modify, save cycle of the widget.

    Never hold it across a network call to the referrals API: field input
    must stay possible while a submission is pending.
    """
    return (isolation or _local_isolation).lock(state.key)


async def load_widget(state: FSMContext) -> Tuple[ReferralWidget, Optional[int]]:
    """Widget and form message id from FSM storage (fresh closed widget if none)."""
    data = await state.get_data()
    return ReferralWidget.from_dict(data.get(WIDGET_KEY)), data.get(FORM_MESSAGE_KEY)


async def save_widget(state: FSMContext, widget: ReferralWidget, **extra) -> None:
    """
    Persist the widget. Extra keys (form/prompt message ids) are stored as given.

    The widget is never removed from storage: its generation counter must keep
    growing across open/close cycles.
    """
    await state.update_data({WIDGET_KEY: widget.to_dict(), **extra})


async def remember_message_ids(state: FSMContext, isolation: Optional[BaseEventIsolation] = None,
                               **message_ids: Optional[int]) -> None:
    """Store form/prompt message ids under the widget lock.

    update_data rewrites the whole data dict, so an unlocked call could put
    back a widget that another handler has just replaced.
    """
    async with widget_lock(state, isolation):
        await state.update_data(message_ids)


async def safe_delete_message(bot: Bot, chat_id: int, message_id: Optional[int]) -> None:
    """Delete a message, ignoring messages that are already gone."""
    if not message_id:
        return
    try:
        await bot.delete_message(chat_id=chat_id, message_id=message_id)
    except TelegramBadRequest as e:
        logger.debug("Message %s not deleted: %s", message_id, e)


async def safe_edit_message(
    bot: Bot,
    chat_id: int,
    message_id: Optional[int],
    text: str,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
) -> Optional[int]:
    """
    Edit the form message in place.

    Falls back to sending a new message when the old one can no longer be
    edited.

    Returns:
        Id of the message now showing the text
    """
    if message_id:
        try:
            await bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
                parse_mode="HTML",
            )
            return message_id
        except TelegramBadRequest as e:
            error_msg = str(e).lower()
            if "message is not modified" in error_msg:
                return message_id
            if not any(marker in error_msg for marker in _EDIT_GONE_MARKERS):
                raise
            logger.info("Form message %s gone, sending a new one: chat_id=%s", message_id, chat_id)

    sent = await bot.send_message(chat_id, text, reply_markup=reply_markup, parse_mode="HTML")
    return sent.message_id
