"""
Referral form handlers: open/close the form, field input, course choice, submit.

The form message plays the modal: sending it opens the form, editing it
re-renders, deleting it closes. Widget state lives in FSM storage under
WIDGET_KEY; text input arrives while the chat is in a ReferralFormInput state.

Every load, modify, save cycle of the widget runs under widget_lock.
The lock is released while the referral POST is in flight.
"""
import asyncio
import logging
from typing import Optional, Set

from aiogram import Bot, F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import BaseEventIsolation
from aiogram.types import CallbackQuery, Message

from app.core.structured_logger import log_event
from app.handlers.common.keyboards import (
    CB_CANCEL_INPUT,
    CB_CLOSE,
    CB_COURSE_BACK,
    CB_COURSE_PREFIX,
    CB_EDIT_PREFIX,
    CB_OPEN,
    CB_SUBMIT,
    get_cancel_input_keyboard,
    get_course_keyboard,
    get_referral_form_keyboard,
)
from app.handlers.common.screens import render_referral_form
from app.handlers.common.states import FIELD_BY_STATE, FIELD_INPUT_STATES
from app.handlers.common.utils import (
    FORM_MESSAGE_KEY,
    PROMPT_MESSAGE_KEY,
    load_widget,
    remember_message_ids,
    safe_delete_message,
    safe_edit_message,
    sanitize_input,
    save_widget,
    validate_callback_data,
    widget_lock,
)
from app.i18n import get_text as i18n_get_text, resolve_language
from app.services.referrals.exceptions import (
    ReferralFormClosedError,
    SubmissionInProgressError,
)
from app.services.referrals.service import (
    COURSE_VALUES,
    FIELD_COURSE,
    ReferralSubmissionController,
    ReferralWidget,
    SubmitOutcomeType,
    SubmitResult,
    SubmitTicket,
)

user_router = Router()
logger = logging.getLogger(__name__)

# Pending auto-close timers, cancelled on shutdown
_auto_close_tasks: Set[asyncio.Task] = set()


# ====================================================================================
# Modal lifecycle
# ====================================================================================

async def _render_form(bot: Bot, chat_id: int, widget: ReferralWidget, language: str,
                       message_id: Optional[int], course_picker: bool = False) -> Optional[int]:
    text = render_referral_form(widget, language)
    if course_picker:
        keyboard = get_course_keyboard(language, selected=widget.form.course)
    else:
        keyboard = get_referral_form_keyboard(language)
    return await safe_edit_message(bot, chat_id, message_id, text, reply_markup=keyboard)


async def open_referral_form(bot: Bot, chat_id: int, state: FSMContext, language: str,
                             lock: Optional[BaseEventIsolation] = None) -> None:
    """
    Open the modal: clears banner and errors, keeps entered values.

    Any previous form message is deleted so exactly one form is visible.
    """
    async with widget_lock(state, lock):
        widget, old_message_id = await load_widget(state)
        data = await state.get_data()
        await safe_delete_message(bot, chat_id, data.get(PROMPT_MESSAGE_KEY))
        await safe_delete_message(bot, chat_id, old_message_id)
        await state.set_state(None)

        widget.open()
        message_id = await _render_form(bot, chat_id, widget, language, message_id=None)
        await save_widget(state, widget, **{FORM_MESSAGE_KEY: message_id, PROMPT_MESSAGE_KEY: None})
    log_event(logger, component="handler", operation="modal_open", outcome="success",
              correlation_id=str(widget.generation))


async def close_referral_form(bot: Bot, chat_id: int, state: FSMContext,
                              lock: Optional[BaseEventIsolation] = None) -> bool:
    """
    Close the modal if open. Pending submissions and timers of the closed
    generation are dropped when they complete.

    Returns:
        True if a form was open
    """
    async with widget_lock(state, lock):
        widget, message_id = await load_widget(state)
        data = await state.get_data()
        await safe_delete_message(bot, chat_id, data.get(PROMPT_MESSAGE_KEY))
        await state.set_state(None)
        if not widget.is_open:
            return False

        widget.close()
        await save_widget(state, widget, **{FORM_MESSAGE_KEY: None, PROMPT_MESSAGE_KEY: None})
    await safe_delete_message(bot, chat_id, message_id)
    log_event(logger, component="handler", operation="modal_close", outcome="success",
              correlation_id=str(widget.generation))
    return True


async def _auto_close_form(bot: Bot, state: FSMContext, chat_id: int, generation: int, delay: float,
                           lock: Optional[BaseEventIsolation] = None) -> None:
    """Close the form `delay` seconds after a successful submission."""
    try:
        await asyncio.sleep(delay)
        async with widget_lock(state, lock):
            widget, message_id = await load_widget(state)
            if not widget.expire(generation):
                log_event(logger, component="handler", operation="modal_auto_close", outcome="dropped",
                          correlation_id=str(generation), reason="generation_changed")
                return
            data = await state.get_data()
            if await state.get_state() in FIELD_BY_STATE:
                await state.set_state(None)
            await save_widget(state, widget, **{FORM_MESSAGE_KEY: None, PROMPT_MESSAGE_KEY: None})
        await safe_delete_message(bot, chat_id, data.get(PROMPT_MESSAGE_KEY))
        await safe_delete_message(bot, chat_id, message_id)
        log_event(logger, component="handler", operation="modal_auto_close", outcome="success",
                  correlation_id=str(generation))
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.exception("Auto-close failed: chat_id=%s generation=%s: %s", chat_id, generation, e)


def schedule_auto_close(bot: Bot, state: FSMContext, chat_id: int, generation: int, delay: float,
                        lock: Optional[BaseEventIsolation] = None) -> asyncio.Task:
    task = asyncio.create_task(_auto_close_form(bot, state, chat_id, generation, delay, lock))
    _auto_close_tasks.add(task)
    task.add_done_callback(_auto_close_tasks.discard)
    return task


async def cancel_pending_auto_close() -> int:
    """Cancel all pending auto-close timers (shutdown). Returns how many were pending."""
    tasks = [task for task in _auto_close_tasks if not task.done()]
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    return len(tasks)


# ====================================================================================
# Open / close
# ====================================================================================

@user_router.message(Command("refer"))
async def cmd_refer(message: Message, bot: Bot, state: FSMContext,
                    referral_lock: Optional[BaseEventIsolation] = None):
    """/refer: shortcut for the «Refer Now» button"""
    if message.chat.type != "private":
        return
    language = resolve_language(message.from_user.language_code)
    await open_referral_form(bot, message.chat.id, state, language, lock=referral_lock)


@user_router.callback_query(F.data == CB_OPEN)
async def callback_open_form(callback: CallbackQuery, bot: Bot, state: FSMContext,
                             referral_lock: Optional[BaseEventIsolation] = None):
    """«Refer Now» call-to-action"""
    language = resolve_language(callback.from_user.language_code)
    await open_referral_form(bot, callback.message.chat.id, state, language, lock=referral_lock)
    await callback.answer()


@user_router.callback_query(F.data == CB_CLOSE)
async def callback_close_form(callback: CallbackQuery, bot: Bot, state: FSMContext,
                              referral_lock: Optional[BaseEventIsolation] = None):
    """Dismiss control on the form"""
    was_open = await close_referral_form(bot, callback.message.chat.id, state, lock=referral_lock)
    if not was_open:
        # Stale form message from a previous session
        await safe_delete_message(bot, callback.message.chat.id, callback.message.message_id)
    await callback.answer()


# ====================================================================================
# Field input
# ====================================================================================

@user_router.callback_query(F.data.startswith(CB_EDIT_PREFIX))
async def callback_edit_field(callback: CallbackQuery, bot: Bot, state: FSMContext,
                              referral_lock: Optional[BaseEventIsolation] = None):
    """Field button: course opens the picker, text fields ask for a message"""
    language = resolve_language(callback.from_user.language_code)
    if not validate_callback_data(callback.data):
        await callback.answer()
        return

    field_name = callback.data[len(CB_EDIT_PREFIX):]
    widget, message_id = await load_widget(state)
    if not widget.is_open:
        await callback.answer(i18n_get_text(language, "referral.form_closed"), show_alert=True)
        return

    chat_id = callback.message.chat.id
    if field_name == FIELD_COURSE:
        await _render_form(bot, chat_id, widget, language, message_id, course_picker=True)
        await callback.answer()
        return

    input_state = FIELD_INPUT_STATES.get(field_name)
    if input_state is None:
        logger.warning("Unknown field in callback: %s", field_name)
        await callback.answer()
        return

    data = await state.get_data()
    await safe_delete_message(bot, chat_id, data.get(PROMPT_MESSAGE_KEY))
    prompt = await bot.send_message(
        chat_id,
        i18n_get_text(language, f"referral.prompt.{field_name}"),
        reply_markup=get_cancel_input_keyboard(language),
    )
    await state.set_state(input_state)
    await remember_message_ids(state, referral_lock, **{PROMPT_MESSAGE_KEY: prompt.message_id})
    await callback.answer()


@user_router.message(Command("cancel"))
async def cmd_cancel(message: Message, bot: Bot, state: FSMContext,
                     referral_lock: Optional[BaseEventIsolation] = None):
    """/cancel: leave field input mode; the form itself stays open"""
    language = resolve_language(message.from_user.language_code)
    if await state.get_state() not in FIELD_BY_STATE:
        await message.answer(i18n_get_text(language, "common.nothing_to_cancel"))
        return
    data = await state.get_data()
    await state.set_state(None)
    await remember_message_ids(state, referral_lock, **{PROMPT_MESSAGE_KEY: None})
    await safe_delete_message(bot, message.chat.id, data.get(PROMPT_MESSAGE_KEY))
    await message.answer(i18n_get_text(language, "common.cancelled"))


@user_router.message(StateFilter(*FIELD_INPUT_STATES.values()))
async def process_field_input(message: Message, bot: Bot, state: FSMContext,
                              referral_lock: Optional[BaseEventIsolation] = None):
    """Typed value for the field the chat is waiting for"""
    language = resolve_language(message.from_user.language_code)
    field_name = FIELD_BY_STATE.get(await state.get_state())
    if field_name is None:
        return

    if not message.text:
        await message.answer(i18n_get_text(language, "referral.input_text_hint"))
        return

    chat_id = message.chat.id
    async with widget_lock(state, referral_lock):
        widget, message_id = await load_widget(state)
        try:
            widget.set_field(field_name, sanitize_input(message.text))
        except ReferralFormClosedError:
            await state.set_state(None)
            await message.answer(i18n_get_text(language, "referral.form_closed"))
            return

        data = await state.get_data()
        await state.set_state(None)
        await save_widget(state, widget, **{PROMPT_MESSAGE_KEY: None})

    await safe_delete_message(bot, chat_id, data.get(PROMPT_MESSAGE_KEY))
    await safe_delete_message(bot, chat_id, message.message_id)
    message_id = await _render_form(bot, chat_id, widget, language, message_id)
    await remember_message_ids(state, referral_lock, **{FORM_MESSAGE_KEY: message_id})
    logger.debug("Referral field updated: field=%s", field_name)


@user_router.callback_query(F.data.startswith(CB_COURSE_PREFIX))
async def callback_select_course(callback: CallbackQuery, bot: Bot, state: FSMContext,
                                 referral_lock: Optional[BaseEventIsolation] = None):
    """One of the three course options"""
    language = resolve_language(callback.from_user.language_code)
    if not validate_callback_data(callback.data):
        await callback.answer()
        return

    course = callback.data[len(CB_COURSE_PREFIX):]
    if course not in COURSE_VALUES:
        logger.warning("Unknown course in callback: %s", course)
        await callback.answer()
        return

    async with widget_lock(state, referral_lock):
        widget, message_id = await load_widget(state)
        try:
            widget.set_field(FIELD_COURSE, course)
        except ReferralFormClosedError:
            await callback.answer(i18n_get_text(language, "referral.form_closed"), show_alert=True)
            return
        await save_widget(state, widget)

    message_id = await _render_form(bot, callback.message.chat.id, widget, language, message_id)
    await remember_message_ids(state, referral_lock, **{FORM_MESSAGE_KEY: message_id})
    await callback.answer()


@user_router.callback_query(F.data == CB_COURSE_BACK)
async def callback_course_back(callback: CallbackQuery, bot: Bot, state: FSMContext):
    """Leave the course picker without choosing"""
    language = resolve_language(callback.from_user.language_code)
    widget, message_id = await load_widget(state)
    if widget.is_open:
        await _render_form(bot, callback.message.chat.id, widget, language, message_id)
    await callback.answer()


@user_router.callback_query(F.data == CB_CANCEL_INPUT)
async def callback_cancel_input(callback: CallbackQuery, bot: Bot, state: FSMContext,
                                referral_lock: Optional[BaseEventIsolation] = None):
    """Cancel under a field prompt"""
    if await state.get_state() in FIELD_BY_STATE:
        await state.set_state(None)
    await remember_message_ids(state, referral_lock, **{PROMPT_MESSAGE_KEY: None})
    await safe_delete_message(bot, callback.message.chat.id, callback.message.message_id)
    await callback.answer()


# ====================================================================================
# Submit
# ====================================================================================

async def _abort_submission(state: FSMContext, controller: ReferralSubmissionController,
                            ticket: SubmitTicket, error: BaseException,
                            lock: Optional[BaseEventIsolation] = None) -> None:
    """Turn an interrupted submission into a failed one so the form leaves `submitting`."""
    async with widget_lock(state, lock):
        widget, _ = await load_widget(state)
        controller.complete(widget, ticket, SubmitResult(ok=False, reason=type(error).__name__))
        await save_widget(state, widget)
    log_event(logger, component="handler", operation="referral_submit", outcome="failed",
              correlation_id=ticket.correlation_id, reason=f"interrupted: {type(error).__name__}",
              level="warning")


@user_router.callback_query(F.data == CB_SUBMIT)
async def callback_submit_referral(
    callback: CallbackQuery,
    bot: Bot,
    state: FSMContext,
    referral_controller: ReferralSubmissionController,
    referral_lock: Optional[BaseEventIsolation] = None,
):
    """
    Submit Referral.

    validate → persist `submitting` → POST → reload → apply result (the
    banner and timer only if the form was not closed or reopened meanwhile)
    → schedule auto-close on success.
    """
    language = resolve_language(callback.from_user.language_code)
    chat_id = callback.message.chat.id
    correlation_id = str(callback.id)

    async with widget_lock(state, referral_lock):
        widget, message_id = await load_widget(state)
        try:
            ticket = referral_controller.begin(widget, correlation_id=correlation_id)
        except ReferralFormClosedError:
            await callback.answer(i18n_get_text(language, "referral.form_closed"), show_alert=True)
            return
        except SubmissionInProgressError:
            await callback.answer(i18n_get_text(language, "referral.already_submitting"))
            return
        await save_widget(state, widget)

    if ticket is None:
        message_id = await _render_form(bot, chat_id, widget, language, message_id)
        await remember_message_ids(state, referral_lock, **{FORM_MESSAGE_KEY: message_id})
        await callback.answer(i18n_get_text(language, "referral.fix_errors"))
        return

    try:
        await callback.answer()
        message_id = await _render_form(bot, chat_id, widget, language, message_id)
        await remember_message_ids(state, referral_lock, **{FORM_MESSAGE_KEY: message_id})
        result = await referral_controller.send(ticket)
    except (asyncio.CancelledError, Exception) as e:
        await _abort_submission(state, referral_controller, ticket, e, referral_lock)
        raise

    async with widget_lock(state, referral_lock):
        widget, message_id = await load_widget(state)
        outcome = referral_controller.complete(widget, ticket, result)
        await save_widget(state, widget)

    if outcome.type is SubmitOutcomeType.STALE:
        log_event(logger, component="handler", operation="referral_submit_result", outcome="dropped",
                  correlation_id=correlation_id, reason="form_closed_or_reopened")
        return

    if outcome.type is SubmitOutcomeType.SUCCESS:
        schedule_auto_close(bot, state, chat_id, outcome.generation, outcome.close_after, referral_lock)

    message_id = await _render_form(bot, chat_id, widget, language, message_id)
    await remember_message_ids(state, referral_lock, **{FORM_MESSAGE_KEY: message_id})
