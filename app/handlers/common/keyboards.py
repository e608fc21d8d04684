"""
InlineKeyboardMarkup builders for the hero screen and the referral form.
"""
from typing import Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from app.i18n import get_text as i18n_get_text
from app.services.referrals.service import (
    FIELD_REFERRER_NAME,
    FIELD_REFERRER_EMAIL,
    FIELD_REFEREE_NAME,
    FIELD_REFEREE_EMAIL,
    FIELD_COURSE,
    Course,
)

CB_OPEN = "referral_open"
CB_CLOSE = "referral_close"
CB_SUBMIT = "referral_submit"
CB_EDIT_PREFIX = "referral_edit:"
CB_COURSE_PREFIX = "referral_course:"
CB_COURSE_BACK = "referral_course_back"
CB_CANCEL_INPUT = "referral_cancel_input"


def _edit_button(language: str, field_name: str) -> InlineKeyboardButton:
    label = i18n_get_text(language, f"referral.field.{field_name}")
    return InlineKeyboardButton(
        text=i18n_get_text(language, "referral.edit_button", label=label),
        callback_data=f"{CB_EDIT_PREFIX}{field_name}",
    )


def get_hero_keyboard(language: str) -> InlineKeyboardMarkup:
    """Call-to-action under the welcome text"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=i18n_get_text(language, "main.refer_now"), callback_data=CB_OPEN)],
    ])


def get_referral_form_keyboard(language: str) -> InlineKeyboardMarkup:
    """Field buttons, submit and close for the open form"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [_edit_button(language, FIELD_REFERRER_NAME), _edit_button(language, FIELD_REFERRER_EMAIL)],
        [_edit_button(language, FIELD_REFEREE_NAME), _edit_button(language, FIELD_REFEREE_EMAIL)],
        [_edit_button(language, FIELD_COURSE)],
        [InlineKeyboardButton(text=i18n_get_text(language, "referral.submit_button"), callback_data=CB_SUBMIT)],
        [InlineKeyboardButton(text=i18n_get_text(language, "referral.close_button"), callback_data=CB_CLOSE)],
    ])


def get_course_keyboard(language: str, selected: Optional[str] = None) -> InlineKeyboardMarkup:
    """Exactly the three course options, current choice marked"""
    buttons = []
    for course in Course:
        title = i18n_get_text(language, f"referral.course.{course.value}")
        if course.value == selected:
            title = f"✓ {title}"
        buttons.append([InlineKeyboardButton(text=title, callback_data=f"{CB_COURSE_PREFIX}{course.value}")])
    buttons.append([InlineKeyboardButton(text=i18n_get_text(language, "common.back"), callback_data=CB_COURSE_BACK)])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def get_cancel_input_keyboard(language: str) -> InlineKeyboardMarkup:
    """Under a field prompt: leave input mode without changing the field"""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=i18n_get_text(language, "common.cancel"), callback_data=CB_CANCEL_INPUT)],
    ])
