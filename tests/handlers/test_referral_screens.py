"""
Tests for form rendering, keyboards and input helpers.
"""
import pytest

from app.handlers.common.keyboards import (
    CB_COURSE_PREFIX,
    CB_SUBMIT,
    get_course_keyboard,
    get_referral_form_keyboard,
)
from app.handlers.common.screens import render_referral_form
from app.handlers.common.utils import MAX_INPUT_LENGTH, sanitize_input, validate_callback_data
from app.services.referrals.service import SubmitStatus, validate_referral_form


class TestRenderReferralForm:
    """Tests for render_referral_form"""

    def test_errors_rendered_under_their_field(self, open_widget):
        open_widget.errors = validate_referral_form(open_widget.form)

        lines = render_referral_form(open_widget, "en").split("\n")

        name_line = next(i for i, line in enumerate(lines) if "Friend's Name" in line)
        assert "Referee name is required" in lines[name_line + 1]

    def test_user_input_is_escaped(self, open_widget):
        open_widget.form.referrer_name = "<b>Ann</b>"
        text = render_referral_form(open_widget, "en")
        assert "&lt;b&gt;Ann&lt;/b&gt;" in text
        assert "<b>Ann</b>" not in text

    def test_course_shows_title(self, filled_widget):
        assert "Data Science" in render_referral_form(filled_widget, "en")

    def test_failure_banner(self, filled_widget):
        filled_widget.status = SubmitStatus.error()
        assert "Failed to submit referral. Please try again." in render_referral_form(filled_widget, "en")

    def test_no_banner_when_status_none(self, filled_widget):
        text = render_referral_form(filled_widget, "en")
        assert "✅" not in text
        assert "❌" not in text


class TestKeyboards:

    def test_form_keyboard_has_submit(self):
        keyboard = get_referral_form_keyboard("en")
        callbacks = [button.callback_data for row in keyboard.inline_keyboard for button in row]
        assert CB_SUBMIT in callbacks

    def test_course_keyboard_offers_three_courses(self):
        keyboard = get_course_keyboard("en", selected="")
        callbacks = [button.callback_data for row in keyboard.inline_keyboard for button in row]
        courses = [data for data in callbacks if data.startswith(CB_COURSE_PREFIX)]
        assert courses == [
            f"{CB_COURSE_PREFIX}web-development",
            f"{CB_COURSE_PREFIX}data-science",
            f"{CB_COURSE_PREFIX}mobile-development",
        ]


class TestSanitizeInput:

    def test_strips_whitespace_and_invisible_chars(self):
        assert sanitize_input("  Ann\u200b\u202e ") == "Ann"

    def test_truncates(self):
        assert len(sanitize_input("a" * 1000)) == MAX_INPUT_LENGTH

    def test_empty(self):
        assert sanitize_input(None) == ""


class TestValidateCallbackData:

    @pytest.mark.parametrize("data", ["referral_submit", "referral_course:data-science"])
    def test_valid(self, data):
        assert validate_callback_data(data) is True

    @pytest.mark.parametrize("data", ["", None, "x" * 65, "referral edit"])
    def test_invalid(self, data):
        assert validate_callback_data(data) is False
