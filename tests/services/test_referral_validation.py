"""
Unit tests for referral form validation.

Tests focus on:
- Required-field messages
- Email format rule and its precedence over the required message
- Course membership
- Collecting all errors in one pass
"""
import pytest

from app.services.referrals.service import (
    COURSE_VALUES,
    EMAIL_PATTERN,
    INVALID_COURSE_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    ReferralFormData,
    validate_referral_form,
)


class TestValidateReferralForm:
    """Tests for validate_referral_form function"""

    def test_valid_form_has_no_errors(self, valid_form):
        """A fully filled, well-formed form is submittable"""
        assert validate_referral_form(valid_form) == {}

    def test_empty_form_reports_every_field(self):
        """Empty form: names and course are required, emails fail the format check"""
        errors = validate_referral_form(ReferralFormData())

        assert errors == {
            "referrerName": "Referrer name is required",
            "referrerEmail": INVALID_EMAIL_MESSAGE,
            "refereeName": "Referee name is required",
            "refereeEmail": INVALID_EMAIL_MESSAGE,
            "course": "Course selection is required",
        }

    def test_whitespace_only_counts_as_blank(self, valid_form):
        """Whitespace-only name is treated as missing"""
        valid_form.referee_name = "   "

        assert validate_referral_form(valid_form) == {"refereeName": "Referee name is required"}

    def test_malformed_email(self, valid_form):
        """Email without a dot in the domain is rejected"""
        valid_form.referrer_email = "ann@x"

        assert validate_referral_form(valid_form) == {"referrerEmail": INVALID_EMAIL_MESSAGE}

    def test_both_emails_malformed(self, valid_form):
        """Both email fields are checked independently"""
        valid_form.referrer_email = "ann"
        valid_form.referee_email = "bob@@y.io"

        errors = validate_referral_form(valid_form)

        assert errors == {
            "referrerEmail": INVALID_EMAIL_MESSAGE,
            "refereeEmail": INVALID_EMAIL_MESSAGE,
        }

    def test_unknown_course(self, valid_form):
        """Non-blank course outside the fixed set is rejected"""
        valid_form.course = "cooking"

        assert validate_referral_form(valid_form) == {"course": INVALID_COURSE_MESSAGE}

    @pytest.mark.parametrize("course", COURSE_VALUES)
    def test_every_known_course_is_accepted(self, valid_form, course):
        """All three course identifiers validate"""
        valid_form.course = course

        assert validate_referral_form(valid_form) == {}

    def test_repeated_validation_is_identical_for_valid_form(self, valid_form):
        """Same form, no mutation: same (empty) error set every time"""
        assert validate_referral_form(valid_form) == validate_referral_form(valid_form) == {}

    def test_repeated_validation_is_identical_for_invalid_form(self, valid_form):
        valid_form.referrer_email = "ann"
        valid_form.course = ""

        first = validate_referral_form(valid_form)
        second = validate_referral_form(valid_form)

        assert first == second
        assert set(first) == {"referrerEmail", "course"}

    def test_form_is_not_modified(self, valid_form):
        """Validation is pure"""
        before = valid_form.to_payload()
        validate_referral_form(valid_form)
        assert valid_form.to_payload() == before


class TestEmailPattern:
    """Tests for the local@domain.tld shape"""

    @pytest.mark.parametrize("value", [
        "ann@x.io",
        "first.last@sub.example.com",
        "a+tag@b.co",
    ])
    def test_accepted(self, value):
        assert EMAIL_PATTERN.fullmatch(value)

    @pytest.mark.parametrize("value", [
        "",
        "ann",
        "ann@x",
        "@x.io",
        "ann@.io",
        "ann @x.io",
        "ann@x.io ",
        "a@b@c.io",
    ])
    def test_rejected(self, value):
        assert not EMAIL_PATTERN.fullmatch(value)
