"""
Unit tests for the referral widget state.

Tests focus on:
- Modal open/close and the generation counter
- Field updates and their gating on visibility
- Auto-close expiry
- Persistence round-trip through FSM data
"""
import pytest

from app.services.referrals.exceptions import ReferralFormClosedError, UnknownFieldError
from app.services.referrals.service import (
    FORM_FIELDS,
    FormPhase,
    ReferralFormData,
    ReferralWidget,
    SubmitStatus,
    SubmitStatusType,
)


class TestReferralFormData:
    """Tests for ReferralFormData"""

    def test_starts_empty(self):
        form = ReferralFormData()
        assert form.is_empty()
        assert all(form.get(name) == "" for name in FORM_FIELDS)

    def test_payload_uses_wire_names(self, valid_form, valid_payload):
        """Payload keys are exactly the five camelCase wire names"""
        assert valid_form.to_payload() == valid_payload

    def test_unknown_field_rejected(self):
        with pytest.raises(UnknownFieldError):
            ReferralFormData().set("phone", "123")

    def test_from_payload_ignores_unknown_keys(self):
        form = ReferralFormData.from_payload({"referrerName": "Ann", "extra": "x"})
        assert form.referrer_name == "Ann"
        assert "extra" not in form.to_payload()


class TestModalVisibility:
    """Tests for open/close/expire"""

    def test_starts_closed(self):
        widget = ReferralWidget()
        assert widget.is_open is False
        assert widget.status.is_none

    def test_open_bumps_generation(self):
        widget = ReferralWidget()
        widget.open()
        assert widget.is_open is True
        assert widget.generation == 1

    def test_close_bumps_generation(self, open_widget):
        open_widget.close()
        assert open_widget.is_open is False
        assert open_widget.generation == 2

    def test_reopen_keeps_values_and_clears_feedback(self, filled_widget):
        """Entered values survive close/reopen; errors and banner do not"""
        filled_widget.errors = {"course": "Course selection is required"}
        filled_widget.status = SubmitStatus.error()
        filled_widget.close()

        filled_widget.open()

        assert filled_widget.form.referrer_name == "Ann"
        assert filled_widget.errors == {}
        assert filled_widget.status.is_none
        assert filled_widget.phase is FormPhase.IDLE

    def test_expire_current_generation_closes(self, open_widget):
        assert open_widget.expire(open_widget.generation) is True
        assert open_widget.is_open is False

    def test_expire_after_reopen_is_noop(self, open_widget):
        """A timer from before a close/reopen must not close the new modal"""
        old_generation = open_widget.generation
        open_widget.close()
        open_widget.open()

        assert open_widget.expire(old_generation) is False
        assert open_widget.is_open is True

    def test_expire_when_closed_is_noop(self, open_widget):
        generation = open_widget.generation
        open_widget.close()
        assert open_widget.expire(generation) is False


class TestSetField:
    """Tests for ReferralWidget.set_field"""

    def test_updates_value_and_enters_editing(self, open_widget):
        open_widget.set_field("refereeName", "Bob")
        assert open_widget.form.referee_name == "Bob"
        assert open_widget.phase is FormPhase.EDITING

    def test_keeps_existing_errors(self, open_widget):
        """Inline errors stay until the next submit attempt"""
        open_widget.errors = {"refereeName": "Referee name is required"}
        open_widget.set_field("refereeName", "Bob")
        assert open_widget.errors == {"refereeName": "Referee name is required"}

    def test_closed_widget_rejects_input(self):
        with pytest.raises(ReferralFormClosedError):
            ReferralWidget().set_field("refereeName", "Bob")

    def test_edit_during_submission_keeps_phase(self, open_widget):
        open_widget.phase = FormPhase.SUBMITTING
        open_widget.set_field("refereeName", "Bob")
        assert open_widget.phase is FormPhase.SUBMITTING


class TestPersistence:
    """Tests for to_dict/from_dict"""

    def test_round_trip(self, filled_widget):
        filled_widget.errors = {"course": "Invalid course selection"}
        filled_widget.status = SubmitStatus.success()
        filled_widget.phase = FormPhase.SUCCESS

        restored = ReferralWidget.from_dict(filled_widget.to_dict())

        assert restored == filled_widget

    def test_missing_data_gives_closed_widget(self):
        widget = ReferralWidget.from_dict(None)
        assert widget.is_open is False
        assert widget.generation == 0
        assert widget.status.type is SubmitStatusType.NONE
