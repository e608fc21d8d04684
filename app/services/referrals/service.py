"""
Referral Form Service - Capture, Validation and Submission

This module holds the referral widget state machine: form values, field
errors, the status banner, modal visibility and the submission flow.
All functions are pure business logic - no aiogram imports, no Telegram calls.

State machine:
    idle → editing (field input) → validating (submit) → submitting → success | error
    validating → editing when validation fails (no network call)

Modal:
    closed → open (call-to-action), open → closed (dismiss or auto-close after success)

Every open/close bumps the widget generation. A submission or auto-close that
started under an older generation is dropped when it completes.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

from app.core.structured_logger import log_event
from app.services.referrals.client import ReferralApiClient
from app.services.referrals.exceptions import (
    ReferralApiError,
    ReferralFormClosedError,
    SubmissionInProgressError,
    SubmissionRejectedError,
    UnknownFieldError,
)

logger = logging.getLogger(__name__)


# ====================================================================================
# Form Fields
# ====================================================================================

FIELD_REFERRER_NAME = "referrerName"
FIELD_REFERRER_EMAIL = "referrerEmail"
FIELD_REFEREE_NAME = "refereeName"
FIELD_REFEREE_EMAIL = "refereeEmail"
FIELD_COURSE = "course"

# Order matters: rendering and validation walk fields in this order
FORM_FIELDS = (
    FIELD_REFERRER_NAME,
    FIELD_REFERRER_EMAIL,
    FIELD_REFEREE_NAME,
    FIELD_REFEREE_EMAIL,
    FIELD_COURSE,
)

EMAIL_FIELDS = (FIELD_REFERRER_EMAIL, FIELD_REFEREE_EMAIL)

FIELD_LABELS = {
    FIELD_REFERRER_NAME: "Referrer name",
    FIELD_REFERRER_EMAIL: "Referrer email",
    FIELD_REFEREE_NAME: "Referee name",
    FIELD_REFEREE_EMAIL: "Referee email",
    FIELD_COURSE: "Course selection",
}

_FIELD_ATTRS = {
    FIELD_REFERRER_NAME: "referrer_name",
    FIELD_REFERRER_EMAIL: "referrer_email",
    FIELD_REFEREE_NAME: "referee_name",
    FIELD_REFEREE_EMAIL: "referee_email",
    FIELD_COURSE: "course",
}

# local@domain.tld: no whitespace and no extra "@" in any part
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

INVALID_EMAIL_MESSAGE = "Invalid email format"
INVALID_COURSE_MESSAGE = "Invalid course selection"
SUCCESS_MESSAGE = "Referral submitted successfully!"
FAILURE_MESSAGE = "Failed to submit referral. Please try again."

AUTO_CLOSE_DELAY_SECONDS = 2.0


class Course(Enum):
    """Programs a referee can be referred into"""
    WEB_DEVELOPMENT = "web-development"
    DATA_SCIENCE = "data-science"
    MOBILE_DEVELOPMENT = "mobile-development"


COURSE_VALUES = tuple(course.value for course in Course)


# ====================================================================================
# State Types
# ====================================================================================

@dataclass
class ReferralFormData:
    """Current field values; every field starts empty"""
    referrer_name: str = ""
    referrer_email: str = ""
    referee_name: str = ""
    referee_email: str = ""
    course: str = ""

    def get(self, field_name: str) -> str:
        return getattr(self, _attr_for(field_name))

    def set(self, field_name: str, value: str) -> None:
        setattr(self, _attr_for(field_name), value if value is not None else "")

    def is_empty(self) -> bool:
        return not any(self.get(name) for name in FORM_FIELDS)

    def to_payload(self) -> Dict[str, str]:
        """Wire representation (camelCase keys), also used for FSM storage"""
        return {name: self.get(name) for name in FORM_FIELDS}

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> "ReferralFormData":
        form = cls()
        for name in FORM_FIELDS:
            value = (data or {}).get(name)
            if value is not None:
                form.set(name, str(value))
        return form


def _attr_for(field_name: str) -> str:
    try:
        return _FIELD_ATTRS[field_name]
    except KeyError:
        raise UnknownFieldError(f"Unknown referral form field: {field_name!r}") from None


class SubmitStatusType(Enum):
    """Status banner kinds"""
    NONE = "none"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SubmitStatus:
    """Status banner; exactly one kind active at a time"""
    type: SubmitStatusType = SubmitStatusType.NONE
    message: str = ""

    @classmethod
    def none(cls) -> "SubmitStatus":
        return cls()

    @classmethod
    def success(cls, message: str = SUCCESS_MESSAGE) -> "SubmitStatus":
        return cls(SubmitStatusType.SUCCESS, message)

    @classmethod
    def error(cls, message: str = FAILURE_MESSAGE) -> "SubmitStatus":
        return cls(SubmitStatusType.ERROR, message)

    @property
    def is_none(self) -> bool:
        return self.type is SubmitStatusType.NONE


class FormPhase(Enum):
    """Form lifecycle phases"""
    IDLE = "idle"
    EDITING = "editing"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


# ====================================================================================
# Validation
# ====================================================================================

def validate_referral_form(form: ReferralFormData) -> Dict[str, str]:
    """
    Validate all fields and collect every error.

    Rules (all run, no short-circuit):
    - Blank field → "<Label> is required"
    - Email field not shaped like local@domain.tld → "Invalid email format"
      (overwrites the required message for the same field)
    - Non-blank course outside the fixed set → "Invalid course selection"

    Args:
        form: Current form values

    Returns:
        Field name → message for every invalid field. Empty means submittable.
    """
    errors: Dict[str, str] = {}

    for name in FORM_FIELDS:
        if not form.get(name).strip():
            errors[name] = f"{FIELD_LABELS[name]} is required"

    for name in EMAIL_FIELDS:
        if not EMAIL_PATTERN.fullmatch(form.get(name)):
            errors[name] = INVALID_EMAIL_MESSAGE

    course = form.course
    if course.strip() and course not in COURSE_VALUES:
        errors[FIELD_COURSE] = INVALID_COURSE_MESSAGE

    return errors


# ====================================================================================
# Widget
# ====================================================================================

@dataclass
class ReferralWidget:
    """
    One referral widget instance: form values, errors, banner, visibility.

    Opening the modal clears the previous banner and errors but keeps the
    entered values, so a failed attempt can be corrected after reopening.
    """
    form: ReferralFormData = field(default_factory=ReferralFormData)
    errors: Dict[str, str] = field(default_factory=dict)
    status: SubmitStatus = field(default_factory=SubmitStatus)
    phase: FormPhase = FormPhase.IDLE
    is_open: bool = False
    generation: int = 0

    @property
    def is_submitting(self) -> bool:
        return self.phase is FormPhase.SUBMITTING

    def open(self) -> None:
        self.is_open = True
        self.generation += 1
        self.errors = {}
        self.status = SubmitStatus.none()
        self.phase = FormPhase.IDLE

    def close(self) -> None:
        self.is_open = False
        self.generation += 1
        self.phase = FormPhase.IDLE

    def expire(self, generation: int) -> bool:
        """
        Auto-close scheduled under `generation`.

        Returns:
            True if the modal was closed, False if it was already closed or
            reopened since the timer was scheduled
        """
        if not self.is_open or generation != self.generation:
            return False
        self.close()
        return True

    def set_field(self, field_name: str, value: str) -> None:
        """
        Apply user input to one field.

        Raises:
            ReferralFormClosedError: Modal is not open
            UnknownFieldError: field_name is not a form field
        """
        if not self.is_open:
            raise ReferralFormClosedError("Referral form is closed")
        self.form.set(field_name, value)
        if not self.is_submitting:
            self.phase = FormPhase.EDITING

    def reset_form(self) -> None:
        self.form = ReferralFormData()
        self.errors = {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "form": self.form.to_payload(),
            "errors": dict(self.errors),
            "status": {"type": self.status.type.value, "message": self.status.message},
            "phase": self.phase.value,
            "is_open": self.is_open,
            "generation": self.generation,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReferralWidget":
        if not data:
            return cls()
        status = data.get("status") or {}
        return cls(
            form=ReferralFormData.from_payload(data.get("form")),
            errors=dict(data.get("errors") or {}),
            status=SubmitStatus(
                SubmitStatusType(status.get("type", SubmitStatusType.NONE.value)),
                status.get("message", ""),
            ),
            phase=FormPhase(data.get("phase", FormPhase.IDLE.value)),
            is_open=bool(data.get("is_open", False)),
            generation=int(data.get("generation", 0)),
        )


# ====================================================================================
# Submission
# ====================================================================================

@dataclass(frozen=True)
class SubmitTicket:
    """One validated submission, bound to the widget generation it started in"""
    generation: int
    payload: Dict[str, str]
    correlation_id: Optional[str] = None


@dataclass(frozen=True)
class SubmitResult:
    """Network result of a submission"""
    ok: bool
    status_code: Optional[int] = None
    reason: Optional[str] = None


class SubmitOutcomeType(Enum):
    INVALID = "invalid"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    STALE = "stale"


@dataclass
class SubmitOutcome:
    """What a submit attempt did to the widget"""
    type: SubmitOutcomeType
    errors: Dict[str, str] = field(default_factory=dict)
    close_after: Optional[float] = None
    generation: Optional[int] = None


class ReferralSubmissionController:
    """
    Orchestrates validate → send → interpret result → reset/close.

    The HTTP client (and with it the API base URL) is injected at construction.
    No retries: a failed attempt is terminal and surfaced immediately.
    """

    def __init__(self, client: ReferralApiClient, close_delay: float = AUTO_CLOSE_DELAY_SECONDS):
        self.client = client
        self.close_delay = close_delay

    def begin(self, widget: ReferralWidget, correlation_id: Optional[str] = None) -> Optional[SubmitTicket]:
        """
        Validate and move the widget to `submitting`.

        Returns:
            SubmitTicket when the form is valid, None when validation failed
            (widget.errors holds the messages, banner cleared)

        Raises:
            ReferralFormClosedError: Modal is not open
            SubmissionInProgressError: A submission is already in flight
        """
        if not widget.is_open:
            raise ReferralFormClosedError("Referral form is closed")
        if widget.is_submitting:
            raise SubmissionInProgressError("Referral submission already in flight")

        widget.phase = FormPhase.VALIDATING
        widget.errors = validate_referral_form(widget.form)
        if widget.errors:
            widget.status = SubmitStatus.none()
            widget.phase = FormPhase.EDITING
            logger.info("Referral form invalid: fields=%s", sorted(widget.errors))
            return None

        widget.phase = FormPhase.SUBMITTING
        return SubmitTicket(
            generation=widget.generation,
            payload=widget.form.to_payload(),
            correlation_id=correlation_id,
        )

    async def send(self, ticket: SubmitTicket) -> SubmitResult:
        """Issue exactly one POST for the ticket. Never raises on API failures."""
        start = time.monotonic()
        try:
            status_code = await self.client.create_referral(ticket.payload)
        except ReferralApiError as e:
            status_code = e.status_code if isinstance(e, SubmissionRejectedError) else None
            log_event(
                logger,
                component="referrals",
                operation="referral_submit",
                correlation_id=ticket.correlation_id,
                outcome="failed",
                duration_ms=int((time.monotonic() - start) * 1000),
                reason=f"{type(e).__name__}: {str(e)[:200]}",
                level="warning",
            )
            return SubmitResult(ok=False, status_code=status_code, reason=type(e).__name__)

        log_event(
            logger,
            component="referrals",
            operation="referral_submit",
            correlation_id=ticket.correlation_id,
            outcome="success",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return SubmitResult(ok=True, status_code=status_code)

    def complete(self, widget: ReferralWidget, ticket: SubmitTicket, result: SubmitResult) -> SubmitOutcome:
        """
        Apply a network result to the widget.

        A result whose ticket generation no longer matches (modal closed or
        reopened meanwhile) gets no banner and no auto-close. If the backend
        accepted it and the form still holds the submitted values, the form
        is cleared anyway so the same referral is not offered again.
        """
        if widget.generation != ticket.generation or not widget.is_submitting:
            form_reset = result.ok and widget.form.to_payload() == ticket.payload
            if form_reset:
                widget.reset_form()
            logger.info(
                "Stale referral result: ticket_generation=%s widget_generation=%s ok=%s form_reset=%s",
                ticket.generation, widget.generation, result.ok, form_reset,
            )
            return SubmitOutcome(SubmitOutcomeType.STALE)

        if result.ok:
            widget.status = SubmitStatus.success()
            widget.reset_form()
            widget.phase = FormPhase.SUCCESS
            return SubmitOutcome(
                SubmitOutcomeType.SUCCESS,
                close_after=self.close_delay,
                generation=widget.generation,
            )

        widget.status = SubmitStatus.error()
        widget.phase = FormPhase.ERROR
        return SubmitOutcome(SubmitOutcomeType.FAILED)

    async def submit(self, widget: ReferralWidget, correlation_id: Optional[str] = None) -> SubmitOutcome:
        """
        Full submit flow on an in-memory widget.

        Returns:
            SubmitOutcome; on SUCCESS `close_after` and `generation` tell the
            caller when and under which generation to call widget.expire()

        Raises:
            ReferralFormClosedError: Modal is not open
        """
        try:
            ticket = self.begin(widget, correlation_id=correlation_id)
        except SubmissionInProgressError:
            return SubmitOutcome(SubmitOutcomeType.IN_PROGRESS)
        if ticket is None:
            return SubmitOutcome(SubmitOutcomeType.INVALID, errors=dict(widget.errors))

        result = await self.send(ticket)
        return self.complete(widget, ticket, result)
