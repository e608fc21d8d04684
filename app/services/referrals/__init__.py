"""
Referral Service Layer

Referral capture widget: form state, validation and submission to the referrals API.
"""

from app.services.referrals.service import (
    validate_referral_form,
    ReferralFormData,
    ReferralWidget,
    ReferralSubmissionController,
    SubmitStatus,
    SubmitStatusType,
    SubmitOutcome,
    SubmitOutcomeType,
    SubmitTicket,
    SubmitResult,
    FormPhase,
    Course,
    FORM_FIELDS,
    FIELD_LABELS,
)
from app.services.referrals.client import ReferralApiClient
from app.services.referrals.exceptions import (
    ReferralServiceError,
    ReferralFormClosedError,
    UnknownFieldError,
    ReferralApiError,
    SubmissionRejectedError,
    TransportFailureError,
    SubmissionInProgressError,
)

__all__ = [
    "validate_referral_form",
    "ReferralFormData",
    "ReferralWidget",
    "ReferralSubmissionController",
    "SubmitStatus",
    "SubmitStatusType",
    "SubmitOutcome",
    "SubmitOutcomeType",
    "SubmitTicket",
    "SubmitResult",
    "FormPhase",
    "Course",
    "FORM_FIELDS",
    "FIELD_LABELS",
    "ReferralApiClient",
    "ReferralServiceError",
    "ReferralFormClosedError",
    "UnknownFieldError",
    "ReferralApiError",
    "SubmissionRejectedError",
    "TransportFailureError",
    "SubmissionInProgressError",
]
