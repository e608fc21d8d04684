"""
Referral Service Domain Exceptions

All exceptions raised by the referral service layer.
"""
from typing import Optional


class ReferralServiceError(Exception):
    """Base exception for referral service errors"""
    pass


class ReferralFormClosedError(ReferralServiceError):
    """Raised when the form is edited while the modal is closed"""
    pass


class UnknownFieldError(ReferralServiceError):
    """Raised when a field key is not one of the five form fields"""
    pass


class ReferralApiError(ReferralServiceError):
    """Base exception for referrals API failures"""
    pass


class SubmissionRejectedError(ReferralApiError):
    """Raised when the referrals API answers with a non-2xx status"""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Referral rejected: status={status_code}")


class TransportFailureError(ReferralApiError):
    """Raised when the request to the referrals API could not complete"""
    pass


class SubmissionInProgressError(ReferralServiceError):
    """Raised when submit is triggered while a submission is already in flight"""
    pass
