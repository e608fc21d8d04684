"""
FSM state groups for handlers.
"""
from aiogram.fsm.state import State, StatesGroup

from app.services.referrals.service import (
    FIELD_REFERRER_NAME,
    FIELD_REFERRER_EMAIL,
    FIELD_REFEREE_NAME,
    FIELD_REFEREE_EMAIL,
)


class ReferralFormInput(StatesGroup):
    """Waiting for a typed value for one text field of the referral form."""
    waiting_for_referrer_name = State()
    waiting_for_referrer_email = State()
    waiting_for_referee_name = State()
    waiting_for_referee_email = State()


# Text fields only; the course comes from an inline keyboard
FIELD_INPUT_STATES = {
    FIELD_REFERRER_NAME: ReferralFormInput.waiting_for_referrer_name,
    FIELD_REFERRER_EMAIL: ReferralFormInput.waiting_for_referrer_email,
    FIELD_REFEREE_NAME: ReferralFormInput.waiting_for_referee_name,
    FIELD_REFEREE_EMAIL: ReferralFormInput.waiting_for_referee_email,
}

FIELD_BY_STATE = {state.state: field for field, state in FIELD_INPUT_STATES.items()}
