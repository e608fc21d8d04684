"""
Pytest configuration and shared fixtures for service and handler tests.
"""
import pytest
from typing import Dict
from unittest.mock import AsyncMock, MagicMock

from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from app.services.referrals.service import (
    ReferralFormData,
    ReferralSubmissionController,
    ReferralWidget,
)

CHAT_ID = 12345
BOT_ID = 42


@pytest.fixture
def valid_payload() -> Dict[str, str]:
    """Wire payload that passes validation"""
    return {
        "referrerName": "Ann",
        "referrerEmail": "ann@x.io",
        "refereeName": "Bob",
        "refereeEmail": "bob@y.io",
        "course": "data-science",
    }


@pytest.fixture
def valid_form(valid_payload):
    return ReferralFormData.from_payload(valid_payload)


@pytest.fixture
def open_widget():
    """Freshly opened widget with an empty form"""
    widget = ReferralWidget()
    widget.open()
    return widget


@pytest.fixture
def filled_widget(valid_form):
    """Open widget holding a valid form"""
    widget = ReferralWidget(form=valid_form)
    widget.open()
    return widget


@pytest.fixture
def mock_client():
    """Mock referrals API client; accepts every referral with 201"""
    client = MagicMock()
    client.create_referral = AsyncMock(return_value=201)
    return client


@pytest.fixture
def controller(mock_client):
    return ReferralSubmissionController(mock_client, close_delay=2.0)


@pytest.fixture
def fsm_state():
    """FSM context backed by in-memory storage"""
    storage = MemoryStorage()
    key = StorageKey(bot_id=BOT_ID, chat_id=CHAT_ID, user_id=CHAT_ID)
    return FSMContext(storage=storage, key=key)


@pytest.fixture
def mock_bot():
    """Mock Bot: every sent message gets the next message id"""
    bot = MagicMock()
    counter = {"next_id": 100}

    async def send_message(chat_id, text, **kwargs):
        counter["next_id"] += 1
        return MagicMock(message_id=counter["next_id"], chat=MagicMock(id=chat_id), text=text)

    bot.send_message = AsyncMock(side_effect=send_message)
    bot.edit_message_text = AsyncMock(return_value=True)
    bot.delete_message = AsyncMock(return_value=True)
    return bot


@pytest.fixture
def make_callback():
    """Factory for mock CallbackQuery objects from an English-speaking user"""
    def _make(data: str, chat_id: int = CHAT_ID, message_id: int = 1):
        callback = MagicMock()
        callback.id = "cb-1"
        callback.data = data
        callback.from_user = MagicMock(id=chat_id, language_code="en")
        callback.message = MagicMock(message_id=message_id, chat=MagicMock(id=chat_id, type="private"))
        callback.answer = AsyncMock()
        return callback
    return _make


@pytest.fixture
def make_message():
    """Factory for mock Message objects from an English-speaking user"""
    def _make(text: str, chat_id: int = CHAT_ID, message_id: int = 500):
        message = MagicMock()
        message.text = text
        message.message_id = message_id
        message.from_user = MagicMock(id=chat_id, language_code="en")
        message.chat = MagicMock(id=chat_id, type="private")
        message.answer = AsyncMock()
        return message
    return _make
