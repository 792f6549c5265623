# tests/conftest.py
# Shared fixtures: an in-memory FSM context and Telegram update stand-ins.

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage


# ==================== FSM ====================

@pytest.fixture
def state():
    """FSM context for a single chat, backed by MemoryStorage."""
    storage = MemoryStorage()
    return FSMContext(storage=storage, key=StorageKey(bot_id=1, chat_id=42, user_id=42))


# ==================== Telegram stand-ins ====================

@pytest.fixture
def make_callback():
    """Factory for callback queries whose message can be edited/answered."""
    def _make(data: str, user_id: int = 42):
        cb = MagicMock()
        cb.data = data
        cb.from_user.id = user_id
        cb.answer = AsyncMock()
        cb.message.edit_text = AsyncMock()
        cb.message.answer = AsyncMock()
        return cb
    return _make


@pytest.fixture
def make_message():
    """Factory for incoming text messages."""
    def _make(text: str = "/start", user_id: int = 42):
        msg = MagicMock()
        msg.text = text
        msg.from_user.id = user_id
        msg.answer = AsyncMock()
        return msg
    return _make
