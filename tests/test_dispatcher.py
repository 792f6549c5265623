# tests/test_dispatcher.py
# Routing through the real dispatcher: router order, FSM-state filters,
# fallback recovery and throttling.
#
# Raw Telegram updates go through build_dispatcher().feed_raw_update();
# Bot.__call__ is mocked, so every API method the handlers emit is recorded
# instead of being sent.

import itertools
from unittest.mock import AsyncMock

import pytest
from aiogram import Bot
from aiogram.methods import AnswerCallbackQuery, EditMessageText, SendMessage

from incoterms_bot.config import settings
from incoterms_bot.main import build_dispatcher
from incoterms_bot.states import WizardForm

_user_ids = itertools.count(1000)
_update_ids = itertools.count(1)


# ==================== Fixtures ====================

@pytest.fixture(scope="session")
def dispatcher():
    """One dispatcher per run: the module-level routers attach only once."""
    return build_dispatcher()


@pytest.fixture
def api(monkeypatch):
    """Records every Telegram API call instead of sending it."""
    call = AsyncMock()
    monkeypatch.setattr(Bot, "__call__", call)
    return call


@pytest.fixture
def bot(api):
    return Bot(token="42:TEST")


@pytest.fixture
def user_id():
    """Fresh chat per test so FSM data and throttle windows never overlap."""
    return next(_user_ids)


def _user(uid: int) -> dict:
    return {"id": uid, "is_bot": False, "first_name": "Test"}


def _callback_update(uid: int, data: str) -> dict:
    return {
        "update_id": next(_update_ids),
        "callback_query": {
            "id": f"cb-{next(_update_ids)}",
            "from": _user(uid),
            "chat_instance": "chat-instance",
            "data": data,
            "message": {
                "message_id": 10,
                "date": 1700000000,
                "chat": {"id": uid, "type": "private"},
                "text": "card",
            },
        },
    }


def _message_update(uid: int, text: str) -> dict:
    message = {
        "message_id": 11,
        "date": 1700000000,
        "chat": {"id": uid, "type": "private"},
        "from": _user(uid),
        "text": text,
    }
    if text.startswith("/"):
        message["entities"] = [{"type": "bot_command", "offset": 0, "length": len(text)}]
    return {"update_id": next(_update_ids), "message": message}


async def _press(dispatcher, bot, uid, *payloads):
    for data in payloads:
        await dispatcher.feed_raw_update(bot, _callback_update(uid, data))


def _calls(api, method_type):
    return [c.args[0] for c in api.await_args_list if isinstance(c.args[0], method_type)]


async def _snapshot(dispatcher, bot, uid):
    ctx = dispatcher.fsm.get_context(bot=bot, chat_id=uid, user_id=uid)
    return await ctx.get_state(), await ctx.get_data()


# ==================== Happy path ====================

@pytest.mark.asyncio
async def test_start_command_opens_transport_step(dispatcher, bot, api, user_id):
    await dispatcher.feed_raw_update(bot, _message_update(user_id, "/start"))

    state, data = await _snapshot(dispatcher, bot, user_id)
    assert state == WizardForm.transport.state
    assert data["step"] == 1 and data["transport"] is None
    assert "Choose your transportation mode" in _calls(api, SendMessage)[-1].text


@pytest.mark.asyncio
async def test_full_flow_through_dispatcher(dispatcher, bot, api, user_id):
    await _press(
        dispatcher, bot, user_id,
        "transport:sea", "step:next",
        "ans:loading:seller", "ans:transport:seller", "ans:customs:buyer",
        "ans:insurance:seller", "ans:unloading:buyer",
        "step:recommend",
    )

    state, data = await _snapshot(dispatcher, bot, user_id)
    assert state == WizardForm.result.state
    assert data["result"] == "CIF (Cost, Insurance and Freight)®"
    assert "CIF (Cost, Insurance and Freight)®" in _calls(api, EditMessageText)[-1].text


# ==================== Stale cards ====================

@pytest.mark.asyncio
async def test_recommend_on_transport_step_changes_nothing(dispatcher, bot, api, user_id):
    await _press(dispatcher, bot, user_id, "transport:sea")
    before = await _snapshot(dispatcher, bot, user_id)
    api.reset_mock()

    await _press(dispatcher, bot, user_id, "step:recommend")

    assert await _snapshot(dispatcher, bot, user_id) == before
    answers = _calls(api, AnswerCallbackQuery)
    assert len(answers) == 1 and answers[0].show_alert is True
    assert not _calls(api, SendMessage)
    assert not _calls(api, EditMessageText)


@pytest.mark.asyncio
async def test_next_on_responsibilities_step_keeps_answers(dispatcher, bot, api, user_id):
    await _press(dispatcher, bot, user_id, "transport:road", "step:next", "ans:loading:seller")
    before = await _snapshot(dispatcher, bot, user_id)
    assert before[1]["answers"] == {"loading": "seller"}
    api.reset_mock()

    await _press(dispatcher, bot, user_id, "step:next")

    assert await _snapshot(dispatcher, bot, user_id) == before
    assert before[0] == WizardForm.responsibilities.state
    answers = _calls(api, AnswerCallbackQuery)
    assert len(answers) == 1 and answers[0].show_alert is True
    assert not _calls(api, SendMessage)


@pytest.mark.asyncio
async def test_answer_on_result_card_keeps_result(dispatcher, bot, api, user_id):
    await _press(
        dispatcher, bot, user_id,
        "transport:air", "step:next",
        "ans:loading:buyer", "ans:transport:buyer", "ans:customs:buyer",
        "ans:insurance:buyer", "ans:unloading:buyer",
        "step:recommend",
    )
    before = await _snapshot(dispatcher, bot, user_id)
    assert before[1]["result"] == "EXW (Ex Works)®"
    api.reset_mock()

    await _press(dispatcher, bot, user_id, "ans:loading:seller", "step:recommend")

    assert await _snapshot(dispatcher, bot, user_id) == before
    assert all(a.show_alert for a in _calls(api, AnswerCallbackQuery))


# ==================== Expired sessions ====================

@pytest.mark.asyncio
async def test_press_without_session_restarts_wizard(dispatcher, bot, api, user_id):
    await _press(dispatcher, bot, user_id, "step:next")

    state, data = await _snapshot(dispatcher, bot, user_id)
    assert state == WizardForm.transport.state
    assert data["step"] == 1
    assert "Session expired" in _calls(api, AnswerCallbackQuery)[0].text
    assert "Choose your transportation mode" in _calls(api, SendMessage)[0].text


# ==================== Throttling ====================

@pytest.mark.asyncio
async def test_callbacks_are_throttled(dispatcher, bot, api, user_id):
    presses = ["q:loading"] * (settings.RATE_LIMIT_EVENTS + 1)

    await _press(dispatcher, bot, user_id, *presses)

    texts = [a.text for a in _calls(api, AnswerCallbackQuery)]
    assert len(texts) == len(presses)
    assert texts[-1].startswith("⏳ Too fast")
    assert texts.count("Who is responsible for loading the goods?") == settings.RATE_LIMIT_EVENTS
