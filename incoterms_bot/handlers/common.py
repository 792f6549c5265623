"""Common handlers: /start, /help, error handler, fallbacks.

The fallback_router also includes a CATCH-ALL for callback queries
so that when FSM state is lost (e.g. after a restart wiped
MemoryStorage), inline-button presses restart the wizard instead of
silently disappearing.
"""

from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, ErrorEvent, Message

from incoterms_bot.config import settings
from incoterms_bot.handlers.wizard import transport_card
from incoterms_bot.session import SelectionState
from incoterms_bot.states import WizardForm

logger = logging.getLogger(__name__)
router = Router()
fallback_router = Router()


async def _send_start_card(message: Message, state: FSMContext) -> None:
    await state.clear()
    sel = SelectionState()
    await state.update_data(**sel.to_data())
    text, kb = transport_card(sel)
    await message.answer(text, reply_markup=kb)
    await state.set_state(WizardForm.transport)


# ═══════════════════════════════════════════════════════════════
# /start
# ═══════════════════════════════════════════════════════════════

@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext) -> None:
    await _send_start_card(message, state)


@router.message(F.text.regexp(r"(?i)^(start|menu|restart)$"))
async def text_start(message: Message, state: FSMContext) -> None:
    await _send_start_card(message, state)


# ═══════════════════════════════════════════════════════════════
# /help
# ═══════════════════════════════════════════════════════════════

@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "🧭 <b>Incoterms® 2020 Calculator</b>\n\n"
        "Pick your transport mode, tell us who handles loading, main "
        "transport, customs, insurance and unloading, and we suggest "
        "the matching Incoterms® 2020 rule.\n\n"
        "▸ /start — New calculation\n"
        "▸ /help — Help\n\n"
        f"📞 {settings.contact_display}",
    )


# ═══════════════════════════════════════════════════════════════
# Global error handler
# ═══════════════════════════════════════════════════════════════

@router.error()
async def global_error_handler(event: ErrorEvent) -> None:
    logger.error(
        "Unhandled error in update %s: %s",
        event.update.update_id if event.update else "?",
        event.exception,
        exc_info=event.exception,
    )


# ═══════════════════════════════════════════════════════════════
# FALLBACK — catch-all for expired/lost sessions
# ═══════════════════════════════════════════════════════════════

@fallback_router.callback_query()
async def expired_callback(cb: CallbackQuery, state: FSMContext) -> None:
    """Handle any callback that wasn't caught by FSM-state handlers.

    This happens when the bot restarts and MemoryStorage is wiped —
    answers and "next" presses from before the restart lose context.
    """
    logger.info(
        "Expired/unmatched callback from user %s: %s",
        cb.from_user.id, cb.data,
    )
    await cb.answer("⏳ Session expired — starting over", show_alert=False)
    await _send_start_card(cb.message, state)  # type: ignore[arg-type]


@fallback_router.message()
async def fallback_message(message: Message) -> None:
    """Free text is never part of the wizard; point the user at /start."""
    await message.answer(
        "Use the buttons on the card to answer.\n\n"
        "To begin a new calculation — /start",
    )
