"""
Incoterms wizard with edit-in-place UX.

/start → transport mode → Next Step → five responsibility answers →
Get Recommendation → result card (+ expert contact) → Start Over

• Progress card: one message is edited at each step (no chat clutter).
• "Next Step" / "Get Recommendation" are only offered once the step is
  complete. Presses from another step's card are answered with an alert
  and change nothing; presses with no FSM state at all fall through to
  the fallback router, which restarts the wizard.
• Selections live in the chat's FSM data as a ``SelectionState`` dict.
"""

from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup

from incoterms_bot.config import settings
from incoterms_bot.incoterms import AVAILABLE_TERMS, QUESTIONS
from incoterms_bot.keyboards import (
    ANSWER_LABELS,
    TRANSPORT_DESCRIPTIONS,
    TRANSPORT_LABELS,
    responsibilities_kb,
    result_kb,
    transport_kb,
)
from incoterms_bot.session import SelectionState, Step
from incoterms_bot.states import WizardForm

logger = logging.getLogger(__name__)
router = Router()

TOTAL_STEPS = len(Step)

_PROMPTS: dict[str, str] = {q.value: p for q, p in QUESTIONS}

_STALE_CARD = "This card is out of date — use the latest one."

_ICC_NOTE = (
    "This recommendation is based on the Incoterms® 2020 rules "
    "published by the International Chamber of Commerce."
)


# ── Helper: build a progress card ────────────────────────────────────

def _bar(step: int) -> str:
    step = max(1, min(TOTAL_STEPS, step))
    filled = "▰" * step
    empty = "▱" * (TOTAL_STEPS - step)
    return f"Step {step}/{TOTAL_STEPS}  {filled}{empty}"


def _card(sel: SelectionState, question: str = "") -> str:
    """
    Build an accumulating summary card.
    Shows the selections made so far + the current question.
    """
    lines: list[str] = [
        "<b>Incoterms® 2020 Calculator</b>\n"
        "<i>Find the right Incoterms® 2020 rule for your international shipment</i>\n"
        f"{_bar(sel.step)}\n"
    ]

    if sel.transport:
        lines.append(f"  ✅ Transport: {TRANSPORT_LABELS[sel.transport.value]}")
        if sel.step is Step.TRANSPORT:
            lines.append(f"        <i>{TRANSPORT_DESCRIPTIONS[sel.transport.value]}</i>")
            terms = " · ".join(t.value for t in AVAILABLE_TERMS[sel.transport])
            lines.append(
                f"\n📚 Available Incoterms® 2020 rules for {sel.transport.value} transport:\n"
                f"  {terms}"
            )

    if sel.step is Step.RESPONSIBILITIES:
        lines.append("")
        for n, (q, prompt) in enumerate(QUESTIONS, start=1):
            picked = sel.answers.get(q.value)
            mark = f"✅ {ANSWER_LABELS[picked]}" if picked else "▫️ —"
            lines.append(f"{n}. {prompt}\n     {mark}")

    if question:
        lines.append(f"\n{question}")

    return "\n".join(lines)


def transport_card(sel: SelectionState) -> tuple[str, InlineKeyboardMarkup]:
    """Step 1 card, shared with /start and session recovery."""
    question = "🚚 <b>Choose your transportation mode:</b>"
    if sel.transport:
        question = "Tap <b>Next Step</b> to continue or pick another mode."
    selected = sel.transport.value if sel.transport else None
    return _card(sel, question), transport_kb(selected)


def responsibilities_card(sel: SelectionState) -> tuple[str, InlineKeyboardMarkup]:
    complete = sel.is_answer_set_complete()
    if complete:
        question = "Tap <b>Get Recommendation</b> to see your rule."
    else:
        question = "👥 <b>Who handles each aspect of the shipment?</b>"
    return _card(sel, question), responsibilities_kb(sel.answers, complete)


def result_text(sel: SelectionState) -> str:
    transport = TRANSPORT_LABELS.get(sel.transport.value, "") if sel.transport else ""
    return (
        f"{_bar(Step.RESULT)}\n\n"
        "<b>Your Recommended Incoterms® 2020 Rule</b>\n\n"
        f"🎯 <b>{sel.result}</b>\n"
        f"  {transport}\n\n"
        f"Based on your selections, we recommend using {sel.result} "
        f"for your shipment. {_ICC_NOTE}\n\n"
        "📞 <b>Need expert assistance?</b>\n"
        f"Call us at <b>{settings.contact_display}</b> to speak with a "
        "logistics expert about your shipping needs."
    )


async def _safe_edit(
    cb: CallbackQuery,
    text: str,
    reply_markup=None,  # noqa: ANN001
) -> None:
    """
    Users may click buttons on old cards (e.g. after a restart).
    Re-rendering an unchanged card is ignored; any other edit failure
    sends the card as a new message.
    """
    try:
        await cb.message.edit_text(text, reply_markup=reply_markup)  # type: ignore[union-attr]
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc):
            return
        await cb.message.answer(text, reply_markup=reply_markup)  # type: ignore[union-attr]


async def _load(state: FSMContext) -> SelectionState:
    return SelectionState.from_data(await state.get_data())


async def _save(state: FSMContext, sel: SelectionState) -> None:
    await state.update_data(**sel.to_data())


# ── 1. Transport mode ────────────────────────────────────────────────

@router.callback_query(F.data.startswith("transport:"))
async def pick_transport(cb: CallbackQuery, state: FSMContext) -> None:
    value = cb.data.split(":")[1]  # type: ignore[union-attr]
    if value not in TRANSPORT_LABELS:
        await cb.answer()
        return

    sel = await _load(state)
    if sel.step is not Step.TRANSPORT:
        # Old step-1 card pressed later on: start the wizard over from here
        sel.reset()
    sel.select_transport(value)
    await _save(state, sel)

    text, kb = transport_card(sel)
    await _safe_edit(cb, text, reply_markup=kb)
    await state.set_state(WizardForm.transport)
    await cb.answer()


@router.callback_query(StateFilter(WizardForm), F.data == "step:next")
async def next_step(cb: CallbackQuery, state: FSMContext) -> None:
    sel = await _load(state)
    if sel.step is not Step.TRANSPORT:
        await cb.answer(_STALE_CARD, show_alert=True)
        return
    if not sel.can_advance():
        await cb.answer("Choose a transportation mode first.", show_alert=True)
        return

    sel.advance()
    await _save(state, sel)

    text, kb = responsibilities_card(sel)
    await _safe_edit(cb, text, reply_markup=kb)
    await state.set_state(WizardForm.responsibilities)
    await cb.answer()


# ── 2. Responsibilities ──────────────────────────────────────────────

@router.callback_query(F.data.startswith("q:"))
async def show_question(cb: CallbackQuery) -> None:
    """Question title buttons pop up the full prompt."""
    value = cb.data.split(":")[1]  # type: ignore[union-attr]
    await cb.answer(_PROMPTS.get(value))


@router.callback_query(StateFilter(WizardForm), F.data.startswith("ans:"))
async def pick_answer(cb: CallbackQuery, state: FSMContext) -> None:
    # ans:<question>:<answer>
    parts = cb.data.split(":")  # type: ignore[union-attr]
    if (
        len(parts) != 3
        or parts[1] not in _PROMPTS
        or parts[2] not in ANSWER_LABELS
    ):
        await cb.answer()
        return

    sel = await _load(state)
    if sel.step is not Step.RESPONSIBILITIES:
        await cb.answer(_STALE_CARD, show_alert=True)
        return
    sel.set_answer(parts[1], parts[2])
    await _save(state, sel)

    text, kb = responsibilities_card(sel)
    await _safe_edit(cb, text, reply_markup=kb)
    await cb.answer()


@router.callback_query(StateFilter(WizardForm), F.data == "step:recommend")
async def recommend(cb: CallbackQuery, state: FSMContext) -> None:
    sel = await _load(state)
    if sel.step is not Step.RESPONSIBILITIES:
        await cb.answer(_STALE_CARD, show_alert=True)
        return
    if not sel.can_advance():
        await cb.answer("Please answer all five questions first.", show_alert=True)
        return

    sel.advance()
    await _save(state, sel)

    await _safe_edit(cb, result_text(sel), reply_markup=result_kb())
    await state.set_state(WizardForm.result)
    await cb.answer()
    logger.info(
        "Recommendation for user %s: %s [%s]",
        cb.from_user.id, sel.result, sel.transport.value if sel.transport else "?",
    )


# ── 3. Result actions ────────────────────────────────────────────────

@router.callback_query(F.data == "action:contact")
async def action_contact(cb: CallbackQuery) -> None:
    await cb.message.answer(  # type: ignore[union-attr]
        f"📞 Call us at <b>{settings.contact_display}</b>\n"
        f"(dial <code>{settings.contact_tel}</code>) to speak with a logistics expert "
        "about your shipping needs."
    )
    await cb.answer()


@router.callback_query(F.data == "action:restart")
async def action_restart(cb: CallbackQuery, state: FSMContext) -> None:
    await state.clear()
    sel = SelectionState()
    await _save(state, sel)
    text, kb = transport_card(sel)
    await cb.message.answer(f"<b>🔄 Start Over</b>\n\n{text}", reply_markup=kb)  # type: ignore[union-attr]
    await state.set_state(WizardForm.transport)
    await cb.answer()
