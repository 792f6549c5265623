"""All keyboards and display labels for the wizard."""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from incoterms_bot.incoterms import QUESTIONS, Answer, TransportCategory

# ── Data lists (label, description, callback_value) ─────────────────

TRANSPORT_TYPES = [
    ("🚢 Sea Freight", "Ocean container or bulk shipping", TransportCategory.SEA),
    ("🚛 Road Freight", "Truck or road transportation", TransportCategory.ROAD),
    ("🚂 Rail Freight", "Railway transportation", TransportCategory.RAIL),
    ("✈️ Air Freight", "Air cargo transportation", TransportCategory.AIR),
]

ANSWER_OPTIONS = [
    ("Seller", Answer.SELLER),
    ("Buyer", Answer.BUYER),
]

# Short button titles for the question rows
QUESTION_TITLES: dict[str, str] = {
    "loading": "Loading",
    "transport": "Main transport",
    "customs": "Customs clearance",
    "insurance": "Cargo insurance",
    "unloading": "Unloading",
}

# ── Quick label look-ups (callback_value → label) ───────────────────

TRANSPORT_LABELS: dict[str, str] = {v.value: lbl for lbl, _, v in TRANSPORT_TYPES}
TRANSPORT_DESCRIPTIONS: dict[str, str] = {v.value: d for _, d, v in TRANSPORT_TYPES}
ANSWER_LABELS: dict[str, str] = {v.value: lbl for lbl, v in ANSWER_OPTIONS}


# ── Keyboard builders ───────────────────────────────────────────────

def transport_kb(selected: str | None = None) -> InlineKeyboardMarkup:
    """Transport grid; the "Next Step" button appears once a mode is chosen."""
    b = InlineKeyboardBuilder()
    for label, _, value in TRANSPORT_TYPES:
        mark = "✅ " if value.value == selected else ""
        b.button(text=f"{mark}{label}", callback_data=f"transport:{value.value}")
    if selected:
        b.button(text="➡️ Next Step", callback_data="step:next")
        b.adjust(2, 2, 1)
    else:
        b.adjust(2, 2)
    return b.as_markup()


def responsibilities_kb(answers: dict[str, str], complete: bool) -> InlineKeyboardMarkup:
    """One title row + Seller/Buyer row per question.

    "Get Recommendation" is only offered when the answer set is complete.
    """
    b = InlineKeyboardBuilder()
    sizes: list[int] = []
    for n, (question, _) in enumerate(QUESTIONS, start=1):
        b.button(text=f"{n}. {QUESTION_TITLES[question.value]}", callback_data=f"q:{question.value}")
        for label, option in ANSWER_OPTIONS:
            mark = "🔘 " if answers.get(question.value) == option.value else ""
            b.button(
                text=f"{mark}{label}",
                callback_data=f"ans:{question.value}:{option.value}",
            )
        sizes.extend([1, 2])
    if complete:
        b.button(text="🎯 Get Recommendation", callback_data="step:recommend")
        sizes.append(1)
    b.adjust(*sizes)
    return b.as_markup()


def result_kb() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="📞 Contact Expert", callback_data="action:contact")],
            [InlineKeyboardButton(text="🔄 Start Over", callback_data="action:restart")],
        ]
    )
