"""Selection state for one wizard session.

The holder lives in the chat's FSM data as a plain dict; handlers load it
with ``SelectionState.from_data`` and write it back with ``to_data``.
It trusts its caller: keyboards only ever offer closed-set values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from incoterms_bot.incoterms import (
    Answer,
    ResponsibilityQuestion,
    TransportCategory,
    resolve,
)


class Step(IntEnum):
    TRANSPORT = 1
    RESPONSIBILITIES = 2
    RESULT = 3


@dataclass
class SelectionState:
    step: Step = Step.TRANSPORT
    transport: TransportCategory | None = None
    answers: dict[str, str] = field(default_factory=dict)
    result: str = ""

    # ── Mutations ───────────────────────────────────────────────────

    def select_transport(self, category: TransportCategory | str) -> None:
        self.transport = TransportCategory(category)

    def set_answer(
        self,
        question: ResponsibilityQuestion | str,
        answer: Answer | str,
    ) -> None:
        self.answers[ResponsibilityQuestion(question).value] = Answer(answer).value

    def is_answer_set_complete(self) -> bool:
        return all(q.value in self.answers for q in ResponsibilityQuestion)

    def reset(self) -> None:
        self.step = Step.TRANSPORT
        self.transport = None
        self.answers = {}
        self.result = ""

    # ── Navigation ──────────────────────────────────────────────────

    def can_advance(self) -> bool:
        """Whether the current step's "next" action is enabled."""
        if self.step is Step.TRANSPORT:
            return self.transport is not None
        if self.step is Step.RESPONSIBILITIES:
            return self.is_answer_set_complete()
        return False

    def advance(self) -> None:
        """Move to the next step, computing the result on leaving step 2."""
        if self.step is Step.RESPONSIBILITIES:
            self.result = resolve(self.transport, self.answers).label  # type: ignore[arg-type]
        if self.step < Step.RESULT:
            self.step = Step(self.step + 1)

    # ── FSM storage ─────────────────────────────────────────────────

    def to_data(self) -> dict[str, Any]:
        return {
            "step": int(self.step),
            "transport": self.transport.value if self.transport else None,
            "answers": dict(self.answers),
            "result": self.result,
        }

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "SelectionState":
        transport = data.get("transport")
        return cls(
            step=Step(data.get("step", Step.TRANSPORT)),
            transport=TransportCategory(transport) if transport else None,
            answers=dict(data.get("answers") or {}),
            result=data.get("result", ""),
        )
