"""Incoterms® 2020 catalog and the decision table that picks a rule.

The table is a priority-ordered list of rules per branch (sea / non-sea).
Rules are evaluated top-to-bottom and the first match wins, so order
encodes precedence. The last rule of every branch has no conditions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class TransportCategory(str, Enum):
    SEA = "sea"
    ROAD = "road"
    RAIL = "rail"
    AIR = "air"


class ResponsibilityQuestion(str, Enum):
    LOADING = "loading"
    TRANSPORT = "transport"
    CUSTOMS = "customs"
    INSURANCE = "insurance"
    UNLOADING = "unloading"


class Answer(str, Enum):
    SELLER = "seller"
    BUYER = "buyer"


class Incoterm(str, Enum):
    EXW = "EXW"
    FCA = "FCA"
    CPT = "CPT"
    CIP = "CIP"
    DAP = "DAP"
    DPU = "DPU"
    DDP = "DDP"
    FAS = "FAS"
    FOB = "FOB"
    CFR = "CFR"
    CIF = "CIF"

    @property
    def full_name(self) -> str:
        return INCOTERM_NAMES[self]

    @property
    def label(self) -> str:
        """Display label, e.g. ``CIF (Cost, Insurance and Freight)®``."""
        return f"{self.value} ({self.full_name})®"


INCOTERM_NAMES: dict[Incoterm, str] = {
    Incoterm.EXW: "Ex Works",
    Incoterm.FCA: "Free Carrier",
    Incoterm.CPT: "Carriage Paid To",
    Incoterm.CIP: "Carriage and Insurance Paid",
    Incoterm.DAP: "Delivered at Place",
    Incoterm.DPU: "Delivered at Place Unloaded",
    Incoterm.DDP: "Delivered Duty Paid",
    Incoterm.FAS: "Free Alongside Ship",
    Incoterm.FOB: "Free On Board",
    Incoterm.CFR: "Cost and Freight",
    Incoterm.CIF: "Cost, Insurance and Freight",
}

# Questions in presentation order, with their prompts
QUESTIONS: list[tuple[ResponsibilityQuestion, str]] = [
    (ResponsibilityQuestion.LOADING, "Who is responsible for loading the goods?"),
    (ResponsibilityQuestion.TRANSPORT, "Who arranges and pays for main transport?"),
    (ResponsibilityQuestion.CUSTOMS, "Who handles export/import customs clearance?"),
    (ResponsibilityQuestion.INSURANCE, "Who provides cargo insurance?"),
    (ResponsibilityQuestion.UNLOADING, "Who is responsible for unloading at destination?"),
]

_MULTIMODAL_TERMS = [
    Incoterm.EXW,
    Incoterm.FCA,
    Incoterm.CPT,
    Incoterm.CIP,
    Incoterm.DAP,
    Incoterm.DPU,
    Incoterm.DDP,
]

# Informational only: shown after a category is picked, never used by resolve()
AVAILABLE_TERMS: dict[TransportCategory, list[Incoterm]] = {
    TransportCategory.SEA: [Incoterm.FAS, Incoterm.FOB, Incoterm.CFR, Incoterm.CIF],
    TransportCategory.ROAD: list(_MULTIMODAL_TERMS),
    TransportCategory.RAIL: list(_MULTIMODAL_TERMS),
    TransportCategory.AIR: list(_MULTIMODAL_TERMS),
}


# ── Decision table ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Rule:
    """One row of the decision table: all conditions must hold."""

    term: Incoterm
    when: Mapping[ResponsibilityQuestion, Answer] = field(default_factory=dict)

    def matches(self, answers: Mapping[str, str]) -> bool:
        # Missing answers equal neither "seller" nor "buyer"
        return all(
            answers.get(question.value) == answer.value
            for question, answer in self.when.items()
        )


_Q = ResponsibilityQuestion
_S = Answer.SELLER
_B = Answer.BUYER

SEA_RULES: tuple[Rule, ...] = (
    Rule(Incoterm.CIF, {_Q.LOADING: _S, _Q.TRANSPORT: _S, _Q.INSURANCE: _S}),
    Rule(Incoterm.CFR, {_Q.LOADING: _S, _Q.TRANSPORT: _S}),
    Rule(Incoterm.FOB, {_Q.LOADING: _S}),
    Rule(Incoterm.FAS),
)

NON_SEA_RULES: tuple[Rule, ...] = (
    Rule(Incoterm.EXW, {_Q.LOADING: _B, _Q.TRANSPORT: _B}),
    Rule(Incoterm.CIP, {_Q.TRANSPORT: _S, _Q.INSURANCE: _S}),
    Rule(Incoterm.CPT, {_Q.TRANSPORT: _S}),
    Rule(Incoterm.DPU, {_Q.UNLOADING: _S}),
    Rule(Incoterm.DDP, {_Q.CUSTOMS: _S}),
    Rule(Incoterm.DAP),
)


def rules_for(category: TransportCategory | str) -> tuple[Rule, ...]:
    if TransportCategory(category) is TransportCategory.SEA:
        return SEA_RULES
    return NON_SEA_RULES


def resolve(
    category: TransportCategory | str,
    answers: Mapping[str, str],
) -> Incoterm:
    """Return the recommended Incoterm for a transport category and answers.

    Pure and total: every category and every (possibly partial) answer
    mapping resolves to exactly one term. Keys may be plain question ids
    or ``ResponsibilityQuestion`` members, which hash like their values.
    """
    for rule in rules_for(category):
        if rule.matches(answers):
            return rule.term
    # Unreachable: every branch ends with an unconditional rule
    raise AssertionError(f"decision table for {category!r} has no default")
