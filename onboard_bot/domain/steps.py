# onboard_bot/domain/steps.py
"""
Onboarding step table.

An ordered list of slots to collect, each with its default successor:

  name → business_name → website → ... → additional_info → complete

plus one cyclic node, ``confirm_details``, whose default successor is itself.
Sessions that start from a website signup sit on ``confirm_details`` until the
extractor reports that the client confirmed (or finished correcting) the
prefilled data.

The table owns ordering; sessions only ever point into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

COMPLETE = "complete"
CONFIRM_DETAILS = "confirm_details"
SKIPPED = "skipped"


@dataclass(frozen=True)
class Step:
    key: str
    default_next: str
    description: str = ""


class InvalidStepTableError(Exception):
    """Raised when a step table is malformed (duplicate keys, dangling successors, dead ends)."""
    pass


class StepTable:
    """Immutable, shared, read-only step graph."""

    def __init__(self, steps: Iterable[Step], *, extra_slots: Iterable[str] = ()) -> None:
        self._steps: tuple[Step, ...] = tuple(steps)
        self._by_key: dict[str, Step] = {}
        for step in self._steps:
            if step.key in self._by_key or step.key == COMPLETE:
                raise InvalidStepTableError(f"Duplicate or reserved step key: {step.key!r}")
            self._by_key[step.key] = step
        if not self._steps:
            raise InvalidStepTableError("Step table is empty")
        # Slots the extractor may fill that are never asked for directly (prefill only).
        self._extra_slots = frozenset(extra_slots)
        self._validate()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    @property
    def first_key(self) -> str:
        return self._steps[0].key

    @property
    def slot_keys(self) -> list[str]:
        """Keys that hold an answer (everything except the confirmation node)."""
        return [s.key for s in self._steps if s.key != CONFIRM_DETAILS]

    @property
    def answer_keys(self) -> frozenset[str]:
        """Every key an extraction may write into ``answers``."""
        return frozenset(self.slot_keys) | self._extra_slots

    def is_valid_step(self, key: str | None) -> bool:
        return key == COMPLETE or key in self._by_key

    def get(self, key: str) -> Step:
        return self._by_key[key]

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def default_next(self, key: str) -> str:
        """Default successor of *key*. Unknown keys fall through to ``complete``."""
        step = self._by_key.get(key)
        return step.default_next if step else COMPLETE

    def next_step(self, current: str, override: str | None = None) -> str:
        """Resolve the successor of *current*.

        A non-empty *override* that names a valid key (or ``complete``) wins.
        On ``confirm_details`` an override equal to ``confirm_details`` keeps
        the correction loop going and any other valid override exits it.
        The confirmation node is never entered from a regular slot.
        Without an override the table's default successor applies, which for
        the confirmation node is the node itself.
        """
        if override:
            override = override.strip()
        if override and self.is_valid_step(override):
            if override != CONFIRM_DETAILS or current == CONFIRM_DETAILS:
                return override
        return self.default_next(current)

    def unanswered(self, answers: Mapping[str, str]) -> list[str]:
        """Slot keys still missing an answer, in table order.

        ``skipped`` counts as answered so a client who declines a question
        cannot deadlock the dialogue.
        """
        return [k for k in self.slot_keys if not (answers.get(k) or "").strip()]

    def next_unanswered(self, answers: Mapping[str, str]) -> str:
        missing = self.unanswered(answers)
        return missing[0] if missing else COMPLETE

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        for step in self._steps:
            if not self.is_valid_step(step.default_next):
                raise InvalidStepTableError(
                    f"Step {step.key!r} points at unknown successor {step.default_next!r}"
                )
        for step in self._steps:
            if not self._reaches_complete(step.key):
                raise InvalidStepTableError(f"Step {step.key!r} has no path to {COMPLETE!r}")

    def _reaches_complete(self, start: str) -> bool:
        seen: set[str] = set()
        key = start
        while key != COMPLETE:
            if key in seen:
                # The confirmation node leaves its self-loop only on an external
                # signal, which may name any slot; it reaches the end through them.
                return key == CONFIRM_DETAILS and any(
                    self._reaches_complete(k) for k in self.slot_keys
                )
            seen.add(key)
            key = self._by_key[key].default_next
        return True


# ---------------------------------------------------------------------------
# Default onboarding table
# ---------------------------------------------------------------------------

ONBOARDING_STEPS: tuple[Step, ...] = (
    # Identity
    Step("name", "business_name", "The client's personal name (first name is fine)"),
    Step("business_name", "website", "Their company/business name"),
    Step("website", "business_description", "Their website or page URL"),
    Step("business_description", "product_service", "What their business does (industry, niche, core offering)"),
    # Offering & pricing
    Step("product_service", "pricing", "Their main product or service they want to advertise"),
    Step("pricing", "avg_transaction_value", "How much their product/service costs (price range, pricing model)"),
    Step("avg_transaction_value", "target_audience", "Their average transaction/ticket value"),
    # Market
    Step("target_audience", "location", "Who their ideal customers are (demographics, interests, behavior)"),
    Step("location", "competitors", "Where their target market is (country, city, area)"),
    # Company & sales
    Step("competitors", "company_size", "Who their main competitors are (names, websites or pages)"),
    Step("company_size", "sales_process", "Their company size (number of people and approximate revenue)"),
    Step("sales_process", "sales_cycle", "How their sales process works (all online, partially online + offline, all offline)"),
    Step("sales_cycle", "channels_have", "Their typical sales cycle length (from lead to closed sale)"),
    # Marketing channels
    Step("channels_have", "channels_need", "Which marketing/ad channels they currently use (Facebook, Instagram, Google Ads, TikTok, LinkedIn, YouTube, X...)"),
    Step("channels_need", "current_campaigns", "Which channels they do NOT have but want to explore"),
    Step("current_campaigns", "monthly_budget", "What campaigns they currently run and how much they invest"),
    # Budget & goals
    Step("monthly_budget", "goals", "Their monthly marketing budget (they can adjust it any time)"),
    Step("goals", "pains", "Their key goals and targets for marketing"),
    Step("pains", "additional_info", "Their key pain points, gaps or challenges"),
    # Wrap-up
    Step("additional_info", COMPLETE, "1-2 follow-up questions specific to this business; wrap up if nothing important is missing"),
    # Signup confirmation loop
    Step(CONFIRM_DETAILS, CONFIRM_DETAILS, "Client confirms or corrects the details they gave at signup"),
)

DEFAULT_STEP_TABLE = StepTable(ONBOARDING_STEPS, extra_slots=("email",))
