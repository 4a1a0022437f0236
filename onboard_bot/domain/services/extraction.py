# onboard_bot/domain/services/extraction.py
"""
Extraction request building, response parsing and answer merging.

The extractor is asked to reply with a single JSON object::

    {"message": "...", "extracted": {"slot": "value"}, "next_step": "slot_or_complete"}

Its output is untrusted. :func:`parse_extraction` accepts the object only if
it validates against :class:`ExtractionResult` and names a real step;
anything else raises :class:`ExtractionParseError`, which the dialogue
engine turns into a clarification turn without touching the session.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from onboard_bot.domain.formatting import channel_format
from onboard_bot.domain.i18n import language_name
from onboard_bot.domain.models.session import OnboardingSession
from onboard_bot.domain.steps import COMPLETE, CONFIRM_DETAILS, StepTable

logger = logging.getLogger("extraction")

EXPECTED_FIELDS = ("message", "extracted", "next_step")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

Scalar = Union[str, int, float, bool, None]


class ExtractionParseError(Exception):
    """Raised when the extractor's output holds no usable JSON object."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class ExtractionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: Optional[str] = None
    extracted: dict[str, Scalar] = Field(default_factory=dict)
    next_step: Optional[str] = None

    @field_validator("extracted", mode="before")
    @classmethod
    def _null_extracted(cls, value):
        return {} if value is None else value

    @property
    def reply(self) -> str:
        return (self.message or "").strip()

    @property
    def requested_step(self) -> str | None:
        step = (self.next_step or "").strip()
        return step or None


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_system_prompt(
    session: OnboardingSession,
    table: StepTable,
    *,
    contact_name: str | None = None,
    agent_name: str = "Sofia",
) -> str:
    """Render the fixed instruction set for one turn of *session*."""
    answers = session.answers or {}
    fmt = channel_format(session.channel)
    current = session.current_step

    known = "\n".join(f"- {k}: {v}" for k, v in answers.items() if k != CONFIRM_DETAILS)
    slots = "\n".join(
        f"{i}. *{step.key}* — {step.description}"
        for i, step in enumerate((s for s in table.steps if s.key != CONFIRM_DETAILS), start=1)
    )

    lang_block = ""
    if session.language and session.language != "en":
        lang = language_name(session.language)
        lang_block = (
            f"\nLANGUAGE: You MUST respond ENTIRELY in {lang}. All messages, questions, "
            f"and acknowledgments must be in {lang}.\n"
        )

    name_block = ""
    if contact_name:
        name_block = f"The client's name is {fmt.bold(contact_name)}. Always address them by name naturally.\n"

    confirm_block = ""
    if current == CONFIRM_DETAILS:
        first_missing = table.next_unanswered(answers)
        confirm_block = (
            "\nSPECIAL STEP — CONFIRM DETAILS:\n"
            "The client signed up through the website and we already have some of their information.\n"
            "Check whether the client confirms it or wants to change anything.\n"
            f'- If they CONFIRM (yes, correct, looks good, etc.) → set next_step to "{first_missing}" and move on.\n'
            '- If they want to CHANGE something → put the updated fields in "extracted", present the '
            f'correction, and set next_step to "{CONFIRM_DETAILS}" again until they confirm.\n'
            "- Do NOT re-ask for information already collected.\n"
        )

    return f"""You are {agent_name}, a warm and professional Customer Success Agent for a digital marketing agency. You are onboarding a new client through {fmt.display_name}.
{lang_block}
{name_block}
CURRENT ONBOARDING STEP: {current}
{confirm_block}
INFORMATION ALREADY COLLECTED:
{known or '(none yet)'}

YOUR TASK:
Guide the client through onboarding conversationally, collecting one piece of information at a time:

{slots}

RULES:
- Ask ONE question at a time. Be natural and conversational, not like a form.
- Acknowledge each answer warmly before moving on. If they give several answers at once, acknowledge all of them.
- {fmt.prompt_hint}
- Keep messages concise, 2-3 sentences max. If they seem confused, clarify with an example.
- NEVER ask for information you already have; skip any step that is already answered.
- If the client doesn't know or wants to skip a question, accept it gracefully and record "skipped" as the value.

RESPONSE FORMAT:
Respond with valid JSON only, exactly:
{{
  "message": "Your message to the client ({fmt.display_name} formatting)",
  "extracted": {{ "field_name": "extracted value" }},
  "next_step": "next_step_key_or_{COMPLETE}"
}}
"extracted" holds only NEW information from the client's latest message.
"next_step" is the NEXT UNANSWERED field, or "{COMPLETE}" when everything is collected.
"""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _candidate_objects(raw: str) -> list[str]:
    text = raw.strip()
    candidates: list[str] = []
    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])
    return candidates


def _decode(raw: str) -> dict[str, Any]:
    decoder = json.JSONDecoder()
    for candidate in _candidate_objects(raw):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            # Trailing prose after the object: take the first complete object.
            brace = candidate.find("{")
            try:
                data, _ = decoder.raw_decode(candidate[brace:])
            except json.JSONDecodeError:
                continue
        if isinstance(data, dict):
            return data
    raise ExtractionParseError("No JSON object found in extractor output", raw=raw)


def parse_extraction(raw: str | None, table: StepTable) -> ExtractionResult:
    """Parse and validate extractor output against the strict response schema."""
    if not raw or not raw.strip():
        raise ExtractionParseError("Empty extractor output", raw=raw)

    data = _decode(raw)
    if not any(field in data for field in EXPECTED_FIELDS):
        raise ExtractionParseError(
            f"JSON object has none of the expected fields {EXPECTED_FIELDS}", raw=raw
        )

    try:
        result = ExtractionResult.model_validate(data)
    except ValidationError as exc:
        raise ExtractionParseError(f"Extractor output failed validation: {exc}", raw=raw) from exc

    step = result.requested_step
    if step is not None and not table.is_valid_step(step):
        raise ExtractionParseError(f"Unknown next_step {step!r}", raw=raw)

    return result


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------

def clean_extracted(extracted: Mapping[str, Scalar], table: StepTable) -> dict[str, str]:
    """Keep non-empty, trimmed values for slots the table knows about."""
    cleaned: dict[str, str] = {}
    for key, value in extracted.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        if key not in table.answer_keys:
            logger.debug("Dropping extracted value for unknown slot %r", key)
            continue
        cleaned[key] = text
    return cleaned


def merge_answers(
    answers: Mapping[str, str], extracted: Mapping[str, Scalar], table: StepTable
) -> dict[str, str]:
    """Overlay cleaned *extracted* values onto *answers*.

    Never removes a key; repeating the same merge yields the same mapping.
    """
    merged = dict(answers)
    merged.update(clean_extracted(extracted, table))
    return merged
