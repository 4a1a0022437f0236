# tests/test_step_table.py
"""Tests for the onboarding step table."""

import pytest

from onboard_bot.domain.steps import (
    COMPLETE,
    CONFIRM_DETAILS,
    DEFAULT_STEP_TABLE,
    InvalidStepTableError,
    Step,
    StepTable,
)


def test_default_table_starts_with_name_and_ends_at_complete():
    table = DEFAULT_STEP_TABLE
    assert table.first_key == "name"
    assert table.default_next("name") == "business_name"
    assert table.default_next("additional_info") == COMPLETE


def test_confirm_details_is_not_an_answer_slot():
    assert CONFIRM_DETAILS not in DEFAULT_STEP_TABLE.slot_keys
    assert CONFIRM_DETAILS in DEFAULT_STEP_TABLE
    assert "email" in DEFAULT_STEP_TABLE.answer_keys
    assert "email" not in DEFAULT_STEP_TABLE.slot_keys


def test_next_step_without_override_follows_default():
    assert DEFAULT_STEP_TABLE.next_step("website") == "business_description"


def test_next_step_override_jumps_ahead():
    """A valid override wins, so already-answered slots can be skipped."""
    assert DEFAULT_STEP_TABLE.next_step("name", "location") == "location"
    assert DEFAULT_STEP_TABLE.next_step("name", COMPLETE) == COMPLETE


def test_next_step_ignores_unknown_override():
    assert DEFAULT_STEP_TABLE.next_step("name", "favourite_colour") == "business_name"
    assert DEFAULT_STEP_TABLE.next_step("name", "   ") == "business_name"


def test_confirm_details_loops_until_an_exit_is_named():
    table = DEFAULT_STEP_TABLE
    assert table.next_step(CONFIRM_DETAILS) == CONFIRM_DETAILS
    assert table.next_step(CONFIRM_DETAILS, CONFIRM_DETAILS) == CONFIRM_DETAILS
    assert table.next_step(CONFIRM_DETAILS, "pricing") == "pricing"


def test_regular_slot_cannot_enter_confirm_details():
    assert DEFAULT_STEP_TABLE.next_step("pricing", CONFIRM_DETAILS) == "avg_transaction_value"


def test_unknown_current_step_falls_through_to_complete():
    assert DEFAULT_STEP_TABLE.default_next("nope") == COMPLETE


def test_next_unanswered_skips_answered_and_skipped_slots():
    answers = {"name": "Maria", "business_name": "skipped", "website": "  "}
    assert DEFAULT_STEP_TABLE.next_unanswered(answers) == "website"
    all_answered = {k: "x" for k in DEFAULT_STEP_TABLE.slot_keys}
    assert DEFAULT_STEP_TABLE.next_unanswered(all_answered) == COMPLETE


def test_duplicate_keys_rejected():
    with pytest.raises(InvalidStepTableError):
        StepTable([Step("a", "b"), Step("a", COMPLETE), Step("b", COMPLETE)])


def test_dangling_successor_rejected():
    with pytest.raises(InvalidStepTableError):
        StepTable([Step("a", "missing")])


def test_cycle_without_exit_rejected():
    with pytest.raises(InvalidStepTableError):
        StepTable([Step("a", "b"), Step("b", "a")])


def test_reserved_complete_key_rejected():
    with pytest.raises(InvalidStepTableError):
        StepTable([Step(COMPLETE, COMPLETE)])
