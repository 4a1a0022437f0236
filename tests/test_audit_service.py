# tests/test_audit_service.py
"""Tests for the onboarding audit trail."""

import uuid

from onboard_bot.domain.services import audit_service
from onboard_bot.domain.services.audit_service import (
    clear_buffer,
    get_recent_audit_entries,
    log_client_onboarded,
)


def _make_entry(**overrides):
    """Helper to create a log_client_onboarded call with sensible defaults."""
    defaults = {
        "subject_key": "14155550123",
        "answers": {"name": "Maria", "business_name": "Acme"},
        "steps": ["Client record created"],
        "errors": [],
        "result": "success",
    }
    defaults.update(overrides)
    return log_client_onboarded(**defaults)


# --------------------------------------------------------------------------- #
# Tests
# --------------------------------------------------------------------------- #

def test_log_creates_entry():
    """log_client_onboarded should return an AuditEntry and add it to the buffer."""
    clear_buffer()
    client_id = uuid.uuid4()

    entry = _make_entry(
        errors=[{"label": "Drive folders", "message": "quota"}],
        result="partial",
        client_id=client_id,
    )

    assert entry.action == "client_onboarded"
    assert entry.result == "partial"
    assert entry.client_id == str(client_id)
    assert entry.timestamp  # non-empty ISO string

    entries = get_recent_audit_entries(limit=10)
    assert len(entries) == 1
    assert entries[0]["errors"] == [{"label": "Drive folders", "message": "quota"}]
    assert entries[0]["answers"]["business_name"] == "Acme"


def test_entry_is_detached_from_caller_data():
    clear_buffer()
    answers = {"name": "Maria"}
    _make_entry(answers=answers)
    answers["name"] = "changed"

    assert get_recent_audit_entries()[0]["answers"]["name"] == "Maria"


def test_recent_entries_most_recent_first():
    clear_buffer()
    for i in range(5):
        _make_entry(subject_key=f"SUBJ-{i}")

    entries = get_recent_audit_entries(limit=3)
    assert [e["subject_key"] for e in entries] == ["SUBJ-4", "SUBJ-3", "SUBJ-2"]


def test_filter_by_subject_and_result():
    clear_buffer()
    _make_entry(subject_key="555", result="success")
    _make_entry(subject_key="555", result="partial")
    _make_entry(subject_key="777", result="partial")

    assert len(get_recent_audit_entries(subject_key="555")) == 2
    assert len(get_recent_audit_entries(result="partial")) == 2
    assert len(get_recent_audit_entries(subject_key="777", result="success")) == 0


def test_buffer_is_bounded(monkeypatch):
    clear_buffer()
    monkeypatch.setattr(audit_service, "_MAX_BUFFER_SIZE", 3)
    for i in range(5):
        _make_entry(subject_key=f"SUBJ-{i}")

    entries = get_recent_audit_entries(limit=10)
    assert len(entries) == 3
    assert entries[-1]["subject_key"] == "SUBJ-2"


def test_clear_buffer():
    _make_entry()
    clear_buffer()
    assert get_recent_audit_entries() == []
