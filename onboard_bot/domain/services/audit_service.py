# onboard_bot/domain/services/audit_service.py
"""
Audit trail for onboarding finalization.

One record per finalization attempt, written to structured logging and an
in-memory buffer that the admin API reads back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

logger = logging.getLogger("audit_service")

# In-memory audit log for quick access (also logged to structured logging)
_audit_buffer: list[dict] = []
_MAX_BUFFER_SIZE = 10000


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    action: str          # "client_onboarded"
    subject_key: str     # WhatsApp number / Telegram chat id
    result: str          # "success" | "partial"
    answers: dict[str, str] = field(default_factory=dict)
    steps: list[str] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    client_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "action": self.action,
            "subject_key": self.subject_key,
            "result": self.result,
            "answers": dict(self.answers),
            "steps": list(self.steps),
            "errors": [dict(e) for e in self.errors],
            "client_id": self.client_id,
        }


def log_client_onboarded(
    subject_key: str,
    answers: Mapping[str, str],
    steps: Sequence[str],
    errors: Sequence[Mapping[str, str]],
    result: str,
    client_id: Any = None,
) -> AuditEntry:
    """Record one finalization attempt.

    Synchronous and non-blocking: writes to structured log and the
    in-memory buffer.
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action="client_onboarded",
        subject_key=subject_key,
        result=result,
        answers=dict(answers),
        steps=list(steps),
        errors=[dict(e) for e in errors],
        client_id=str(client_id) if client_id else None,
    )

    logger.info(
        "AUDIT: %s subject=%s result=%s steps=%d errors=%d client=%s",
        entry.action,
        entry.subject_key,
        entry.result,
        len(entry.steps),
        len(entry.errors),
        entry.client_id or "-",
    )

    _audit_buffer.append(entry.to_dict())
    if len(_audit_buffer) > _MAX_BUFFER_SIZE:
        _audit_buffer.pop(0)

    return entry


def get_recent_audit_entries(
    limit: int = 50,
    subject_key: str | None = None,
    result: str | None = None,
) -> list[dict]:
    """Query recent audit entries, most recent first."""
    results = _audit_buffer.copy()

    if subject_key:
        results = [e for e in results if e["subject_key"] == subject_key]
    if result:
        results = [e for e in results if e["result"] == result]

    results.reverse()
    return results[:limit]


def clear_buffer():
    """Clear the in-memory audit buffer (for testing)."""
    _audit_buffer.clear()
