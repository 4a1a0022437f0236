# onboard_bot/domain/session_store.py
"""
Session Store contract.

Exactly one active (``in_progress``) session may exist per subject key.
Every write goes through :func:`apply_patch`, which enforces the two
session invariants regardless of backend:

* ``answers`` is append/overwrite only: a patch can add keys or replace
  values, never remove a key.
* ``status`` is monotonic: ``completed`` never regresses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import UUID

from pydantic import ValidationError

from onboard_bot.domain.models.session import (
    Channel,
    OnboardingSession,
    SessionPatch,
    SessionStatus,
)


class SessionUpdateError(Exception):
    """Raised for writes that break the session contract (unknown id, bad field, status regression)."""
    pass


@runtime_checkable
class SessionStore(Protocol):
    async def get_active_session(self, subject_key: str) -> OnboardingSession | None: ...

    async def get_latest_session(self, subject_key: str) -> OnboardingSession | None: ...

    async def create_session(
        self,
        subject_key: str,
        channel: Channel | str,
        *,
        language: str = "en",
        plan: str = "smb",
        current_step: str | None = None,
        answers: Mapping[str, str] | None = None,
    ) -> OnboardingSession: ...

    async def update_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any]
    ) -> OnboardingSession: ...

    async def complete_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any] | None = None
    ) -> bool: ...

    async def list_stale(self, idle_since: datetime) -> list[OnboardingSession]: ...


def coerce_patch(patch: SessionPatch | Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate *patch* against the allow-list and return only the fields it sets."""
    if patch is None:
        return {}
    if isinstance(patch, SessionPatch):
        return patch.changes()
    try:
        return SessionPatch(**dict(patch)).changes()
    except ValidationError as exc:
        raise SessionUpdateError(f"Invalid session patch: {exc}") from exc


def apply_patch(current: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Return the field values to write for *changes* against the *current* row values."""
    out: dict[str, Any] = {}
    for field, value in changes.items():
        if field == "answers":
            merged = dict(current.get("answers") or {})
            merged.update(value or {})
            out["answers"] = merged
        elif field == "status":
            status = SessionStatus(value)
            if (
                SessionStatus(current.get("status", SessionStatus.IN_PROGRESS)) == SessionStatus.COMPLETED
                and status != SessionStatus.COMPLETED
            ):
                raise SessionUpdateError("Session status cannot regress from 'completed'")
            out["status"] = status
        elif field == "provisioning":
            merged = dict(current.get("provisioning") or {})
            merged.update(value or {})
            out["provisioning"] = merged
        else:
            out[field] = value
    out["updated_at"] = datetime.now(timezone.utc)
    return out


class InMemorySessionStore:
    """Process-local store for development and tests.

    Every method completes without awaiting between read and write, so each
    call is atomic on the event loop.
    """

    def __init__(self) -> None:
        self._sessions: dict[UUID, OnboardingSession] = {}

    async def get_active_session(self, subject_key: str) -> OnboardingSession | None:
        for session in reversed(list(self._sessions.values())):
            if session.subject_key == subject_key and session.status == SessionStatus.IN_PROGRESS:
                return session.model_copy(deep=True)
        return None

    async def get_latest_session(self, subject_key: str) -> OnboardingSession | None:
        matches = [s for s in self._sessions.values() if s.subject_key == subject_key]
        if not matches:
            return None
        return max(matches, key=lambda s: s.created_at).model_copy(deep=True)

    async def get_session(self, session_id: UUID) -> OnboardingSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def create_session(
        self,
        subject_key: str,
        channel: Channel | str,
        *,
        language: str = "en",
        plan: str = "smb",
        current_step: str | None = None,
        answers: Mapping[str, str] | None = None,
    ) -> OnboardingSession:
        existing = await self.get_active_session(subject_key)
        if existing:
            return existing
        session = OnboardingSession(
            subject_key=subject_key,
            channel=Channel(channel),
            language=language,
            plan=plan,
            current_step=current_step or "name",
            answers=dict(answers or {}),
        )
        self._sessions[session.id] = session
        return session.model_copy(deep=True)

    async def update_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any]
    ) -> OnboardingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionUpdateError(f"Unknown session id: {session_id}")
        values = apply_patch(session.model_dump(), coerce_patch(patch))
        updated = session.model_copy(update=values, deep=True)
        self._sessions[session_id] = updated
        return updated.model_copy(deep=True)

    async def complete_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any] | None = None
    ) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionUpdateError(f"Unknown session id: {session_id}")
        if session.status == SessionStatus.COMPLETED:
            return False
        changes = coerce_patch(patch)
        changes["status"] = SessionStatus.COMPLETED
        values = apply_patch(session.model_dump(), changes)
        self._sessions[session_id] = session.model_copy(update=values, deep=True)
        return True

    async def list_stale(self, idle_since: datetime) -> list[OnboardingSession]:
        return [
            s.model_copy(deep=True)
            for s in self._sessions.values()
            if s.status == SessionStatus.IN_PROGRESS and s.updated_at < idle_since
        ]
