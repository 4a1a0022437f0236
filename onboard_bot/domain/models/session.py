# onboard_bot/domain/models/session.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class OnboardingSession(BaseModel):
    """One onboarding conversation for one subject key."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    subject_key: str
    channel: Channel = Channel.WHATSAPP
    language: str = "en"
    plan: str = "smb"
    current_step: str = "name"
    answers: dict[str, str] = Field(default_factory=dict)
    status: SessionStatus = SessionStatus.IN_PROGRESS

    # Provisioning back-references, attached after (or during) finalization
    client_id: Optional[UUID] = None
    invite_id: Optional[str] = None
    invite_url: Optional[str] = None
    drive_folder_url: Optional[str] = None
    provisioning: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED


class SessionPatch(BaseModel):
    """Exhaustive allow-list of session fields a turn or the orchestrator may write.

    ``id``, ``subject_key``, ``channel``, ``language`` and ``created_at`` are
    fixed for the life of the session and deliberately absent. Unknown fields
    are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    answers: Optional[dict[str, str]] = None
    current_step: Optional[str] = None
    status: Optional[SessionStatus] = None
    plan: Optional[str] = None
    client_id: Optional[UUID] = None
    invite_id: Optional[str] = None
    invite_url: Optional[str] = None
    drive_folder_url: Optional[str] = None
    provisioning: Optional[dict[str, Any]] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
