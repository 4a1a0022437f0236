from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from onboard_bot.domain.models.session import Channel, OnboardingSession


class StartOnboardingRequest(BaseModel):
    subject_key: str = Field(..., min_length=3, examples=["14155550123"])
    channel: Channel = Channel.WHATSAPP
    language: Optional[str] = Field(default=None, examples=["en"])
    plan: str = Field(default="smb", pattern="^(smb|medium|enterprise)$")
    prefill: dict[str, str] = Field(
        default_factory=dict,
        examples=[{"name": "John", "business_name": "Acme", "website": "acme.com"}],
    )


class SessionOut(BaseModel):
    id: UUID
    subject_key: str
    channel: Channel
    language: str
    plan: str
    current_step: str
    status: str
    answers: dict[str, str]
    client_id: Optional[UUID] = None
    invite_id: Optional[str] = None
    invite_url: Optional[str] = None
    drive_folder_url: Optional[str] = None
    provisioning: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: OnboardingSession) -> "SessionOut":
        return cls(**session.model_dump(mode="json"))


class StartOnboardingResponse(BaseModel):
    created: bool
    session: SessionOut
    welcome: Optional[str] = None


class StaleSessionsResponse(BaseModel):
    idle_hours: int
    count: int
    sessions: list[SessionOut]
