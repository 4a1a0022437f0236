# onboard_bot/domain/collaborators.py
"""
Contracts of the external collaborators the onboarding core consumes.

Concrete adapters live under ``onboard_bot.infrastructure``; tests use
AsyncMock or small fakes that satisfy the same shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence
from uuid import UUID


@dataclass
class ClientProfile:
    name: str
    plan: str = "smb"
    industry: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    product_service: Optional[str] = None
    pricing: Optional[str] = None
    avg_transaction_value: Optional[str] = None
    target_audience: Optional[str] = None
    location: Optional[str] = None
    competitors: list[str] = field(default_factory=list)
    company_size: Optional[str] = None
    sales_process: Optional[str] = None
    sales_cycle: Optional[str] = None
    channels_have: Optional[str] = None
    channels_need: Optional[str] = None
    current_campaigns: Optional[str] = None
    monthly_budget_cents: int = 0
    goals: list[str] = field(default_factory=list)
    pains: Optional[str] = None
    additional_info: Optional[str] = None


@dataclass
class Contact:
    subject_key: str
    name: Optional[str] = None
    client_id: Optional[UUID] = None
    channel: str = "whatsapp"


@dataclass
class FolderTree:
    root_id: str
    root_url: Optional[str] = None
    subfolders: dict[str, str] = field(default_factory=dict)  # slug → folder id
    subfolder_urls: dict[str, str] = field(default_factory=dict)  # slug → folder url


@dataclass
class CreatedResource:
    id: str
    url: Optional[str] = None


@dataclass
class Invitation:
    invite_id: str
    invite_url: str
    platforms: list[str] = field(default_factory=list)
    status: str = "pending"


class ClientDirectory(Protocol):
    async def create_client(self, profile: ClientProfile) -> UUID: ...

    async def update_client(self, client_id: UUID, **fields: Any) -> None: ...

    async def get_contact(self, subject_key: str) -> Contact | None: ...

    async def upsert_contact(
        self,
        subject_key: str,
        *,
        name: str | None = None,
        client_id: UUID | None = None,
        channel: str | None = None,
    ) -> Contact: ...


class ConversationLog(Protocol):
    async def recent(self, subject_key: str, limit: int = 40) -> list[dict[str, str]]: ...

    async def append(self, subject_key: str, role: str, text: str, channel: str = "whatsapp") -> None: ...


class FolderCreator(Protocol):
    async def create_folder_tree(self, name: str, parent_id: str | None = None) -> FolderTree: ...


class LinkSharer(Protocol):
    async def share(self, resource_id: str, role: str = "reader") -> bool: ...


class DocumentCreator(Protocol):
    async def create_document(
        self, title: str, content: str, parent_id: str | None = None
    ) -> CreatedResource: ...


class RecordCreator(Protocol):
    async def create_record(
        self, title: str, rows: Sequence[Sequence[str]], parent_id: str | None = None
    ) -> CreatedResource: ...


class InvitationCreator(Protocol):
    async def create_invitation(
        self,
        client_name: str,
        contact: str,
        platforms: Sequence[str],
        message: str,
    ) -> Invitation: ...


class ExtractionGatewayError(Exception):
    """The extraction model could not be reached (after the transport's own retries)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionGateway(Protocol):
    async def extract(
        self, system_prompt: str, history: Sequence[dict[str, str]], message: str
    ) -> str: ...


class Messenger(Protocol):
    async def send(self, text: str, recipient: str, channel: str = "whatsapp") -> None: ...


class OperatorNotifier(Protocol):
    async def notify(self, text: str) -> None: ...
