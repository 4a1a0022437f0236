from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_bot.domain.collaborators import ClientProfile, Contact
from onboard_bot.infrastructure.db.models import Client, ClientContact

# Client columns a provisioning step may write back after creation
UPDATABLE_CLIENT_FIELDS = frozenset({
    "drive_folder_id",
    "drive_folder_url",
    "profile_record_id",
    "conversation_log_id",
    "plan",
    "website",
})


class ClientUpdateError(Exception):
    pass


class ClientRepository:
    """Client Directory backed by ``clients`` / ``client_contacts``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, client_id: UUID) -> Client | None:
        stmt = select(Client).where(Client.id == client_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_client(self, profile: ClientProfile) -> UUID:
        now = datetime.now(timezone.utc)
        client = Client(**asdict(profile), created_at=now, updated_at=now)
        self.db.add(client)
        await self.db.commit()
        await self.db.refresh(client)
        return client.id

    async def update_client(self, client_id: UUID, **fields: Any) -> None:
        unknown = set(fields) - UPDATABLE_CLIENT_FIELDS
        if unknown:
            raise ClientUpdateError(f"Fields not updatable: {sorted(unknown)}")
        client = await self.get(client_id)
        if client is None:
            raise ClientUpdateError(f"Unknown client id: {client_id}")
        for k, v in fields.items():
            setattr(client, k, v)
        client.updated_at = datetime.now(timezone.utc)
        self.db.add(client)
        await self.db.commit()

    async def _get_contact_row(self, subject_key: str) -> ClientContact | None:
        stmt = select(ClientContact).where(ClientContact.subject_key == subject_key)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_contact(self, subject_key: str) -> Contact | None:
        row = await self._get_contact_row(subject_key)
        if row is None:
            return None
        return Contact(subject_key=row.subject_key, name=row.name, client_id=row.client_id, channel=row.channel)

    async def upsert_contact(
        self,
        subject_key: str,
        *,
        name: str | None = None,
        client_id: UUID | None = None,
        channel: str | None = None,
    ) -> Contact:
        now = datetime.now(timezone.utc)
        row = await self._get_contact_row(subject_key)
        if row is None:
            row = ClientContact(
                subject_key=subject_key,
                name=name,
                client_id=client_id,
                channel=channel or "whatsapp",
                created_at=now,
            )
        else:
            if name:
                row.name = name
            if client_id:
                row.client_id = client_id
            if channel:
                row.channel = channel
        row.updated_at = now
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return Contact(subject_key=row.subject_key, name=row.name, client_id=row.client_id, channel=row.channel)
