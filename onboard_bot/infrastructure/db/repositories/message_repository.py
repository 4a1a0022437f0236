from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_bot.infrastructure.db.models import ConversationMessage


class MessageRepository:
    """Conversation history per subject key."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def recent(self, subject_key: str, limit: int = 40) -> list[dict[str, str]]:
        """Last *limit* messages, oldest first."""
        stmt = (
            select(ConversationMessage)
            .where(ConversationMessage.subject_key == subject_key)
            .order_by(ConversationMessage.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        rows = list(result.scalars().all())
        rows.reverse()
        return [{"role": r.role, "text": r.body} for r in rows]

    async def append(self, subject_key: str, role: str, text: str, channel: str = "whatsapp") -> None:
        self.db.add(
            ConversationMessage(
                subject_key=subject_key,
                role=role,
                body=text,
                channel=channel,
                created_at=datetime.now(timezone.utc),
            )
        )
        await self.db.commit()
