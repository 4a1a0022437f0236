from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_bot.domain.models.session import (
    Channel,
    OnboardingSession,
    SessionPatch,
    SessionStatus,
)
from onboard_bot.domain.session_store import SessionUpdateError, apply_patch, coerce_patch
from onboard_bot.infrastructure.db.models import OnboardingSessionRow


def _column_values(values: Mapping[str, Any]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


class SqlSessionRepository:
    """Session Store backed by ``onboarding_sessions``.

    Writes go through the :class:`SessionPatch` allow-list and lock the row
    (``SELECT ... FOR UPDATE``) for the read-modify-write of ``answers``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _to_domain(row: OnboardingSessionRow) -> OnboardingSession:
        return OnboardingSession.model_validate(row)

    async def _get_active_row(self, subject_key: str) -> OnboardingSessionRow | None:
        stmt = (
            select(OnboardingSessionRow)
            .where(
                OnboardingSessionRow.subject_key == subject_key,
                OnboardingSessionRow.status == SessionStatus.IN_PROGRESS.value,
            )
            .order_by(OnboardingSessionRow.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _lock_row(self, session_id: UUID) -> OnboardingSessionRow:
        stmt = (
            select(OnboardingSessionRow)
            .where(OnboardingSessionRow.id == session_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            raise SessionUpdateError(f"Unknown session id: {session_id}")
        return row

    async def get_active_session(self, subject_key: str) -> OnboardingSession | None:
        row = await self._get_active_row(subject_key)
        return self._to_domain(row) if row else None

    async def get_latest_session(self, subject_key: str) -> OnboardingSession | None:
        stmt = (
            select(OnboardingSessionRow)
            .where(OnboardingSessionRow.subject_key == subject_key)
            .order_by(OnboardingSessionRow.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return self._to_domain(row) if row else None

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
        existing = await self._get_active_row(subject_key)
        if existing:
            return self._to_domain(existing)

        now = datetime.now(timezone.utc)
        row = OnboardingSessionRow(
            subject_key=subject_key,
            channel=Channel(channel).value,
            language=language,
            plan=plan,
            current_step=current_step or "name",
            answers=dict(answers or {}),
            status=SessionStatus.IN_PROGRESS.value,
            provisioning={},
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another worker created the active session concurrently (partial unique index)
            await self.db.rollback()
            existing = await self._get_active_row(subject_key)
            if existing:
                return self._to_domain(existing)
            raise
        await self.db.refresh(row)
        return self._to_domain(row)

    async def update_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any]
    ) -> OnboardingSession:
        changes = coerce_patch(patch)
        row = await self._lock_row(session_id)
        current = {"answers": row.answers, "status": row.status, "provisioning": row.provisioning}
        try:
            values = _column_values(apply_patch(current, changes))
        except SessionUpdateError:
            await self.db.rollback()
            raise
        for k, v in values.items():
            setattr(row, k, v)
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return self._to_domain(row)

    async def complete_session(
        self, session_id: UUID, patch: SessionPatch | Mapping[str, Any] | None = None
    ) -> bool:
        """Move the session to ``completed`` iff it is still in progress.

        Returns False when another writer completed it first.
        """
        changes = coerce_patch(patch)
        changes["status"] = SessionStatus.COMPLETED
        row = await self._lock_row(session_id)
        if row.status == SessionStatus.COMPLETED.value:
            await self.db.rollback()
            return False

        current = {"answers": row.answers, "status": row.status, "provisioning": row.provisioning}
        values = _column_values(apply_patch(current, changes))
        stmt = (
            update(OnboardingSessionRow)
            .where(
                OnboardingSessionRow.id == session_id,
                OnboardingSessionRow.status == SessionStatus.IN_PROGRESS.value,
            )
            .values(**values)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount == 1

    async def list_stale(self, idle_since: datetime) -> list[OnboardingSession]:
        stmt = (
            select(OnboardingSessionRow)
            .where(
                OnboardingSessionRow.status == SessionStatus.IN_PROGRESS.value,
                OnboardingSessionRow.updated_at < idle_since,
            )
            .order_by(OnboardingSessionRow.updated_at.asc())
        )
        result = await self.db.execute(stmt)
        return [self._to_domain(r) for r in result.scalars().all()]
