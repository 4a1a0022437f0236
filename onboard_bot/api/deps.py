# onboard_bot/api/deps.py
"""
Shared FastAPI dependencies used across route modules.

Admin auth uses the same timing-safe comparison everywhere. The onboarding
services are assembled per request around the request's DB session; the
subject lock registry is process-wide.
"""

import hmac
import logging
import math

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_bot.core.config import settings
from onboard_bot.core.db import get_db
from onboard_bot.domain.services.dialogue_engine import DialogueEngine
from onboard_bot.domain.services.inbound_service import InboundService
from onboard_bot.domain.services.provisioning import PROVISIONING_STEPS, ProvisioningOrchestrator
from onboard_bot.infrastructure.cache.redis_client import get_redis_client
from onboard_bot.infrastructure.cache.subject_locks import LocalSubjectLocks, RedisSubjectLocks
from onboard_bot.infrastructure.db.repositories import (
    ClientRepository,
    MessageRepository,
    SqlSessionRepository,
)
from onboard_bot.infrastructure.external.google_workspace import GoogleDriveClient, GoogleSheetsClient
from onboard_bot.infrastructure.external.leadsie_client import LeadsieClient
from onboard_bot.infrastructure.external.llm_client import OpenAIExtractionGateway
from onboard_bot.infrastructure.external.messenger import OperatorNotifier, get_messenger

logger = logging.getLogger("api.deps")


# ---------------------------------------------------------------------------
# Admin token authentication
# ---------------------------------------------------------------------------

async def require_admin_token(
    x_admin_token: str = Header(None, alias="X-Admin-Token"),
) -> None:
    """Verify the ``X-Admin-Token`` header against ``ADMIN_API_TOKEN``."""
    if not settings.ADMIN_API_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_API_TOKEN is not configured on the server.",
        )

    if x_admin_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Admin-Token header.",
        )

    if not hmac.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        logger.warning("Invalid admin token attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token.",
        )


# ---------------------------------------------------------------------------
# Subject locks (process-wide)
# ---------------------------------------------------------------------------

_subject_locks: LocalSubjectLocks | RedisSubjectLocks | None = None

# Interim notice, persistence, operator digest and reply delivery
LOCK_HEADROOM_SECONDS = 60


def subject_lock_ttl() -> int:
    """Seconds a subject lock must survive: one completion turn at its worst, or the configured floor."""
    turn = (
        settings.EXTRACTION_TIMEOUT_SECONDS
        + len(PROVISIONING_STEPS) * settings.PROVISIONING_STEP_TIMEOUT_SECONDS
        + LOCK_HEADROOM_SECONDS
    )
    return max(settings.SUBJECT_LOCK_TIMEOUT_SECONDS, math.ceil(turn))


def get_subject_locks() -> LocalSubjectLocks | RedisSubjectLocks:
    global _subject_locks
    if _subject_locks is None:
        if settings.USE_REDIS_LOCKS:
            ttl = subject_lock_ttl()
            if ttl > settings.SUBJECT_LOCK_TIMEOUT_SECONDS:
                logger.info("Subject lock TTL raised to %ss to cover a completion turn", ttl)
            _subject_locks = RedisSubjectLocks(
                get_redis_client(),
                lock_timeout=ttl,
                blocking_timeout=ttl,
            )
        else:
            _subject_locks = LocalSubjectLocks()
    return _subject_locks


# ---------------------------------------------------------------------------
# Onboarding services
# ---------------------------------------------------------------------------

def build_inbound_service(db: AsyncSession) -> InboundService:
    store = SqlSessionRepository(db)
    directory = ClientRepository(db)
    history = MessageRepository(db)
    messenger = get_messenger()
    drive = GoogleDriveClient()

    orchestrator = ProvisioningOrchestrator(
        store=store,
        directory=directory,
        folders=drive,
        sharer=drive,
        documents=drive,
        records=GoogleSheetsClient(),
        invitations=LeadsieClient(),
        history=history,
        notifier=OperatorNotifier(messenger),
        fallback_folder_id=settings.GOOGLE_DRIVE_ROOT_FOLDER_ID or None,
        step_timeout=settings.PROVISIONING_STEP_TIMEOUT_SECONDS,
        parallel_invite=settings.PROVISIONING_PARALLEL_INVITE,
        transcript_limit=settings.TRANSCRIPT_LIMIT,
        agent_name=settings.AGENT_NAME,
    )
    engine = DialogueEngine(
        store,
        OpenAIExtractionGateway(),
        orchestrator,
        directory=directory,
        extraction_timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        agent_name=settings.AGENT_NAME,
    )
    return InboundService(
        store,
        engine,
        history,
        messenger,
        get_subject_locks(),
        directory=directory,
        history_limit=settings.HISTORY_LIMIT,
        default_language=settings.DEFAULT_LANGUAGE,
        agent_name=settings.AGENT_NAME,
    )


async def get_inbound_service(db: AsyncSession = Depends(get_db)) -> InboundService:
    return build_inbound_service(db)


async def get_session_store(db: AsyncSession = Depends(get_db)) -> SqlSessionRepository:
    return SqlSessionRepository(db)
