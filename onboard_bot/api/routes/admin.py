# onboard_bot/api/routes/admin.py
"""Operator endpoints: start an onboarding, inspect sessions, read the audit trail."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status

from onboard_bot.api.deps import get_inbound_service, get_session_store, require_admin_token
from onboard_bot.api.routes.schemas_admin import (
    SessionOut,
    StaleSessionsResponse,
    StartOnboardingRequest,
    StartOnboardingResponse,
)
from onboard_bot.core.config import settings
from onboard_bot.domain.services import audit_service
from onboard_bot.domain.services.inbound_service import InboundService

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_token)])


@router.post("/onboarding", response_model=StartOnboardingResponse)
async def start_onboarding(
    payload: StartOnboardingRequest,
    service: InboundService = Depends(get_inbound_service),
):
    result = await service.initiate_onboarding(
        payload.subject_key,
        payload.channel,
        language=payload.language,
        prefill=payload.prefill,
        plan=payload.plan,
    )
    return StartOnboardingResponse(
        created=result.created,
        session=SessionOut.from_session(result.session),
        welcome=result.welcome,
    )


@router.get("/onboarding/stale", response_model=StaleSessionsResponse)
async def list_stale_sessions(
    hours: int = Query(None, ge=1),
    store=Depends(get_session_store),
):
    """In-progress sessions idle for longer than *hours* (read-only)."""
    idle_hours = hours or settings.STALE_SESSION_HOURS
    idle_since = datetime.now(timezone.utc) - timedelta(hours=idle_hours)
    sessions = await store.list_stale(idle_since)
    return StaleSessionsResponse(
        idle_hours=idle_hours,
        count=len(sessions),
        sessions=[SessionOut.from_session(s) for s in sessions],
    )


@router.get("/onboarding/{subject_key}", response_model=SessionOut)
async def get_onboarding_session(subject_key: str, store=Depends(get_session_store)):
    session = await store.get_latest_session(subject_key)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No onboarding session")
    return SessionOut.from_session(session)


@router.get("/audit")
async def recent_audit_entries(
    limit: int = Query(50, ge=1, le=500),
    subject_key: str | None = None,
    result: str | None = Query(None, pattern="^(success|partial)$"),
):
    return {
        "entries": audit_service.get_recent_audit_entries(
            limit=limit, subject_key=subject_key, result=result
        )
    }
