# onboard_bot/domain/services/inbound_service.py
"""
Entry points for the messaging webhooks and the operator API.

Every operation on a subject runs under that subject's lock, so
load → turn → persist → reply is serialized per subject key while
different subjects proceed concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from onboard_bot.domain.collaborators import ClientDirectory, ConversationLog, Messenger
from onboard_bot.domain.i18n import normalize_lang, t
from onboard_bot.domain.models.session import Channel, OnboardingSession
from onboard_bot.domain.services.dialogue_engine import DialogueEngine, TurnResult
from onboard_bot.domain.services.onboarding_messages import build_confirm_welcome, build_welcome
from onboard_bot.domain.session_store import SessionStore
from onboard_bot.domain.steps import CONFIRM_DETAILS, DEFAULT_STEP_TABLE, StepTable

logger = logging.getLogger("inbound_service")

USER = "user"
ASSISTANT = "assistant"


class SubjectLocks(Protocol):
    def hold(self, subject_key: str) -> Any: ...


@dataclass
class InitiateResult:
    session: OnboardingSession
    created: bool
    welcome: Optional[str] = None


@dataclass
class InboundResult:
    replies: list[str] = field(default_factory=list)
    session: Optional[OnboardingSession] = None
    turn: Optional[TurnResult] = None


class InboundService:
    def __init__(
        self,
        store: SessionStore,
        engine: DialogueEngine,
        history: ConversationLog,
        messenger: Messenger,
        locks: SubjectLocks,
        *,
        directory: ClientDirectory | None = None,
        table: StepTable = DEFAULT_STEP_TABLE,
        history_limit: int = 40,
        default_language: str = "en",
        agent_name: str = "Sofia",
    ) -> None:
        self.store = store
        self.engine = engine
        self.history = history
        self.messenger = messenger
        self.locks = locks
        self.directory = directory
        self.table = table
        self.history_limit = history_limit
        self.default_language = default_language
        self.agent_name = agent_name

    async def handle_inbound_message(
        self,
        subject_key: str,
        text: str,
        channel: Channel | str = Channel.WHATSAPP,
        language: str | None = None,
    ) -> InboundResult:
        """Process one inbound message and deliver every reply segment in order."""
        channel = Channel(channel)
        text = (text or "").strip()
        if not text:
            return InboundResult()

        async with self.locks.hold(subject_key):
            session = await self.store.get_active_session(subject_key)
            if session is None:
                latest = await self.store.get_latest_session(subject_key)
                if latest is not None and latest.is_completed:
                    reply = t("ALREADY_ONBOARDED", latest.language)
                    await self._deliver(subject_key, reply, channel)
                    return InboundResult([reply], latest)
                session = await self.store.create_session(
                    subject_key,
                    channel,
                    language=normalize_lang(language or self.default_language),
                    current_step=self.table.first_key,
                )
                logger.info("New onboarding session %s for %s", session.id, subject_key)

            history = await self.history.recent(subject_key, self.history_limit)
            await self._log(subject_key, USER, text, channel)

            async def send_interim(notice: str) -> None:
                await self._deliver(subject_key, notice, channel)

            turn = await self.engine.handle_turn(session, text, history, send_interim=send_interim)
            for reply in turn.replies:
                await self._deliver(subject_key, reply, channel)

            return InboundResult(list(turn.replies), turn.session, turn)

    async def initiate_onboarding(
        self,
        subject_key: str,
        channel: Channel | str = Channel.WHATSAPP,
        *,
        language: str | None = None,
        prefill: Mapping[str, Any] | None = None,
        plan: str = "smb",
    ) -> InitiateResult:
        """Open a session proactively (e.g. after a website signup) and send the welcome.

        With signup details beyond a name the session starts at the
        confirmation step; otherwise it starts at the first slot.
        """
        channel = Channel(channel)
        lang = normalize_lang(language or self.default_language)

        async with self.locks.hold(subject_key):
            existing = await self.store.get_active_session(subject_key)
            if existing is not None:
                logger.info("Onboarding already active for %s (session %s)", subject_key, existing.id)
                return InitiateResult(existing, created=False)

            answers = self._clean_prefill(prefill)
            if any(k != "name" for k in answers):
                step = CONFIRM_DETAILS
                welcome = build_confirm_welcome(
                    answers, plan=plan, language=lang, channel=channel.value, agent_name=self.agent_name
                )
            else:
                step = self.table.first_key
                welcome = build_welcome(lang, channel.value, agent_name=self.agent_name)

            session = await self.store.create_session(
                subject_key,
                channel,
                language=lang,
                plan=(plan or "smb").lower(),
                current_step=step,
                answers=answers,
            )
            logger.info("Onboarding initiated for %s at %s (session %s)", subject_key, step, session.id)

            if answers.get("name") and self.directory is not None:
                try:
                    await self.directory.upsert_contact(
                        subject_key, name=answers["name"], channel=channel.value
                    )
                except Exception:
                    logger.warning("Contact upsert failed for %s", subject_key, exc_info=True)

            await self._deliver(subject_key, welcome, channel)
            return InitiateResult(session, created=True, welcome=welcome)

    # ------------------------------------------------------------------

    def _clean_prefill(self, prefill: Mapping[str, Any] | None) -> dict[str, str]:
        answers: dict[str, str] = {}
        for key, value in (prefill or {}).items():
            if value is None or key not in self.table.answer_keys:
                continue
            text = str(value).strip()
            if text:
                answers[key] = text
        return answers

    async def _deliver(self, subject_key: str, text: str, channel: Channel) -> None:
        await self._log(subject_key, ASSISTANT, text, channel)
        try:
            await self.messenger.send(text, subject_key, channel.value)
        except Exception:
            logger.exception("Failed to deliver reply to %s via %s", subject_key, channel.value)

    async def _log(self, subject_key: str, role: str, text: str, channel: Channel) -> None:
        try:
            await self.history.append(subject_key, role, text, channel.value)
        except Exception:
            logger.warning("Could not record %s message for %s", role, subject_key, exc_info=True)
