# onboard_bot/domain/services/dialogue_engine.py
"""
One conversational turn of the onboarding dialogue.

The next state is decided jointly by the Step Table and the extractor's
(untrusted) structured output:

1. Build the extraction request and call the gateway under a timeout.
2. Parse the output strictly. Any failure (timeout, transport error,
   unusable JSON) is a soft failure: the session is not touched and a
   fixed clarification/apology is returned.
3. Merge extracted values into ``answers`` and resolve ``next_step``.
4. Persist. On ``complete`` the session is moved to ``completed`` through
   the conditional transition, and only the caller that wins it hands the
   session to the Provisioning Orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from onboard_bot.domain.collaborators import ClientDirectory, ExtractionGateway, ExtractionGatewayError
from onboard_bot.domain.i18n import t
from onboard_bot.domain.models.session import OnboardingSession, SessionStatus
from onboard_bot.domain.services.extraction import (
    ExtractionParseError,
    build_system_prompt,
    clean_extracted,
    parse_extraction,
)
from onboard_bot.domain.services.onboarding_messages import build_next_steps
from onboard_bot.domain.services.provisioning import ProvisioningOrchestrator, ProvisioningResult
from onboard_bot.domain.session_store import SessionStore
from onboard_bot.domain.steps import COMPLETE, CONFIRM_DETAILS, DEFAULT_STEP_TABLE, StepTable

logger = logging.getLogger("dialogue_engine")

SendInterim = Callable[[str], Awaitable[None]]


@dataclass
class TurnResult:
    replies: list[str]
    session: OnboardingSession
    path: str = "continue"  # continue | confirm_exit | clarify | hiccup | complete | already_completed
    provisioning: Optional[ProvisioningResult] = None
    extracted: dict[str, str] = field(default_factory=dict)

    @property
    def mutated(self) -> bool:
        return self.path not in ("clarify", "hiccup")


class DialogueEngine:
    def __init__(
        self,
        store: SessionStore,
        gateway: ExtractionGateway,
        orchestrator: ProvisioningOrchestrator,
        *,
        table: StepTable = DEFAULT_STEP_TABLE,
        directory: ClientDirectory | None = None,
        extraction_timeout: float = 45,
        agent_name: str = "Sofia",
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.orchestrator = orchestrator
        self.table = table
        self.directory = directory
        self.extraction_timeout = extraction_timeout
        self.agent_name = agent_name

    async def handle_turn(
        self,
        session: OnboardingSession,
        text: str,
        history: Sequence[dict[str, str]] = (),
        send_interim: SendInterim | None = None,
    ) -> TurnResult:
        """Run one turn for *session* and return the reply segments to send, in order."""
        lang = session.language
        if session.is_completed:
            return TurnResult([t("ALREADY_ONBOARDED", lang)], session, path="already_completed")

        current = session.current_step
        prompt = build_system_prompt(
            session,
            self.table,
            contact_name=(session.answers or {}).get("name"),
            agent_name=self.agent_name,
        )

        # -- extraction (soft failures leave the session untouched) --------
        try:
            raw = await asyncio.wait_for(
                self.gateway.extract(prompt, list(history), text),
                timeout=self.extraction_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Extraction timed out after %ss for %s at %s",
                self.extraction_timeout, session.subject_key, current,
            )
            return TurnResult([t("CLARIFY", lang)], session, path="clarify")
        except ExtractionGatewayError as exc:
            logger.warning("Extraction gateway failed for %s: %s", session.subject_key, exc)
            return TurnResult([t("HICCUP", lang)], session, path="hiccup")
        except Exception:
            logger.error("Extraction failed for %s at %s", session.subject_key, current, exc_info=True)
            return TurnResult([t("HICCUP", lang)], session, path="hiccup")

        try:
            extraction = parse_extraction(raw, self.table)
        except ExtractionParseError as exc:
            logger.warning(
                "Unusable extractor output for %s at %s: %s",
                session.subject_key, current, exc,
            )
            return TurnResult([t("CLARIFY", lang)], session, path="clarify")

        # -- merge + transition --------------------------------------------
        extracted = clean_extracted(extraction.extracted, self.table)
        next_step = self.table.next_step(current, extraction.requested_step)
        answers = {**(session.answers or {}), **extracted}

        logger.info(
            "Turn %s: %s -> %s (extracted=%s)",
            session.subject_key, current, next_step, sorted(extracted),
        )

        if "name" in extracted:
            await self._track_contact(session, extracted["name"])

        if next_step == COMPLETE:
            return await self._complete(session, answers, extracted, send_interim)

        try:
            updated = await self.store.update_session(
                session.id, {"answers": extracted, "current_step": next_step}
            )
        except Exception:
            logger.error("Could not persist turn for %s at %s", session.subject_key, current, exc_info=True)
            return TurnResult([t("HICCUP", lang)], session, path="hiccup")

        if current == CONFIRM_DETAILS and next_step != CONFIRM_DETAILS:
            return await self._leave_confirmation(updated, extraction.reply, extracted)

        reply = extraction.reply or t("CONTINUE", lang)
        return TurnResult([reply], updated, path="continue", extracted=extracted)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    async def _complete(
        self,
        session: OnboardingSession,
        answers: dict[str, str],
        extracted: dict[str, str],
        send_interim: SendInterim | None,
    ) -> TurnResult:
        lang = session.language
        try:
            won = await self.store.complete_session(
                session.id, {"answers": extracted, "current_step": COMPLETE}
            )
        except Exception:
            logger.error("Could not complete session %s", session.id, exc_info=True)
            return TurnResult([t("HICCUP", lang)], session, path="hiccup")
        completed = session.model_copy(
            update={"answers": answers, "current_step": COMPLETE, "status": SessionStatus.COMPLETED}
        )
        if not won:
            logger.info("Session %s was already completed, skipping provisioning", session.id)
            return TurnResult(
                [t("ALREADY_ONBOARDED", lang)], completed, path="already_completed", extracted=extracted
            )

        replies: list[str] = []
        notice = t("WORKING_ON_IT", lang)
        if send_interim is not None:
            try:
                await send_interim(notice)
            except Exception:
                logger.warning("Interim notice failed for %s", session.subject_key, exc_info=True)
        else:
            replies.append(notice)

        result = await self.orchestrator.finalize(completed, answers)
        completed = completed.model_copy(
            update={
                "client_id": result.client_id or completed.client_id,
                "invite_id": result.invite_id or completed.invite_id,
                "invite_url": result.invite_url or completed.invite_url,
                "drive_folder_url": result.drive_folder_url or completed.drive_folder_url,
                "provisioning": {**completed.provisioning, **result.ledger()},
            }
        )
        replies.append(result.message)
        return TurnResult(replies, completed, path="complete", provisioning=result, extracted=extracted)

    async def _leave_confirmation(
        self, session: OnboardingSession, reply: str, extracted: dict[str, str]
    ) -> TurnResult:
        """Client confirmed their signup details: send access request and next steps."""
        lang = session.language
        if not session.invite_url:
            invitation = await self.orchestrator.create_early_invitation(session)
            if invitation is not None:
                invite = {
                    "invite_id": invitation.invite_id,
                    "invite_url": invitation.invite_url,
                }
                try:
                    session = await self.store.update_session(
                        session.id,
                        {**invite, "provisioning": {"invite_platforms": list(invitation.platforms)}},
                    )
                except Exception:
                    logger.warning("Could not store early invitation for %s", session.subject_key, exc_info=True)
                    session = session.model_copy(update=invite)

        next_steps = build_next_steps(
            session.answers,
            plan=session.plan,
            invite_url=session.invite_url,
            language=lang,
            channel=session.channel.value,
        )
        return TurnResult(
            [reply or t("CONFIRMED", lang), next_steps], session, path="confirm_exit", extracted=extracted
        )

    async def _track_contact(self, session: OnboardingSession, name: str) -> None:
        if self.directory is None:
            return
        try:
            await self.directory.upsert_contact(
                session.subject_key, name=name, channel=session.channel.value
            )
        except Exception:
            logger.warning("Contact upsert failed for %s", session.subject_key, exc_info=True)
