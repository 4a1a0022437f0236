# onboard_bot/domain/services/provisioning.py
"""
Best-effort provisioning for a completed onboarding session.

Runs the ordered step registry (:data:`PROVISIONING_STEPS`) against the
external collaborators. Every step is independently caught and timed out,
so a failure never aborts the pipeline; each registered step contributes
exactly one ledger entry, to ``steps`` on success or ``errors`` on failure.

After the steps: back-references are persisted on the session, the
operator digest goes out, one audit record is written, and the
client-facing completion message is assembled from whatever was actually
created.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Sequence
from uuid import UUID

from onboard_bot.domain.collaborators import (
    ClientDirectory,
    ClientProfile,
    ConversationLog,
    DocumentCreator,
    FolderCreator,
    FolderTree,
    Invitation,
    InvitationCreator,
    LinkSharer,
    OperatorNotifier,
    RecordCreator,
)
from onboard_bot.domain.models.session import OnboardingSession, SessionStatus
from onboard_bot.domain.services import audit_service
from onboard_bot.domain.services.intake_document import (
    build_intake_document,
    build_profile_rows,
    build_transcript,
    client_display_name,
)
from onboard_bot.domain.services.onboarding_messages import (
    build_completion_message,
    build_operator_digest,
)
from onboard_bot.domain.session_store import SessionStore

logger = logging.getLogger("provisioning")

# Keyword → platform, matched case-insensitively over channels_have + channels_need
PLATFORM_KEYWORDS: dict[str, tuple[str, ...]] = {
    "facebook": ("facebook", "instagram", "meta"),
    "google": ("google",),
    "tiktok": ("tiktok",),
}
BASELINE_PLATFORMS = ["facebook", "google"]

UPLOAD_FOLDER = "brand_assets"

_BUDGET_RE = re.compile(r"^(\d+(?:\.\d+)?)(k)?")


class ProvisioningStepError(Exception):
    """A provisioning step failed. Recorded in the ledger, never raised to the caller."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.step = step


class DependencyMissingError(ProvisioningStepError):
    """A step needs a resource an earlier step did not produce."""
    pass


@dataclass
class StepError:
    label: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "message": self.message}


@dataclass
class ProvisioningResult:
    client_id: Optional[UUID] = None
    steps: list[str] = field(default_factory=list)
    errors: list[StepError] = field(default_factory=list)

    drive_folder_id: Optional[str] = None
    drive_folder_url: Optional[str] = None
    upload_folder_url: Optional[str] = None
    intake_document_url: Optional[str] = None
    profile_record_url: Optional[str] = None
    conversation_log_url: Optional[str] = None
    invite_id: Optional[str] = None
    invite_url: Optional[str] = None
    invite_platforms: list[str] = field(default_factory=list)

    message: str = ""

    @property
    def result(self) -> str:
        return "success" if not self.errors else "partial"

    def ledger(self) -> dict[str, Any]:
        return {
            "steps": list(self.steps),
            "errors": [e.to_dict() for e in self.errors],
            "result": self.result,
            "invite_platforms": list(self.invite_platforms),
        }


@dataclass
class ProvisioningContext:
    """Mutable state shared by the steps of one finalization run."""
    session: OnboardingSession
    answers: dict[str, str]
    client_name: str
    result: ProvisioningResult
    fallback_folder_id: Optional[str] = None
    folder_tree: Optional[FolderTree] = None

    @property
    def parent_folder_id(self) -> str | None:
        if self.folder_tree and self.folder_tree.root_id:
            return self.folder_tree.root_id
        return self.fallback_folder_id


@dataclass
class StepOutput:
    """What a step produced; applied to the run only when the step finishes in time."""
    label: Optional[str] = None
    result: dict[str, Any] = field(default_factory=dict)
    folder_tree: Optional[FolderTree] = None


@dataclass(frozen=True)
class ProvisioningStep:
    key: str
    label: str          # ledger label on success
    error_label: str    # ledger label on failure
    handler: str        # ProvisioningOrchestrator method name
    independent: bool = False


PROVISIONING_STEPS: tuple[ProvisioningStep, ...] = (
    ProvisioningStep("client_record", "Client record created", "Client record", "_create_client_record"),
    ProvisioningStep("storage_folders", "Drive folder structure created", "Drive folders", "_create_folders"),
    ProvisioningStep("intake_document", "Onboarding intake document created", "Intake document", "_create_intake_document"),
    ProvisioningStep("profile_record", "Client profile spreadsheet created", "Profile sheet", "_create_profile_record"),
    ProvisioningStep("conversation_log", "Conversation log document created", "Conversation log", "_create_conversation_log"),
    ProvisioningStep("access_invitation", "Access invitation created", "Access invitation", "_create_invitation", independent=True),
)


# ---------------------------------------------------------------------------
# Answer mapping helpers
# ---------------------------------------------------------------------------

def detect_platforms(answers: dict[str, str]) -> list[str]:
    """Ad platforms mentioned in the channel answers, or the baseline set."""
    text = f"{answers.get('channels_have') or ''} {answers.get('channels_need') or ''}".lower()
    found = [
        platform
        for platform, keywords in PLATFORM_KEYWORDS.items()
        if any(k in text for k in keywords)
    ]
    return found or list(BASELINE_PLATFORMS)


def parse_budget_to_cents(value: str | None) -> int:
    """'$5,000' → 500000, '5k' → 500000, 'skipped' or garbage → 0."""
    if not value:
        return 0
    cleaned = re.sub(r"[$€£,\s]", "", value).lower()
    match = _BUDGET_RE.match(cleaned)
    if not match:
        return 0
    amount = float(match.group(1))
    if match.group(2):
        amount *= 1000
    return int(round(amount * 100))


def _present(answers: dict[str, str], key: str) -> str | None:
    value = (answers.get(key) or "").strip()
    if not value or value.lower() == "skipped":
        return None
    return value


def _split_list(value: str | None, pattern: str) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in re.split(pattern, value) if part.strip()]


def build_client_profile(answers: dict[str, str], plan: str = "smb") -> ClientProfile:
    """Map onboarding answers onto the client record."""
    return ClientProfile(
        name=client_display_name(answers),
        plan=plan or "smb",
        industry=_present(answers, "business_description"),
        website=_present(answers, "website"),
        description=_present(answers, "business_description"),
        product_service=_present(answers, "product_service"),
        pricing=_present(answers, "pricing"),
        avg_transaction_value=_present(answers, "avg_transaction_value"),
        target_audience=_present(answers, "target_audience"),
        location=_present(answers, "location"),
        competitors=_split_list(_present(answers, "competitors"), r"[,;]"),
        company_size=_present(answers, "company_size"),
        sales_process=_present(answers, "sales_process"),
        sales_cycle=_present(answers, "sales_cycle"),
        channels_have=_present(answers, "channels_have"),
        channels_need=_present(answers, "channels_need"),
        current_campaigns=_present(answers, "current_campaigns"),
        monthly_budget_cents=parse_budget_to_cents(answers.get("monthly_budget")),
        goals=_split_list(_present(answers, "goals"), r"\n"),
        pains=_present(answers, "pains"),
        additional_info=_present(answers, "additional_info"),
    )


def invitation_message(name: str | None) -> str:
    greeting = f"Hi {name}!" if name else "Hi!"
    return (
        f"{greeting} Please click the link below to grant us access to your ad accounts. "
        "It's a secure, one-click process and takes less than 2 minutes!"
    )


# ══════════════════════════════════════════════════════════════════════════
# Orchestrator
# ══════════════════════════════════════════════════════════════════════════

class ProvisioningOrchestrator:
    def __init__(
        self,
        store: SessionStore,
        directory: ClientDirectory,
        folders: FolderCreator,
        sharer: LinkSharer,
        documents: DocumentCreator,
        records: RecordCreator,
        invitations: InvitationCreator,
        history: ConversationLog,
        notifier: OperatorNotifier | None = None,
        *,
        fallback_folder_id: str | None = None,
        step_timeout: float = 60,
        parallel_invite: bool = True,
        transcript_limit: int = 100,
        agent_name: str = "Sofia",
        registry: Sequence[ProvisioningStep] = PROVISIONING_STEPS,
    ) -> None:
        self.store = store
        self.directory = directory
        self.folders = folders
        self.sharer = sharer
        self.documents = documents
        self.records = records
        self.invitations = invitations
        self.history = history
        self.notifier = notifier
        self.fallback_folder_id = fallback_folder_id
        self.step_timeout = step_timeout
        self.parallel_invite = parallel_invite
        self.transcript_limit = transcript_limit
        self.agent_name = agent_name
        self.registry = tuple(registry)

    async def finalize(
        self, session: OnboardingSession, answers: dict[str, str] | None = None
    ) -> ProvisioningResult:
        """Run every registered step once, then persist, notify, audit and build the message.

        The caller guarantees this runs once per session (the conditional
        ``complete_session`` transition).
        """
        answers = dict(session.answers if answers is None else answers)
        result = ProvisioningResult(client_id=session.client_id)
        ctx = ProvisioningContext(
            session=session,
            answers=answers,
            client_name=client_display_name(answers),
            result=result,
            fallback_folder_id=self.fallback_folder_id,
        )

        logger.info("Provisioning started for %s (%s)", session.subject_key, ctx.client_name)
        outcomes = await self._run_registry(ctx)

        # Ledger in registry order, one entry per step
        for step in self.registry:
            label, error = outcomes[step.key]
            if error is None:
                result.steps.append(label)
            else:
                result.errors.append(StepError(step.error_label, str(error)))

        logger.info(
            "Provisioning finished for %s: result=%s steps=%d errors=%d",
            session.subject_key, result.result, len(result.steps), len(result.errors),
        )

        await self._persist(session, result)

        result.message = build_completion_message(
            answers, result, language=session.language, channel=session.channel.value
        )

        await self._notify_operator(session, answers, result)

        audit_service.log_client_onboarded(
            subject_key=session.subject_key,
            answers=answers,
            steps=result.steps,
            errors=[e.to_dict() for e in result.errors],
            result=result.result,
            client_id=result.client_id,
        )
        return result

    async def create_early_invitation(self, session: OnboardingSession) -> Invitation | None:
        """Best-effort invitation for the baseline platforms, sent when signup details are confirmed."""
        answers = session.answers or {}
        try:
            invitation = await asyncio.wait_for(
                self.invitations.create_invitation(
                    client_display_name(answers),
                    answers.get("email") or "",
                    list(BASELINE_PLATFORMS),
                    invitation_message(answers.get("name")),
                ),
                timeout=self.step_timeout,
            )
        except Exception:
            logger.warning("Early access invitation failed for %s", session.subject_key, exc_info=True)
            return None
        if not invitation.platforms:
            invitation.platforms = list(BASELINE_PLATFORMS)
        logger.info("Early access invitation %s created for %s", invitation.invite_id, session.subject_key)
        return invitation

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _run_registry(
        self, ctx: ProvisioningContext
    ) -> dict[str, tuple[str | None, ProvisioningStepError | None]]:
        outcomes: dict[str, tuple[str | None, ProvisioningStepError | None]] = {}
        concurrent = [s for s in self.registry if s.independent and self.parallel_invite]
        sequential = [s for s in self.registry if s not in concurrent]

        async def run_chain() -> None:
            for step in sequential:
                outcomes[step.key] = await self._run_step(step, ctx)

        if not concurrent:
            await run_chain()
            return outcomes

        results = await asyncio.gather(run_chain(), *(self._run_step(s, ctx) for s in concurrent))
        for step, outcome in zip(concurrent, results[1:]):
            outcomes[step.key] = outcome
        return outcomes

    async def _run_step(
        self, step: ProvisioningStep, ctx: ProvisioningContext
    ) -> tuple[str | None, ProvisioningStepError | None]:
        handler = getattr(self, step.handler)
        try:
            output = await asyncio.wait_for(handler(ctx), timeout=self.step_timeout)
        except ProvisioningStepError as exc:
            exc.step = step.key
            logger.warning("Provisioning step %s skipped: %s", step.key, exc)
            return None, exc
        except asyncio.TimeoutError:
            logger.warning("Provisioning step %s timed out after %ss", step.key, self.step_timeout)
            return None, ProvisioningStepError(f"timed out after {self.step_timeout}s", step=step.key)
        except Exception as exc:
            logger.exception("Provisioning step %s failed", step.key)
            return None, ProvisioningStepError(str(exc) or exc.__class__.__name__, step=step.key)

        # Artifacts become visible only once the step has finished in time
        for name, value in output.result.items():
            setattr(ctx.result, name, value)
        if output.folder_tree is not None:
            ctx.folder_tree = output.folder_tree
        logger.info("Provisioning step %s done", step.key)
        return output.label or step.label, None

    def _require_client_and_folder(self, ctx: ProvisioningContext) -> str:
        if not ctx.result.client_id:
            raise DependencyMissingError("client record was not created")
        parent = ctx.parent_folder_id
        if not parent:
            raise DependencyMissingError("no parent folder available")
        return parent

    async def _share_quietly(self, resource_id: str, role: str) -> bool:
        try:
            return bool(await self.sharer.share(resource_id, role))
        except Exception:
            logger.warning("Sharing %s as %s failed", resource_id, role, exc_info=True)
            return False

    async def _link_client(self, ctx: ProvisioningContext, **fields: Any) -> None:
        if not ctx.result.client_id:
            return
        try:
            await self.directory.update_client(ctx.result.client_id, **fields)
        except Exception:
            logger.warning("Could not link %s to client %s", sorted(fields), ctx.result.client_id, exc_info=True)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _create_client_record(self, ctx: ProvisioningContext) -> StepOutput:
        session = ctx.session
        if session.client_id:
            return StepOutput("Client record already linked", {"client_id": session.client_id})

        profile = build_client_profile(ctx.answers, plan=session.plan)
        client_id = await self.directory.create_client(profile)

        try:
            await self.directory.upsert_contact(
                session.subject_key,
                name=ctx.answers.get("name"),
                client_id=client_id,
                channel=session.channel.value,
            )
        except Exception:
            logger.warning("Contact link failed for %s", session.subject_key, exc_info=True)
        return StepOutput(result={"client_id": client_id})

    async def _create_folders(self, ctx: ProvisioningContext) -> StepOutput:
        tree = await self.folders.create_folder_tree(ctx.client_name, self.fallback_folder_id)
        result: dict[str, Any] = {
            "drive_folder_id": tree.root_id,
            "drive_folder_url": tree.root_url,
        }

        upload_id = tree.subfolders.get(UPLOAD_FOLDER)
        if upload_id and await self._share_quietly(upload_id, "writer"):
            result["upload_folder_url"] = tree.subfolder_urls.get(UPLOAD_FOLDER)
        await self._share_quietly(tree.root_id, "reader")

        await self._link_client(ctx, drive_folder_id=tree.root_id, drive_folder_url=tree.root_url)
        return StepOutput(result=result, folder_tree=tree)

    async def _create_intake_document(self, ctx: ProvisioningContext) -> StepOutput:
        parent = self._require_client_and_folder(ctx)
        content = build_intake_document(ctx.answers, today=date.today(), agent_name=self.agent_name)
        doc = await self.documents.create_document(
            f"{ctx.client_name} - Onboarding Intake", content, parent
        )
        await self._share_quietly(doc.id, "reader")
        return StepOutput(result={"intake_document_url": doc.url})

    async def _create_profile_record(self, ctx: ProvisioningContext) -> StepOutput:
        parent = self._require_client_and_folder(ctx)
        session = ctx.session
        rows = build_profile_rows(
            ctx.answers,
            plan=session.plan,
            client_code=str(ctx.result.client_id)[:8].upper(),
            phone=session.subject_key,
            agent_name=self.agent_name,
        )
        record = await self.records.create_record(
            f"{ctx.client_name} - Client Profile", rows, parent
        )
        await self._share_quietly(record.id, "reader")
        await self._link_client(ctx, profile_record_id=record.id)
        return StepOutput(result={"profile_record_url": record.url})

    async def _create_conversation_log(self, ctx: ProvisioningContext) -> StepOutput:
        parent = self._require_client_and_folder(ctx)
        history = await self.history.recent(ctx.session.subject_key, self.transcript_limit)
        content = build_transcript(
            history,
            client_name=ctx.client_name,
            speaker_name=ctx.answers.get("name"),
            agent_name=self.agent_name,
        )
        doc = await self.documents.create_document(
            f"{ctx.client_name} - Conversation Log", content, parent
        )
        await self._share_quietly(doc.id, "reader")
        await self._link_client(ctx, conversation_log_id=doc.id)
        return StepOutput(result={"conversation_log_url": doc.url})

    async def _create_invitation(self, ctx: ProvisioningContext) -> StepOutput:
        session = ctx.session
        answers = ctx.answers
        platforms = detect_platforms(answers)
        contact = answers.get("email") or ""

        if session.invite_url:
            covered = list((session.provisioning or {}).get("invite_platforms") or BASELINE_PLATFORMS)
            reused = {
                "invite_id": session.invite_id,
                "invite_url": session.invite_url,
                "invite_platforms": covered,
            }

            missing = [p for p in platforms if p not in covered]
            if missing:
                try:
                    extra = await self.invitations.create_invitation(
                        ctx.client_name,
                        contact,
                        missing,
                        f"Hi {answers.get('name') or ''}! We noticed you also use "
                        f"{', '.join(missing)}. Please grant us access to those ad accounts too.",
                    )
                except Exception:
                    logger.warning("Supplemental invitation for %s failed", missing, exc_info=True)
                else:
                    return StepOutput(
                        "Access invitation reused, supplemental invitation created",
                        {
                            "invite_id": extra.invite_id,
                            "invite_url": extra.invite_url,
                            "invite_platforms": covered + missing,
                        },
                    )
            return StepOutput("Access invitation reused", reused)

        invitation = await self.invitations.create_invitation(
            ctx.client_name, contact, platforms, invitation_message(answers.get("name"))
        )
        return StepOutput(
            result={
                "invite_id": invitation.invite_id,
                "invite_url": invitation.invite_url,
                "invite_platforms": list(invitation.platforms or platforms),
            }
        )

    # ------------------------------------------------------------------
    # After the steps
    # ------------------------------------------------------------------

    async def _persist(self, session: OnboardingSession, result: ProvisioningResult) -> None:
        patch: dict[str, Any] = {
            "status": SessionStatus.COMPLETED,
            "provisioning": result.ledger(),
        }
        if result.client_id:
            patch["client_id"] = result.client_id
        if result.drive_folder_url:
            patch["drive_folder_url"] = result.drive_folder_url
        if result.invite_id:
            patch["invite_id"] = result.invite_id
        if result.invite_url:
            patch["invite_url"] = result.invite_url
        try:
            await self.store.update_session(session.id, patch)
        except Exception:
            logger.exception("Could not persist provisioning results for session %s", session.id)

    async def _notify_operator(
        self, session: OnboardingSession, answers: dict[str, str], result: ProvisioningResult
    ) -> None:
        if self.notifier is None:
            return
        digest = build_operator_digest(answers, result, subject_key=session.subject_key)
        try:
            await self.notifier.notify(digest)
        except Exception:
            logger.warning("Failed to notify operator about %s", session.subject_key, exc_info=True)
