# onboard_bot/domain/services/onboarding_messages.py
"""Client-facing and operator-facing texts assembled from session data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from onboard_bot.domain.formatting import channel_format
from onboard_bot.domain.i18n import CAPABILITIES, DETAIL_LABELS, normalize_lang, t
from onboard_bot.domain.services.intake_document import answer_or_na

if TYPE_CHECKING:
    from onboard_bot.domain.services.provisioning import ProvisioningResult

PLAN_INFO = {
    "smb": {"modules": 3, "daily_messages": 20, "label": "SMB"},
    "medium": {"modules": 6, "daily_messages": 50, "label": "Medium"},
    "enterprise": {"modules": 8, "daily_messages": 200, "label": "Enterprise"},
}

_PLAN_DESC = {
    "en": "{label} ({modules} modules, {daily_messages} messages/day)",
    "es": "{label} ({modules} módulos, {daily_messages} mensajes/día)",
    "pt": "{label} ({modules} módulos, {daily_messages} mensagens/dia)",
}

# Fields shown back to the client for confirmation, in display order
CONFIRMABLE_FIELDS = ("website", "business_name", "business_description", "product_service", "email")

# Operator digest: (label, answer key)
DIGEST_FIELDS = [
    ("Name", "name"),
    ("Business", "business_name"),
    ("Website", "website"),
    ("Industry", "business_description"),
    ("Product/Service", "product_service"),
    ("Pricing", "pricing"),
    ("Avg Transaction", "avg_transaction_value"),
    ("Target Audience", "target_audience"),
    ("Location", "location"),
    ("Competitors", "competitors"),
    ("Company Size", "company_size"),
    ("Sales Process", "sales_process"),
    ("Sales Cycle", "sales_cycle"),
    ("Channels (have)", "channels_have"),
    ("Channels (need)", "channels_need"),
    ("Current Campaigns", "current_campaigns"),
    ("Monthly Budget", "monthly_budget"),
    ("Goals", "goals"),
    ("Pains", "pains"),
    ("Additional Info", "additional_info"),
]


def plan_info(plan: str | None) -> dict:
    return PLAN_INFO.get((plan or "smb").lower(), PLAN_INFO["smb"])


def build_welcome(language: str, channel: str, agent_name: str = "Sofia") -> str:
    """Generic welcome for a client with no signup data: asks for their name."""
    fmt = channel_format(channel)
    return t(
        "WELCOME",
        language,
        hello=fmt.bold(t("WELCOME_HELLO", language)),
        agent=agent_name,
        ask_name=fmt.bold(t("WELCOME_ASK_NAME", language)),
    )


def build_confirm_welcome(
    prefill: Mapping[str, str],
    *,
    plan: str | None,
    language: str,
    channel: str,
    agent_name: str = "Sofia",
) -> str:
    """Welcome for a client who signed up on the website: lists known details for confirmation."""
    fmt = channel_format(channel)
    lang = normalize_lang(language)
    labels = DETAIL_LABELS[lang]
    info = plan_info(plan)

    lines = [f"  • {fmt.bold(labels['plan'] + ':')} {_PLAN_DESC[lang].format(**info)}"]
    for key in CONFIRMABLE_FIELDS:
        value = (prefill.get(key) or "").strip()
        if value:
            lines.append(f"  • {fmt.bold(labels[key] + ':')} {value}")

    name = (prefill.get("name") or "").strip()
    return t(
        "CONFIRM_WELCOME",
        lang,
        name=f", {fmt.bold(name)}" if name else "",
        agent=agent_name,
        details="\n".join(lines),
    )


def _capabilities(plan: str | None, language: str, channel: str) -> str:
    fmt = channel_format(channel)
    caps = CAPABILITIES[normalize_lang(language)]
    plan = (plan or "smb").lower()
    keys = ["strategic", "competitor", "creative"]
    if plan != "smb":
        keys += ["audience", "keyword", "performance"]
    if plan == "enterprise":
        keys += ["automation", "reporting"]
    icons = {
        "strategic": "📊", "competitor": "🔍", "creative": "🎨", "audience": "👥",
        "keyword": "📝", "performance": "📈", "automation": "🔄", "reporting": "📋",
    }
    return "\n".join(f"{icons[k]} {fmt.bold(caps[k][0])} — {caps[k][1]}" for k in keys)


def build_next_steps(
    answers: Mapping[str, str],
    *,
    plan: str | None,
    invite_url: str | None,
    language: str,
    channel: str,
) -> str:
    """Second reply segment sent when the client confirms their signup details."""
    fmt = channel_format(channel)
    name = (answers.get("name") or "").strip()
    parts = [
        t("NEXT_STEPS_INTRO", language, name=f", {name}" if name else ""),
        _capabilities(plan, language, channel),
        t("NEXT_STEPS_NEED", language),
    ]
    if invite_url:
        parts.append(f"\n1️⃣ 🔗 {fmt.bold(t('NEXT_STEPS_ACCESS', language))}")
        parts.append(invite_url)
        parts.append(t("NEXT_STEPS_ACCESS_NOTE", language))
    number = "2️⃣" if invite_url else "1️⃣"
    parts.append(
        f"\n{number} 🎨 {fmt.bold(t('NEXT_STEPS_BRAND', language))} {t('NEXT_STEPS_BRAND_NOTE', language)}"
    )
    parts.append(t("NEXT_STEPS_OUTRO", language))
    return "\n".join(parts)


def build_completion_message(
    answers: Mapping[str, str],
    result: "ProvisioningResult",
    *,
    language: str,
    channel: str,
) -> str:
    """Client-facing completion message. Links appear only for resources that exist."""
    fmt = channel_format(channel)
    name = (answers.get("name") or "").strip() or "there"

    parts = [
        f"🎉 {fmt.bold(t('DONE_HEADLINE', language, name=name))} {t('DONE_INTRO', language)}",
    ]
    if result.client_id:
        parts.append(t("DONE_PROFILE", language))

    if result.drive_folder_url:
        parts.append(f"\n📁 {fmt.bold(t('DONE_DRIVE', language))}")
        parts.append(result.drive_folder_url)
    if result.upload_folder_url:
        parts.append(f"\n🎨 {fmt.bold(t('DONE_UPLOAD', language))}")
        parts.append(result.upload_folder_url)
    if result.drive_folder_url or result.upload_folder_url:
        parts.append(t("DONE_UPLOAD_NOTE", language))

    if result.invite_url:
        parts.append(f"\n🔗 {fmt.bold(t('DONE_ACCESS', language))}")
        parts.append(result.invite_url)
        parts.append(t("DONE_ACCESS_NOTE", language))

    parts.append(t("DONE_OUTRO", language, name=name))
    return "\n".join(parts)


def build_operator_digest(
    answers: Mapping[str, str],
    result: "ProvisioningResult",
    *,
    subject_key: str,
) -> str:
    """Operator-facing summary: every collected field plus the provisioning ledger."""
    lines = ["🎉 *New Client Onboarded via Chat!*", f"*Contact:* {subject_key}", ""]
    lines += [f"*{label}:* {answer_or_na(answers, key)}" for label, key in DIGEST_FIELDS]

    links = []
    if result.drive_folder_url:
        links.append(f"📁 *Drive:* {result.drive_folder_url}")
    if result.profile_record_url:
        links.append(f"📊 *Profile Sheet:* {result.profile_record_url}")
    if result.invite_url:
        links.append(f"🔗 *Access invite:* {result.invite_url}")
    if links:
        lines.append("")
        lines += links

    lines.append("")
    lines.append(f"*Result:* {result.result}")
    if result.steps:
        lines.append("*Done:* " + ", ".join(result.steps))
    if result.errors:
        lines.append("⚠️ *Issues:* " + ", ".join(f"{e.label}: {e.message}" for e in result.errors))
    return "\n".join(lines)
