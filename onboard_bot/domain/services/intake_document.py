# onboard_bot/domain/services/intake_document.py
"""
Plain-text and tabular renderings of a client's onboarding answers.

Both the intake document and the profile record walk the same fixed
section order (contact → business → market → competitors → operations →
channels → budget → goals/pains → notes) and print ``N/A`` for any slot
without an answer.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Sequence

NA = "N/A"

# (section title, [(label, answer key), ...])
PROFILE_SECTIONS: list[tuple[str, list[tuple[str, str]]]] = [
    ("CONTACT INFORMATION", [
        ("Name", "name"),
        ("Email", "email"),
    ]),
    ("BUSINESS INFORMATION", [
        ("Business Name", "business_name"),
        ("Website", "website"),
        ("Business Description", "business_description"),
        ("Main Product/Service", "product_service"),
        ("Pricing", "pricing"),
        ("Average Transaction Value", "avg_transaction_value"),
        ("Company Size", "company_size"),
    ]),
    ("TARGET MARKET", [
        ("Target Audience", "target_audience"),
        ("Location", "location"),
    ]),
    ("COMPETITIVE LANDSCAPE", [
        ("Competitors", "competitors"),
    ]),
    ("SALES & OPERATIONS", [
        ("Sales Process", "sales_process"),
        ("Sales Cycle", "sales_cycle"),
    ]),
    ("MARKETING CHANNELS", [
        ("Currently Active", "channels_have"),
        ("Interested In", "channels_need"),
        ("Current Campaigns & Investment", "current_campaigns"),
    ]),
    ("BUDGET", [
        ("Monthly Marketing Budget", "monthly_budget"),
    ]),
    ("GOALS & CHALLENGES", [
        ("Key Goals/Targets", "goals"),
        ("Key Pains/Gaps", "pains"),
    ]),
    ("ADDITIONAL NOTES", [
        ("Additional Info", "additional_info"),
    ]),
]


def answer_or_na(answers: Mapping[str, str], key: str) -> str:
    value = (answers.get(key) or "").strip()
    return value or NA


def client_display_name(answers: Mapping[str, str], default: str = "New Client") -> str:
    return (answers.get("business_name") or answers.get("name") or default).strip() or default


def build_intake_document(
    answers: Mapping[str, str],
    *,
    today: date | None = None,
    agent_name: str = "Sofia",
) -> str:
    """Render the intake document body."""
    today = today or date.today()
    lines = [
        "CLIENT ONBOARDING INTAKE",
        "=" * 24,
        f"Date: {today.isoformat()}",
        "",
    ]
    for title, fields in PROFILE_SECTIONS:
        lines.append(title)
        lines.append("-" * len(title))
        if title == "ADDITIONAL NOTES":
            lines.append(answer_or_na(answers, "additional_info"))
        else:
            lines.extend(f"{label}: {answer_or_na(answers, key)}" for label, key in fields)
        lines.append("")
    lines.append("---")
    lines.append(f"This document was generated automatically by {agent_name} during client onboarding.")
    return "\n".join(lines)


def build_profile_rows(
    answers: Mapping[str, str],
    *,
    plan: str | None = None,
    client_code: str | None = None,
    phone: str | None = None,
    today: date | None = None,
    agent_name: str = "Sofia",
) -> list[list[str]]:
    """Rows for the structured profile record. Row 0 is the header band."""
    today = today or date.today()
    rows: list[list[str]] = [
        ["CLIENT PROFILE", ""],
        ["Generated", today.isoformat()],
        ["Plan", plan or NA],
        ["Client Code", client_code or NA],
        ["", ""],
    ]
    for title, fields in PROFILE_SECTIONS:
        rows.append([title, ""])
        for label, key in fields:
            rows.append([label, answer_or_na(answers, key)])
        if title == "CONTACT INFORMATION":
            rows.append(["Phone", phone or NA])
        rows.append(["", ""])
    rows.append(["---", ""])
    rows.append([f"Generated by {agent_name}", f"Onboarding completed {today.isoformat()}"])
    return rows


def build_transcript(
    history: Iterable[Mapping[str, str]],
    *,
    client_name: str,
    speaker_name: str | None = None,
    agent_name: str = "Sofia",
    today: date | None = None,
) -> str:
    """Seed text for the running conversation log."""
    today = today or date.today()
    header = (
        f"CONVERSATION LOG — {client_name}\n{'=' * 40}\n"
        f"Started: {today.isoformat()}\n"
        "This document is updated live with every conversation.\n\n"
    )
    lines: Sequence[str] = [
        f"[{(speaker_name or 'Client') if m.get('role') == 'user' else agent_name}]: {m.get('text', '')}"
        for m in history
    ]
    if not lines:
        return header
    return header + "--- ONBOARDING CONVERSATION ---\n\n" + "\n\n".join(lines) + "\n"
