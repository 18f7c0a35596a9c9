"""
Buyer notification after a lead has been claimed for delivery.

Notification runs only after the atomic claim succeeded; a failure here never
un-claims the lead. The distribution service records the failure in the
delivery result instead.

Email goes out over the same SMTP account as verification codes. Sheets rows
are handed to an injected writer (the Google Sheets client lives outside this
service and is wired in by the deployment). Without one the notifier reports
supports_sheets=False and sheets / both deliveries are refused before the
lead is claimed.
"""

from __future__ import annotations

import smtplib
from email.mime.text import MIMEText
from typing import Callable, List, Optional, Protocol

from domain.client import Client
from domain.lead import Lead
from services.settings import Settings

INJURY_LABELS = {
    "soft_tissue": "Soft Tissue (Sprains / Whiplash)",
    "fracture": "Broken Bone / Fracture",
    "tbi": "Head Injury / TBI",
    "spinal": "Spinal Cord Injury",
    "other": "Other / Multiple",
}

SHEET_HEADERS = [
    "ID", "Name", "Phone", "Carrier", "Injury Type", "Surgery", "Hospitalized",
    "In Treatment", "Missed Work", "Lost Wages",
    "Estimate Low", "Estimate High", "Score", "Tier", "Source", "Submitted",
]

SheetWriter = Callable[[str, List[str]], None]


class LeadNotificationError(Exception):
    """Raised when the buyer could not be notified about a delivered lead."""
    pass


class LeadNotifier(Protocol):
    @property
    def supports_sheets(self) -> bool:
        """False when push_to_sheet can never succeed (no sheet writer wired in)."""
        ...

    def send_email(self, client: Client, lead: Lead) -> None:
        ...

    def push_to_sheet(self, client: Client, lead: Lead) -> None:
        ...


def _yes_no(value: object) -> str:
    return "Yes" if value else "No"


def sheet_row(lead: Lead) -> List[str]:
    """One spreadsheet row for `lead`, in SHEET_HEADERS order."""

    answers = lead.answers
    return [
        str(lead.lead_id),
        lead.name or "",
        lead.phone,
        lead.carrier or "",
        INJURY_LABELS.get(lead.injury_type or "", lead.injury_type or ""),
        _yes_no(answers.get("hasSurgery")),
        _yes_no(answers.get("hospitalized")),
        _yes_no(answers.get("stillInTreatment")),
        _yes_no(answers.get("missedWork")),
        str(answers.get("lostWages") or 0),
        str(lead.estimate_low),
        str(lead.estimate_high),
        str(lead.score),
        lead.tier,
        lead.source.value,
        lead.created_at.isoformat(),
    ]


def lead_email_body(lead: Lead) -> str:
    lines = [
        f"New verified lead: {lead.tier} (score {lead.score})",
        "",
        f"Name:     {lead.name or '-'}",
        f"Phone:    {lead.phone}",
        f"Email:    {lead.email or '-'}",
        f"Injury:   {INJURY_LABELS.get(lead.injury_type or '', lead.injury_type or '-')}",
        f"Estimate: ${lead.estimate_low:,} - ${lead.estimate_high:,}",
        f"Source:   {lead.source.value}",
        f"Lead ID:  {lead.lead_id}",
    ]
    return "\n".join(lines)


class SmtpLeadNotifier:
    """LeadNotifier that emails the buyer over SMTP (SSL)."""

    def __init__(self, settings: Settings, sheet_writer: Optional[SheetWriter] = None) -> None:
        self._settings = settings
        self._sheet_writer = sheet_writer

    @property
    def supports_sheets(self) -> bool:
        return self._sheet_writer is not None

    def send_email(self, client: Client, lead: Lead) -> None:
        settings = self._settings
        if not settings.gmail_user or not settings.gmail_app_password:
            raise LeadNotificationError("GMAIL_USER / GMAIL_APP_PASSWORD not configured")

        msg = MIMEText(lead_email_body(lead))
        msg["Subject"] = f"New {lead.tier} lead: {lead.name or lead.phone}"
        msg["From"] = settings.gmail_user
        msg["To"] = client.email

        try:
            with smtplib.SMTP_SSL(
                settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds
            ) as smtp:
                smtp.login(settings.gmail_user, settings.gmail_app_password)
                smtp.send_message(msg)
        except (OSError, smtplib.SMTPException) as e:
            raise LeadNotificationError(f"Lead email failed: {e}") from e

    def push_to_sheet(self, client: Client, lead: Lead) -> None:
        if self._sheet_writer is None:
            raise LeadNotificationError("No Google Sheets writer configured")
        if not client.sheets_id:
            raise LeadNotificationError("Client has no Google Sheet configured")
        self._sheet_writer(client.sheets_id, sheet_row(lead))


__all__ = [
    "SHEET_HEADERS",
    "LeadNotificationError",
    "LeadNotifier",
    "SmtpLeadNotifier",
    "sheet_row",
    "lead_email_body",
]
