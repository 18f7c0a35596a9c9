"""
Tests for the SMTP senders in `services/code_delivery.py` and
`services/lead_notifier.py`. smtplib.SMTP_SSL is replaced with a recorder.
"""

from __future__ import annotations

import smtplib
from dataclasses import replace

import pytest

from domain.channel import MULTI_BLAST, MULTI_BLAST_GATEWAYS, resolve_channel
from services import code_delivery, lead_notifier
from services.code_delivery import CodeSendError, GatewayMailer, code_message
from services.lead_notifier import (
    SHEET_HEADERS,
    LeadNotificationError,
    SmtpLeadNotifier,
    lead_email_body,
    sheet_row,
)
from tests.fakes import seed_client, seed_lead

PHONE = "5551234567"


class RecordingSMTP:
    """Stands in for smtplib.SMTP_SSL; rejects mail to addresses in `rejected`."""

    rejected: set = set()
    sent: list = []

    def __init__(self, host, port, timeout=None) -> None:
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        return None

    def login(self, user, password) -> None:
        pass

    def send_message(self, msg) -> None:
        if msg["To"] in self.rejected:
            raise smtplib.SMTPDataError(550, b"mailbox unavailable")
        self.sent.append(msg)


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.rejected = set()
    RecordingSMTP.sent = []
    monkeypatch.setattr(code_delivery.smtplib, "SMTP_SSL", RecordingSMTP)
    monkeypatch.setattr(lead_notifier.smtplib, "SMTP_SSL", RecordingSMTP)
    return RecordingSMTP


@pytest.fixture
def mail_settings(settings):
    return replace(settings, gmail_user="codes@example.com", gmail_app_password="app-password")


def test_gateway_send_mails_single_gateway(smtp, mail_settings) -> None:
    GatewayMailer(mail_settings).send(PHONE, resolve_channel("vtext.com"), "0042", "Dana")

    (msg,) = smtp.sent
    assert msg["To"] == f"{PHONE}@vtext.com"
    assert msg.get_payload() == code_message("0042", "Dana")


def test_blast_succeeds_when_any_gateway_accepts(smtp, mail_settings) -> None:
    smtp.rejected = {f"{PHONE}@{gateway}" for gateway in MULTI_BLAST_GATEWAYS[1:]}

    GatewayMailer(mail_settings).send(PHONE, resolve_channel(MULTI_BLAST), "4242", "Dana")

    assert [msg["To"] for msg in smtp.sent] == [f"{PHONE}@{MULTI_BLAST_GATEWAYS[0]}"]


def test_send_fails_when_no_gateway_accepts(smtp, mail_settings) -> None:
    smtp.rejected = {f"{PHONE}@vtext.com"}

    with pytest.raises(CodeSendError):
        GatewayMailer(mail_settings).send(PHONE, resolve_channel("vtext.com"), "4242", "Dana")


def test_send_requires_smtp_credentials(smtp, settings) -> None:
    with pytest.raises(CodeSendError):
        GatewayMailer(settings).send(PHONE, resolve_channel("vtext.com"), "4242", "Dana")

    assert smtp.sent == []


def test_lead_email_goes_to_buyer(db, smtp, mail_settings, now) -> None:
    lead = seed_lead(db, now, name="Dana", tier="HOT", score=90)
    client = seed_client(db)

    SmtpLeadNotifier(mail_settings).send_email(client, lead)

    (msg,) = smtp.sent
    assert msg["To"] == client.email
    assert "HOT" in msg["Subject"]
    assert msg.get_payload() == lead_email_body(lead)


def test_lead_email_failure_is_notification_error(db, smtp, mail_settings, now) -> None:
    lead = seed_lead(db, now)
    client = seed_client(db)
    smtp.rejected = {client.email}

    with pytest.raises(LeadNotificationError):
        SmtpLeadNotifier(mail_settings).send_email(client, lead)


def test_sheet_push_uses_injected_writer(db, mail_settings, now) -> None:
    lead = seed_lead(db, now, answers={"hasSurgery": True, "lostWages": 1500})
    client = seed_client(db, sheets_id="sheet-123")
    written = []

    SmtpLeadNotifier(mail_settings, sheet_writer=lambda sheet, row: written.append((sheet, row))).push_to_sheet(
        client, lead
    )

    ((sheet, row),) = written
    assert sheet == "sheet-123"
    assert len(row) == len(SHEET_HEADERS)
    assert row == sheet_row(lead)
    assert row[SHEET_HEADERS.index("Surgery")] == "Yes"
    assert row[SHEET_HEADERS.index("Lost Wages")] == "1500"


def test_sheet_push_without_writer_fails(db, mail_settings, now) -> None:
    lead = seed_lead(db, now)
    client = seed_client(db, sheets_id="sheet-123")

    with pytest.raises(LeadNotificationError):
        SmtpLeadNotifier(mail_settings).push_to_sheet(client, lead)


def test_notifier_reports_sheet_support(mail_settings) -> None:
    assert SmtpLeadNotifier(mail_settings).supports_sheets is False
    assert SmtpLeadNotifier(mail_settings, sheet_writer=lambda sheet, row: None).supports_sheets is True
