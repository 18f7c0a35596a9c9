"""
Code transport: carrier email-to-SMS gateways.

The OTP issuer hands a freshly stored code to a CodeSender. The production
sender mails "<phone>@<gateway>" through an SMTP account (Gmail by default);
carrier gateways turn that mail into a text message.

A send is a single bounded call: the SMTP connection has a timeout and
nothing is retried here. Any failure raises CodeSendError so the issuer can
roll back the stored code; the user retries by asking for a new code.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from typing import List, Protocol

from domain.channel import CodeChannel, gateway_address
from services.settings import Settings

logger = logging.getLogger(__name__)

SENDER_NAME = "Settlement Sam"


class CodeSendError(Exception):
    """Raised when no gateway accepted the code."""
    pass


class CodeSender(Protocol):
    def send(self, destination: str, channel: CodeChannel, code: str, name: str) -> None:
        ...


def code_message(code: str, name: str) -> str:
    return f"Hey {name}, it's {SENDER_NAME}! Your code is {code}. Your case info is safe with me."


class GatewayMailer:
    """
    CodeSender that mails the code to carrier gateways over SMTP (SSL).

    Single-gateway channels fail if that gateway rejects the mail. Blast
    channels mail every gateway and succeed if at least one accepted it,
    since the user's carrier is unknown.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _connect(self) -> smtplib.SMTP_SSL:
        settings = self._settings
        if not settings.gmail_user or not settings.gmail_app_password:
            raise CodeSendError("GMAIL_USER / GMAIL_APP_PASSWORD not configured")

        smtp = smtplib.SMTP_SSL(
            settings.smtp_host,
            settings.smtp_port,
            timeout=settings.smtp_timeout_seconds,
        )
        smtp.login(settings.gmail_user, settings.gmail_app_password)
        return smtp

    def _message(self, to: str, code: str, name: str) -> MIMEText:
        msg = MIMEText(code_message(code, name))
        msg["From"] = f'"{SENDER_NAME}" <{self._settings.gmail_user}>'
        msg["To"] = to
        # Gateways ignore the subject.
        msg["Subject"] = ""
        return msg

    def send(self, destination: str, channel: CodeChannel, code: str, name: str) -> None:
        try:
            smtp = self._connect()
        except (OSError, smtplib.SMTPException) as e:
            raise CodeSendError(f"SMTP connection failed: {e}") from e

        accepted = 0
        failures: List[str] = []
        with smtp:
            for gateway in channel.gateways:
                to = gateway_address(destination, gateway)
                try:
                    smtp.send_message(self._message(to, code, name))
                    accepted += 1
                except (OSError, smtplib.SMTPException) as e:
                    failures.append(f"{gateway}: {e}")

        if channel.is_blast:
            logger.info(
                f"Multi-gateway send: {accepted}/{len(channel.gateways)} gateways accepted",
                extra={"channel": channel.name, "accepted": accepted, "attempted": len(channel.gateways)},
            )

        if accepted == 0:
            raise CodeSendError("; ".join(failures) or "no gateway accepted the message")


__all__ = [
    "CodeSendError",
    "CodeSender",
    "GatewayMailer",
    "code_message",
]
