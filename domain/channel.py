"""
Domain: OTP delivery channels.

A channel decides how many digits a code has and which carrier
email-to-SMS gateways the code is sent through.

Channels in the allow-list:
- One channel per known carrier gateway (e.g. "vtext.com"): 4-digit code,
  sent to that single gateway.
- MULTI_BLAST ("I'm not sure / Other" carrier): 4-digit code, sent to every
  gateway in MULTI_BLAST_GATEWAYS; succeeds if any gateway accepts it.
- SMS_BLAST (direct SMS verification): 6-digit code, same blast gateways.

Anything else is not a channel and is rejected as invalid input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional, Tuple

# Carrier gateway domain -> display label.
CARRIERS: Dict[str, str] = {
    "tmomail.net": "T-Mobile",
    "vtext.com": "Verizon",
    "txt.att.net": "AT&T",
    "sms.cricketwireless.net": "Cricket",
    "sms.myboostmobile.com": "Boost Mobile",
    "mymetropcs.com": "Metro PCS",
    "msg.fi.google.com": "Google Fi",
    "mailmymobile.net": "Consumer Cellular",
    "vsblmobile.com": "Visible",
    "tellomail.com": "Tello",
    "message.ting.com": "Ting",
    "text.republicwireless.com": "Republic Wireless",
    "messaging.sprintpcs.com": "Sprint",
    "email.uscc.net": "US Cellular",
    "mmst5.tracfone.com": "TracFone",
}

MULTI_BLAST = "MULTI_BLAST"
SMS_BLAST = "SMS_BLAST"

MULTI_BLAST_GATEWAYS: Tuple[str, ...] = (
    "txt.att.net",
    "vtext.com",
    "tmomail.net",
    "sms.cricketwireless.net",
    "sms.myboostmobile.com",
    "mymetropcs.com",
    "msg.fi.google.com",
    "mailmymobile.net",
)

# The email-gateway channels all share one TTL.
CODE_TTL = timedelta(minutes=10)

GATEWAY_CODE_LENGTH = 4
SMS_CODE_LENGTH = 6

ACCEPTED_CODE_LENGTHS = frozenset({GATEWAY_CODE_LENGTH, SMS_CODE_LENGTH})


@dataclass(frozen=True, slots=True)
class CodeChannel:
    """How a code is generated and where it is sent."""

    name: str
    code_length: int
    gateways: Tuple[str, ...]
    ttl: timedelta = CODE_TTL

    @property
    def is_blast(self) -> bool:
        return len(self.gateways) > 1


def gateway_address(phone: str, gateway: str) -> str:
    """Build the email-to-SMS gateway address."""

    return f"{phone}@{gateway}"


def carrier_label(gateway: str) -> str:
    return CARRIERS.get(gateway, gateway)


def resolve_channel(name: Optional[str]) -> Optional[CodeChannel]:
    """
    Resolve a channel selector against the allow-list.

    Returns None for unknown selectors (including None and "").
    """

    if not name:
        return None
    if name in CARRIERS:
        return CodeChannel(name=name, code_length=GATEWAY_CODE_LENGTH, gateways=(name,))
    if name == MULTI_BLAST:
        return CodeChannel(name=name, code_length=GATEWAY_CODE_LENGTH, gateways=MULTI_BLAST_GATEWAYS)
    if name == SMS_BLAST:
        return CodeChannel(name=name, code_length=SMS_CODE_LENGTH, gateways=MULTI_BLAST_GATEWAYS)
    return None


VALID_CHANNELS = frozenset({*CARRIERS, MULTI_BLAST, SMS_BLAST})


__all__ = [
    "CARRIERS",
    "MULTI_BLAST",
    "SMS_BLAST",
    "MULTI_BLAST_GATEWAYS",
    "CODE_TTL",
    "GATEWAY_CODE_LENGTH",
    "SMS_CODE_LENGTH",
    "ACCEPTED_CODE_LENGTHS",
    "VALID_CHANNELS",
    "CodeChannel",
    "gateway_address",
    "carrier_label",
    "resolve_channel",
]
