"""
Domain: Client (buyer) accounts.

A client is a law firm that buys verified leads. Counters are monotonically
non-decreasing outside of administrative correction; they are only ever
changed by atomic increments in the storage layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Client:
    """
    Buyer account with delivery destinations and purchase counters.
    """

    client_id: UUID
    name: str
    firm: str
    email: str

    # Google Sheets spreadsheet id used by the "sheets" delivery method
    sheets_id: Optional[str] = None

    balance: int = 0  # prepaid credit, cents
    leads_purchased: int = 0
    leads_delivered: int = 0
    leads_replaced: int = 0

    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        for counter in ("balance", "leads_purchased", "leads_delivered", "leads_replaced"):
            if getattr(self, counter) < 0:
                raise ValueError(f"{counter} must be >= 0")

    def has_sheets(self) -> bool:
        """True if a spreadsheet destination is configured."""
        return bool(self.sheets_id and self.sheets_id.strip())
