"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Verification Models
# ============================================================================

class IssueCodeRequest(BaseModel):
    """Request a verification code for a phone number."""
    destination: str = Field(..., description="Phone number, any formatting")
    channel: str = Field(..., description="Carrier gateway domain, MULTI_BLAST or SMS_BLAST")
    name: Optional[str] = Field(None, description="First name used in the message")

    class Config:
        json_schema_extra = {
            "example": {
                "destination": "(555) 123-4567",
                "channel": "vtext.com",
                "name": "Dana"
            }
        }


class IssueCodeResponse(BaseModel):
    """Response after a code was sent. The code itself is never returned."""
    ok: bool
    expires_at: datetime
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "ok": True,
                "expires_at": "2025-01-01T12:10:00Z",
                "message": "Code sent"
            }
        }


class VerifyCodeRequest(BaseModel):
    """Submit a code, optionally with funnel answers to create a Lead."""
    destination: str
    code: str
    source: Optional[Literal["widget", "quiz"]] = None
    answers: Optional[Dict[str, Any]] = Field(
        None,
        description="Funnel answers (camelCase keys, e.g. injuryType, hasSurgery, lostWages)"
    )
    name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "destination": "5551234567",
                "code": "4242",
                "source": "widget",
                "answers": {"injuryType": "spinal", "hasSurgery": True, "lostWages": 0},
                "name": "Dana"
            }
        }


class EstimateResponse(BaseModel):
    low: int
    high: int


class KeyFactorResponse(BaseModel):
    label: str
    points: int


class VerifyCodeResponse(BaseModel):
    """Response after successful verification."""
    success: bool
    token: str
    lead_id: Optional[UUID] = None
    lead_saved: bool = False
    score: Optional[int] = None
    tier: Optional[str] = None
    estimate: Optional[EstimateResponse] = None
    key_factors: List[KeyFactorResponse] = []
    disqualified: bool = False
    disqualification_reason: Optional[str] = None
    message: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "lead_saved": True,
                "score": 100,
                "tier": "HOT",
                "estimate": {"low": 250000, "high": 1000000},
                "key_factors": [{"label": "Surgery documented", "points": 40}],
                "disqualified": False
            }
        }


class LeadProfileResponse(BaseModel):
    """A lead as shown to the person who submitted it."""
    lead_id: UUID
    phone: str
    source: str
    created_at: datetime
    name: Optional[str] = None
    email: Optional[str] = None
    carrier: Optional[str] = None
    state_code: Optional[str] = None
    injury_type: Optional[str] = None
    answers: Dict[str, Any] = {}


# ============================================================================
# Distribution Models
# ============================================================================

class DeliverRequest(BaseModel):
    """Assign a lead to a buyer."""
    lead_id: UUID
    client_id: UUID
    method: str = Field("email", description="email, sheets or both")

    class Config:
        json_schema_extra = {
            "example": {
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "client_id": "123e4567-e89b-12d3-a456-426614174002",
                "method": "email"
            }
        }


class DeliverResponse(BaseModel):
    """Response after a won delivery claim."""
    success: bool
    delivery_id: UUID
    lead_id: UUID
    client_id: UUID
    method: str
    delivered_at: datetime
    errors: List[str]

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "delivery_id": "123e4567-e89b-12d3-a456-426614174003",
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "client_id": "123e4567-e89b-12d3-a456-426614174002",
                "method": "email",
                "delivered_at": "2025-01-01T12:00:00Z",
                "errors": []
            }
        }


class ReplaceRequest(BaseModel):
    replacement_lead_id: Optional[UUID] = Field(
        None,
        description="Pending lead that stands in for the disputed one"
    )


class DeliveryEventResponse(BaseModel):
    """Audit row appended by a dispute or replacement."""
    delivery_id: UUID
    lead_id: UUID
    client_id: UUID
    method: str
    status: str
    recorded_at: datetime


# ============================================================================
# Stats Models
# ============================================================================

class LeadStatsResponse(BaseModel):
    total: int
    verified: int
    hot: int
    warm: int
    cold: int
    delivered: int
    disputed: int
    recent_7d: int
    avg_score: int
    sms_sent: int
    sms_used: int


class CarrierCountResponse(BaseModel):
    gateway: str
    label: str
    count: int


class HighAttemptCodeResponse(BaseModel):
    code_id: UUID
    phone: str
    channel: str
    attempts: int
    used: bool
    created_at: datetime


class SmsStatsResponse(BaseModel):
    total: int
    verified: int
    expired: int
    pending: int
    conversion_rate: int
    carrier_breakdown: List[CarrierCountResponse]
    recent_failed: List[HighAttemptCodeResponse]


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    message: str
    retry_after_seconds: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error": "rate_limited",
                "message": "Too many codes requested. Please wait before trying again.",
                "retry_after_seconds": 1800
            }
        }
