"""Pydantic schemas for API request/response."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


# ===== Validate Schemas =====


class ValidateRequest(BaseModel):
    """POST body of the validate endpoint."""

    token: str | None = None
    machine_id: str | None = None


class RedemptionResult(BaseModel):
    """Caller-facing outcome of a redemption attempt."""

    valid: bool
    reason: str | None = None
    consumed_at: datetime | None = None


# ===== Issuance Schemas =====


class IssuedToken(BaseModel):
    """Key handed to the requester (shown only once)."""

    token: str
    owner_identity: str
    scopes: list[str]
    created_at: datetime


class TokenDetail(BaseModel):
    """Audit view of a stored key."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    value: str
    owner_identity: str
    scopes: list[str]
    state: str
    created_at: datetime
    consumed_by: str | None
    consumed_at: datetime | None
