"""Pydantic schemas for the capabilities API"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..approvals.schemas import TaskSpec


class CapabilityResponse(BaseModel):
    """Capability definition merged with the org's settings and usage"""
    capability_id: str
    name: str
    description: Optional[str] = None
    category: str
    risk_level: str
    requires_approval: bool
    requires_2fa: bool
    requires_admin: bool
    enabled: bool
    approval_policy: str
    daily_limit: Optional[int] = None
    monthly_limit: Optional[int] = None
    current_daily_usage: int
    current_monthly_usage: int


class CapabilityCheckRequest(BaseModel):
    capability_id: str = Field(..., min_length=1, max_length=200)


class CapabilityAccessResponse(BaseModel):
    allowed: bool
    requires_approval: bool
    requires_2fa: bool
    requires_admin: bool
    reason: Optional[str] = None
    daily_usage_remaining: Optional[int] = None
    monthly_usage_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class InvokeRequest(BaseModel):
    """Schema for POST /capabilities/invoke"""
    capability_id: str = Field(..., min_length=1, max_length=200)
    task_spec: TaskSpec
    summary: str = Field("", max_length=2000)
    channel: Optional[str] = None


class InvocationDecisionResponse(BaseModel):
    status: Literal["allowed", "pending_approval", "denied"]
    reason: Optional[str] = None
    access: Optional[CapabilityAccessResponse] = None
    approval_request_id: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UsageRequest(BaseModel):
    capability_id: str = Field(..., min_length=1, max_length=200)


class UsageResponse(BaseModel):
    capability_id: str
    recorded: bool


class OrgCapabilityUpdate(BaseModel):
    """Schema for PATCH /capabilities/{capability_id}. Null limits mean unlimited."""
    enabled: Optional[bool] = None
    approval_policy: Optional[Literal["inherit", "always", "never"]] = None
    daily_limit: Optional[int] = Field(None, ge=0)
    monthly_limit: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(extra='forbid')
