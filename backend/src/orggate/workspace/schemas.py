"""Pydantic schemas for the workspace API."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_id: UUID
    organization_name: str
    organization_slug: str
    role: str
    status: str
    is_active: bool


class ActiveWorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_id: UUID
    organization_slug: str
    organization_name: str
    role: str


SwitchMethod = Literal[
    "login_auto",
    "login_selection",
    "switcher",
    "binding_code",
    "channel_default",
    "session_restore",
]


class SetActiveWorkspaceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_id: UUID
    switch_method: SwitchMethod = "switcher"


class WorkspaceDefaults(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_org_id: Optional[UUID] = None
    primary_org_id: Optional[UUID] = None
    whatsapp_default_org_id: Optional[UUID] = None
    email_default_org_id: Optional[UUID] = None


class BindingCodeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_id: UUID
    channel: Optional[Literal["whatsapp", "email"]] = None
    expires_in_minutes: int = Field(15, ge=5, le=60)


class BindingCodeResponse(BaseModel):
    code: str
    expires_at: datetime
    expires_in_minutes: int
    instructions: str


class BindingCodeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    organization_id: UUID
    channel: Optional[str] = None
    expires_at: datetime
    created_at: datetime


class ChannelMessageRequest(BaseModel):
    """Inbound message forwarded by a channel adapter."""
    identifier: str = Field(..., min_length=1, max_length=320)
    thread_id: Optional[str] = Field(None, max_length=500)
    message: str = Field("", max_length=10_000)


class ChannelMessageResponse(BaseModel):
    """Adapter instructions: reply with response, or process in organization_id."""
    resolved: bool
    handled_command: bool = False
    organization_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    role: Optional[str] = None
    response: Optional[str] = None
