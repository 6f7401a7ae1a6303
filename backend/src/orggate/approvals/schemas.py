"""Pydantic schemas for the approval workflow.

Stored records (task spec, risk assessment, audit trail) are validated on
read from the JSON columns of approval_request; API request/response models
follow below.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel, TypeAdapter


# ============================================================================
# Task specifications (tagged on task_type)
# ============================================================================

class _TaskBase(BaseModel):
    """Fields shared by every task variant."""
    constraints: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra='forbid')


class QueryTask(_TaskBase):
    task_type: Literal["query"] = "query"
    query: str
    filters: Dict[str, Any] = Field(default_factory=dict)


class DocumentTask(_TaskBase):
    task_type: Literal["document"] = "document"
    action: Literal["upload", "extract", "categorize"]
    document_id: Optional[str] = None
    file_name: Optional[str] = None
    project_id: Optional[str] = None


class OperationTask(_TaskBase):
    task_type: Literal["operation"] = "operation"
    operation: str
    target_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class BrowserTask(_TaskBase):
    task_type: Literal["browser"] = "browser"
    action: Literal["login", "scrape", "submit"]
    url: str
    portal: Optional[str] = None


class PaymentTask(_TaskBase):
    task_type: Literal["payment"] = "payment"
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")
    payee: str
    reference: Optional[str] = None


class CronTask(_TaskBase):
    task_type: Literal["cron"] = "cron"
    job: str
    schedule: str = Field(..., description="Cron expression")


class SkillTask(_TaskBase):
    task_type: Literal["skill"] = "skill"
    skill_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    uses_shell: bool = False


class ChannelTask(_TaskBase):
    task_type: Literal["channel"] = "channel"
    channel: str
    action: str


TaskSpec = Annotated[
    Union[QueryTask, DocumentTask, OperationTask, BrowserTask, PaymentTask, CronTask, SkillTask, ChannelTask],
    Field(discriminator="task_type"),
]

task_spec_adapter = TypeAdapter(TaskSpec)


# ============================================================================
# Risk assessment and audit trail
# ============================================================================

class RiskAssessment(BaseModel):
    level: Literal["low", "medium", "high", "critical"] = "medium"
    factors: List[str] = Field(default_factory=list)
    data_accessed: List[str] = Field(default_factory=list)
    potential_impact: str = ""


class AuditTrailEntry(BaseModel):
    """One immutable step in an approval request's history."""
    action: Literal["created", "approved", "rejected", "expired"]
    actor_id: Optional[str] = None
    timestamp: datetime
    details: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class AuditTrail(RootModel):
    """Append-only ordered audit trail.

    append() returns a new trail; existing entries are never modified.
    """
    root: Tuple[AuditTrailEntry, ...] = ()

    model_config = ConfigDict(frozen=True)

    def append(self, entry: AuditTrailEntry) -> "AuditTrail":
        return AuditTrail(self.root + (entry,))

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index):
        return self.root[index]


# ============================================================================
# Service inputs
# ============================================================================

class ApprovalRequestInput(BaseModel):
    organization_id: UUID
    requested_by: UUID
    capability_id: str
    channel: Optional[str] = None
    task_spec: TaskSpec
    summary: str = ""


# ============================================================================
# API schemas
# ============================================================================

class ApprovalSummaryResponse(BaseModel):
    """Pending approval as listed for triage"""
    request_id: str
    capability_id: str
    summary: str
    requested_by: UUID
    requested_at: datetime
    expires_at: datetime
    risk_level: str


class ApprovalDetailResponse(BaseModel):
    request_id: str
    organization_id: UUID
    capability_id: str
    channel: Optional[str] = None
    status: str
    summary: str
    requested_by: UUID
    requested_at: datetime
    expires_at: datetime
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    task_spec: Dict[str, Any]
    risk_assessment: RiskAssessment
    audit_trail: List[AuditTrailEntry]


class ApprovalRespondRequest(BaseModel):
    """Schema for POST /approvals/{request_id}/respond"""
    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(extra='forbid')


class ApprovalRespondResponse(BaseModel):
    request_id: str
    status: str
    approved_by: UUID
    approved_at: datetime
