"""SQLAlchemy models for the tenant resolution engine"""

from .base import Base
from .org import Org, OrgStatus
from .user import User
from .membership import Membership, MembershipStatus
from .security_policy import SecurityPolicy, DEFAULT_ALLOWED_CHANNELS
from .capability import Capability, OrgCapability
from .approval_request import ApprovalRequest
from .binding_code import WorkspaceBindingCode
from .conversation_session import ConversationSession
from .workspace_preferences import UserWorkspacePreferences
from .channel_identity import ChannelIdentity
from .resources import Project, Document, Asset, ViewScope, DataRoom
from .audit_log import AuditLog

__all__ = [
    "Base",
    "Org",
    "OrgStatus",
    "User",
    "Membership",
    "MembershipStatus",
    "SecurityPolicy",
    "DEFAULT_ALLOWED_CHANNELS",
    "Capability",
    "OrgCapability",
    "ApprovalRequest",
    "WorkspaceBindingCode",
    "ConversationSession",
    "UserWorkspacePreferences",
    "ChannelIdentity",
    "Project",
    "Document",
    "Asset",
    "ViewScope",
    "DataRoom",
    "AuditLog",
]
