"""Channel workspace commands and inbound message resolution.

Handles the chat commands a WhatsApp / email user can send:

    bind code 123456 | code 123456   redeem a binding code
    /workspace                       show the bound workspace
    switch workspace                 explain how to rebind

Every reply comes from ChannelResponses. Replies for ambiguous,
unauthorized and unknown senders never contain organization names,
counts or roles.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import AuditAction, log_audit_event
from ..models.channel_identity import ChannelIdentity
from ..observability.logging_config import get_logger
from .binding_codes import use_binding_code
from .resolver import Ambiguous, Resolved, get_thread_session, resolve_workspace_for_channel
from .sessions import ensure_conversation_session

logger = get_logger(__name__)

BIND_CODE_PATTERN = re.compile(r"^(?:bind\s+code\s+|code\s+)(\d{6})$", re.IGNORECASE)
WORKSPACE_COMMAND_PATTERN = re.compile(r"^/workspace$", re.IGNORECASE)
SWITCH_WORKSPACE_PATTERN = re.compile(r"^switch\s+workspace$", re.IGNORECASE)


class ChannelResponses:
    AMBIGUOUS_WORKSPACE = (
        "You have access to multiple workspaces. To continue, please:\n"
        "\n"
        "1. Go to your KIISHA web dashboard\n"
        "2. Select the workspace you want to use\n"
        "3. Click \"Generate Binding Code\"\n"
        "4. Reply here with: bind code XXXXXX\n"
        "\n"
        "This ensures your messages go to the correct workspace."
    )
    NO_WORKSPACE = (
        "This identifier is not linked to a KIISHA account. "
        "Please contact your administrator to get access."
    )
    BINDING_FAILED = "Invalid or expired binding code. Please generate a new code from your web dashboard."
    WORKSPACE_NOT_BOUND = (
        "No workspace is currently bound to this chat. "
        "Please bind a workspace first using a binding code from your web dashboard."
    )
    UNKNOWN_SENDER = "This identifier is not linked to a KIISHA account. Please contact your administrator."

    @staticmethod
    def binding_success(method: str) -> str:
        return (
            f"Workspace bound successfully via {method}. "
            "You can now send messages and they will be processed in this workspace."
        )

    @staticmethod
    def workspace_bound(role: str) -> str:
        return (
            f"You are currently working in a workspace as {role}. "
            "To switch workspaces, generate a new binding code from your web dashboard."
        )


class CommandType:
    BIND_CODE = "bind_code"
    WORKSPACE_STATUS = "workspace_status"
    SWITCH_WORKSPACE = "switch_workspace"
    NONE = "none"


@dataclass
class WorkspaceCommand:
    type: str
    code: Optional[str] = None


@dataclass
class CommandResult:
    handled: bool
    response: Optional[str] = None
    organization_id: Optional[UUID] = None


@dataclass
class IncomingResolution:
    resolved: bool
    user_id: Optional[UUID] = None
    organization_id: Optional[UUID] = None
    role: Optional[str] = None
    response: Optional[str] = None


def parse_workspace_command(text: str) -> WorkspaceCommand:
    trimmed = (text or "").strip()

    match = BIND_CODE_PATTERN.match(trimmed)
    if match:
        return WorkspaceCommand(type=CommandType.BIND_CODE, code=match.group(1))
    if WORKSPACE_COMMAND_PATTERN.match(trimmed):
        return WorkspaceCommand(type=CommandType.WORKSPACE_STATUS)
    if SWITCH_WORKSPACE_PATTERN.match(trimmed):
        return WorkspaceCommand(type=CommandType.SWITCH_WORKSPACE)
    return WorkspaceCommand(type=CommandType.NONE)


def _bind(
    db: Session,
    user_id: UUID,
    channel: str,
    identifier: str,
    thread_id: Optional[str],
    code: str,
) -> CommandResult:
    binding = use_binding_code(db, code, user_id, channel, identifier)
    if binding is None:
        return CommandResult(handled=True, response=ChannelResponses.BINDING_FAILED)

    previous_org_id = None
    if thread_id:
        existing = get_thread_session(db, user_id, channel, thread_id)
        previous_org_id = existing.organization_id if existing else None

    ensure_conversation_session(
        db, user_id, binding.organization_id, channel, identifier=identifier, thread_id=thread_id
    )

    log_audit_event(
        db=db,
        org_id=binding.organization_id,
        action=AuditAction.WORKSPACE_SWITCHED,
        actor_id=user_id,
        entity_type="org",
        entity_id=binding.organization_id,
        metadata={
            "from_org_id": str(previous_org_id) if previous_org_id else None,
            "channel": channel,
            "switch_method": "binding_code",
        },
    )
    return CommandResult(
        handled=True,
        response=ChannelResponses.binding_success("binding code"),
        organization_id=binding.organization_id,
    )


def handle_workspace_command(
    db: Session,
    user_id: UUID,
    channel: str,
    identifier: str,
    thread_id: Optional[str],
    message: str,
    identifier_org_id: Optional[UUID] = None,
) -> CommandResult:
    """Execute a workspace command; handled=False when message is not one.

    Status reports the org a plain message would be routed to, so the
    identifier scope from lookup_channel_identity is honored.
    """
    command = parse_workspace_command(message)

    if command.type == CommandType.BIND_CODE:
        return _bind(db, user_id, channel, identifier, thread_id, command.code)

    if command.type == CommandType.WORKSPACE_STATUS:
        resolution = resolve_workspace_for_channel(db, user_id, channel, thread_id, identifier_org_id)
        if isinstance(resolution, Resolved):
            return CommandResult(
                handled=True,
                response=ChannelResponses.workspace_bound(resolution.role),
                organization_id=resolution.org_id,
            )
        return CommandResult(handled=True, response=ChannelResponses.WORKSPACE_NOT_BOUND)

    if command.type == CommandType.SWITCH_WORKSPACE:
        # Switching always goes through a fresh binding code
        return CommandResult(handled=True, response=ChannelResponses.AMBIGUOUS_WORKSPACE)

    return CommandResult(handled=False)


def lookup_channel_identity(db: Session, channel: str, identifier: str) -> Tuple[Optional[UUID], Optional[UUID]]:
    """Map a channel identifier to (user_id, identifier_org_id).

    Only verified identities count. An identifier verified against exactly
    one org is scoped to it. Identifiers claimed by more than one user are
    treated as unknown.
    """
    rows = db.query(ChannelIdentity).filter(
        ChannelIdentity.channel == channel,
        ChannelIdentity.external_id == identifier,
        ChannelIdentity.verification_status == "verified",
    ).all()

    user_ids = {row.user_id for row in rows}
    if len(user_ids) != 1:
        if len(user_ids) > 1:
            logger.warning(
                "Channel identifier claimed by several users",
                extra={"channel": channel, "reason": "identity_conflict"},
            )
        return None, None

    user_id = user_ids.pop()
    identifier_org_id = rows[0].organization_id if len(rows) == 1 else None
    return user_id, identifier_org_id


def resolve_incoming_message_workspace(
    db: Session,
    channel: str,
    identifier: str,
    thread_id: Optional[str] = None,
) -> IncomingResolution:
    """Resolve the sender and workspace of an inbound channel message."""
    user_id, identifier_org_id = lookup_channel_identity(db, channel, identifier)
    if user_id is None:
        return IncomingResolution(resolved=False, response=ChannelResponses.UNKNOWN_SENDER)

    resolution = resolve_workspace_for_channel(db, user_id, channel, thread_id, identifier_org_id)
    if isinstance(resolution, Resolved):
        return IncomingResolution(
            resolved=True,
            user_id=user_id,
            organization_id=resolution.org_id,
            role=resolution.role,
        )
    if isinstance(resolution, Ambiguous):
        return IncomingResolution(resolved=False, user_id=user_id, response=ChannelResponses.AMBIGUOUS_WORKSPACE)
    return IncomingResolution(resolved=False, user_id=user_id, response=ChannelResponses.NO_WORKSPACE)
