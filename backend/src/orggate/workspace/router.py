"""Workspace API routers.

router: web session workspace selection (bearer-authenticated user, no org
context required, since choosing the org is the point).
channel_router: inbound hook for WhatsApp / email adapters, authenticated
by the shared channel service token.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..audit.service import request_client_info
from ..auth.dependencies import CurrentUser, require_channel_service
from ..database import get_db
from .binding_codes import generate_binding_code, list_binding_codes
from .commands import (
    ChannelResponses,
    handle_workspace_command,
    lookup_channel_identity,
    resolve_incoming_message_workspace,
)
from .schemas import (
    ActiveWorkspaceResponse,
    BindingCodeRequest,
    BindingCodeResponse,
    BindingCodeSummary,
    ChannelMessageRequest,
    ChannelMessageResponse,
    MembershipResponse,
    SetActiveWorkspaceRequest,
    WorkspaceDefaults,
)
from .service import (
    get_active_workspace,
    get_workspace_defaults,
    list_memberships,
    set_active_workspace,
    set_workspace_defaults,
)
from .sessions import ensure_conversation_session

router = APIRouter(prefix="/workspace", tags=["Workspace"])
channel_router = APIRouter(prefix="/channels", tags=["Channels"])


@router.get("/memberships", response_model=List[MembershipResponse])
def get_memberships(user: CurrentUser, db: Session = Depends(get_db)):
    return [MembershipResponse.model_validate(m) for m in list_memberships(db, user)]


@router.get("/active", response_model=Optional[ActiveWorkspaceResponse])
def get_active(user: CurrentUser, db: Session = Depends(get_db)):
    active = get_active_workspace(db, user)
    return ActiveWorkspaceResponse.model_validate(active) if active else None


@router.post("/active", response_model=ActiveWorkspaceResponse)
def set_active(
    body: SetActiveWorkspaceRequest,
    request: Request,
    user: CurrentUser,
    db: Session = Depends(get_db),
):
    """Switch the session's active workspace.

    Every refusal is the same 403 "Access denied".
    """
    ip_address, user_agent = request_client_info(request)
    active = set_active_workspace(
        db,
        user,
        body.organization_id,
        switch_method=body.switch_method,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.commit()
    return ActiveWorkspaceResponse.model_validate(active)


@router.get("/defaults", response_model=WorkspaceDefaults)
def get_defaults(user: CurrentUser, db: Session = Depends(get_db)):
    return WorkspaceDefaults(**get_workspace_defaults(db, user.id))


@router.put("/defaults", response_model=WorkspaceDefaults)
def put_defaults(body: WorkspaceDefaults, user: CurrentUser, db: Session = Depends(get_db)):
    """Update the supplied defaults; an explicit null clears one."""
    defaults = set_workspace_defaults(db, user, body.model_dump(exclude_unset=True))
    db.commit()
    return WorkspaceDefaults(**defaults)


@router.post("/binding-codes", response_model=BindingCodeResponse, status_code=201)
def create_binding_code(body: BindingCodeRequest, user: CurrentUser, db: Session = Depends(get_db)):
    binding = generate_binding_code(
        db,
        user,
        body.organization_id,
        channel=body.channel,
        expires_in_minutes=body.expires_in_minutes,
    )
    db.commit()
    return BindingCodeResponse(
        code=binding.code,
        expires_at=binding.expires_at,
        expires_in_minutes=body.expires_in_minutes,
        instructions=f'Reply with "bind code {binding.code}" to bind this chat to your workspace',
    )


@router.get("/binding-codes", response_model=List[BindingCodeSummary])
def get_binding_codes(user: CurrentUser, db: Session = Depends(get_db)):
    return [BindingCodeSummary.model_validate(c) for c in list_binding_codes(db, user.id)]


@channel_router.post(
    "/{channel}/messages",
    response_model=ChannelMessageResponse,
    dependencies=[Depends(require_channel_service)],
)
def receive_channel_message(
    channel: Literal["whatsapp", "email"],
    body: ChannelMessageRequest,
    db: Session = Depends(get_db),
):
    """Resolve the workspace of an inbound channel message.

    Workspace commands are executed and answered directly. Any other message
    is either resolved to one organization (the adapter then processes it
    there) or answered with a canned response.

    Adapters without thread ids get one conversation per sender identifier.
    """
    thread_id = body.thread_id or body.identifier
    user_id, identifier_org_id = lookup_channel_identity(db, channel, body.identifier)
    if user_id is None:
        return ChannelMessageResponse(resolved=False, response=ChannelResponses.UNKNOWN_SENDER)

    command = handle_workspace_command(
        db, user_id, channel, body.identifier, thread_id, body.message, identifier_org_id
    )
    if command.handled:
        db.commit()
        return ChannelMessageResponse(
            resolved=False,
            handled_command=True,
            response=command.response,
        )

    resolution = resolve_incoming_message_workspace(db, channel, body.identifier, thread_id)
    if not resolution.resolved:
        return ChannelMessageResponse(resolved=False, user_id=resolution.user_id, response=resolution.response)

    ensure_conversation_session(
        db,
        resolution.user_id,
        resolution.organization_id,
        channel,
        identifier=body.identifier,
        thread_id=thread_id,
    )
    db.commit()
    return ChannelMessageResponse(
        resolved=True,
        organization_id=resolution.organization_id,
        user_id=resolution.user_id,
        role=resolution.role,
    )
