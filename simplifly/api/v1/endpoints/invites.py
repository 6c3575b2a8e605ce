"""
Invite Endpoints Module

Workspaces grow through shareable invite links:

1. The owner generates a link (one active link per workspace, reused until replaced)
2. Anyone with the link can look up which workspace it points to (no login needed)
3. A logged-in user joins through the link, which files a pending join request
4. The owner approves (the user becomes a member) or rejects the request

Links and join requests share the workspace_invites table; a request is an
invite row whose requested_by_id is set.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from simplifly import crud
from simplifly.api import deps
from simplifly.core.config import Settings
from simplifly.core.logger import get_logger
from simplifly.db.session import get_db
from simplifly.models.base import utcnow
from simplifly.models.user import User
from simplifly.models.workspace import (
    InviteStatus,
    Workspace,
    WorkspaceInvite,
    WorkspaceMember,
)
from simplifly.schemas.invite import (
    InviteInfo,
    InviteLink,
    InviteWorkspace,
    JoinRequestRead,
    JoinRequestResult,
    RequestUser,
)

router = APIRouter()
logger = get_logger("simplifly.invites")


def _owned_workspace(db: Session, workspace_id: int, user: User) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    if workspace.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Only workspace owner can manage invites")
    return workspace


def _workspace_info(workspace: Workspace) -> InviteWorkspace:
    return InviteWorkspace(
        id=workspace.id,
        name=workspace.name,
        description=workspace.description,
        owner_id=workspace.owner_id,
    )


def _link_response(invite: WorkspaceInvite, workspace: Workspace, settings: Settings) -> InviteLink:
    return InviteLink(
        invite_token=invite.invite_token,
        invite_link=f"{settings.FRONTEND_URL.rstrip('/')}/join/{invite.invite_token}",
        workspace=_workspace_info(workspace),
    )


def _active_link(db: Session, workspace_id: int):
    return db.exec(
        select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id == workspace_id,
            WorkspaceInvite.status == InviteStatus.pending,
            WorkspaceInvite.requested_by_id.is_(None),
        )
    ).first()


def _find_link(db: Session, token: str) -> WorkspaceInvite:
    """
    Resolve a token to a pending invite link.

    Raises:
        HTTPException 404: Unknown token, or the token belongs to a join request
        HTTPException 400: The link has expired
    """
    invite = db.exec(
        select(WorkspaceInvite).where(
            WorkspaceInvite.invite_token == token,
            WorkspaceInvite.status == InviteStatus.pending,
            WorkspaceInvite.requested_by_id.is_(None),
        )
    ).first()
    if not invite:
        raise HTTPException(status_code=404, detail="Invalid or expired invite link")
    if invite.expires_at is not None and invite.expires_at < utcnow():
        raise HTTPException(status_code=400, detail="Invite link has expired")
    return invite


def _request_reads(db: Session, requests: List[WorkspaceInvite]) -> List[JoinRequestRead]:
    users = crud.get_users_by_ids(db, [r.requested_by_id for r in requests])
    workspaces = {}
    result = []
    for request in requests:
        if request.workspace_id not in workspaces:
            workspaces[request.workspace_id] = db.get(Workspace, request.workspace_id)
        user = users.get(request.requested_by_id)
        result.append(JoinRequestRead(
            id=request.id,
            workspace=_workspace_info(workspaces[request.workspace_id]),
            requested_by=RequestUser(
                id=user.id, name=user.name, username=user.username, email=user.email
            ) if user else None,
            status=request.status,
            created_at=request.created_at,
        ))
    return result


@router.post("/workspace/{workspace_id}/generate", response_model=InviteLink)
def generate_invite_link(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    settings: Settings = Depends(deps.get_settings),
):
    """
    Return the workspace's active invite link, creating one if there is none.
    """
    workspace = _owned_workspace(db, workspace_id, current_user)

    invite = _active_link(db, workspace.id)
    if not invite:
        invite = WorkspaceInvite(workspace_id=workspace.id)
        db.add(invite)
        db.commit()
        db.refresh(invite)
        logger.info("invite_link_created", workspace_id=workspace.id)

    return _link_response(invite, workspace, settings)


@router.get("/workspace/{workspace_id}", response_model=InviteLink)
def read_invite_link(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
    settings: Settings = Depends(deps.get_settings),
):
    workspace = _owned_workspace(db, workspace_id, current_user)
    invite = _active_link(db, workspace.id)
    if not invite:
        return InviteLink()
    return _link_response(invite, workspace, settings)


@router.get("/token/{token}", response_model=InviteInfo)
def read_invite_by_token(token: str, db: Session = Depends(get_db)):
    """
    Public lookup used by the join page before the visitor logs in.
    """
    invite = _find_link(db, token)
    workspace = db.get(Workspace, invite.workspace_id)
    return InviteInfo(invite_token=invite.invite_token, workspace=_workspace_info(workspace))


@router.post("/join/{token}", response_model=JoinRequestResult, status_code=status.HTTP_201_CREATED)
def join_workspace(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    File a join request for the workspace behind an invite link.

    Raises:
        HTTPException 400: Link expired, already a member, or a request is already pending
        HTTPException 404: Invalid link
    """
    invite = _find_link(db, token)
    workspace = db.get(Workspace, invite.workspace_id)

    if deps.has_workspace_access(db, workspace, current_user):
        raise HTTPException(status_code=400, detail="You are already a member of this workspace")

    existing = db.exec(
        select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id == workspace.id,
            WorkspaceInvite.requested_by_id == current_user.id,
            WorkspaceInvite.status == InviteStatus.pending,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="You have already requested to join this workspace")

    # Requests get their own token so link tokens stay unique
    join_request = WorkspaceInvite(workspace_id=workspace.id, requested_by_id=current_user.id)
    db.add(join_request)
    db.commit()
    db.refresh(join_request)

    logger.info("join_requested", workspace_id=workspace.id, user_id=current_user.id)
    return JoinRequestResult(
        message="Join request sent successfully",
        request=_request_reads(db, [join_request])[0],
    )


@router.get("/requests", response_model=List[JoinRequestRead])
def list_join_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Pending join requests across every workspace the user owns, newest first."""
    owned_ids = select(Workspace.id).where(Workspace.owner_id == current_user.id)
    requests = db.exec(
        select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id.in_(owned_ids),
            WorkspaceInvite.status == InviteStatus.pending,
            WorkspaceInvite.requested_by_id.is_not(None),
        ).order_by(WorkspaceInvite.id.desc())
    ).all()
    return _request_reads(db, requests)


@router.get("/workspace/{workspace_id}/requests", response_model=List[JoinRequestRead])
def list_workspace_join_requests(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    workspace = _owned_workspace(db, workspace_id, current_user)
    requests = db.exec(
        select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id == workspace.id,
            WorkspaceInvite.status == InviteStatus.pending,
            WorkspaceInvite.requested_by_id.is_not(None),
        ).order_by(WorkspaceInvite.id.desc())
    ).all()
    return _request_reads(db, requests)


def _pending_request(db: Session, request_id: int, user: User) -> WorkspaceInvite:
    request = db.get(WorkspaceInvite, request_id)
    if not request or request.requested_by_id is None:
        raise HTTPException(status_code=404, detail="Request not found")
    _owned_workspace(db, request.workspace_id, user)
    if request.status != InviteStatus.pending:
        raise HTTPException(status_code=400, detail="Request is not pending")
    return request


@router.post("/requests/{request_id}/approve", response_model=JoinRequestResult)
def approve_join_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Approve a pending request; the requester becomes a workspace member."""
    request = _pending_request(db, request_id, current_user)

    if not db.get(WorkspaceMember, (request.workspace_id, request.requested_by_id)):
        db.add(WorkspaceMember(workspace_id=request.workspace_id, user_id=request.requested_by_id))
    request.status = InviteStatus.approved
    db.add(request)
    db.commit()
    db.refresh(request)

    logger.info(
        "join_request_approved",
        workspace_id=request.workspace_id,
        user_id=request.requested_by_id,
    )
    return JoinRequestResult(
        message="Join request approved",
        request=_request_reads(db, [request])[0],
    )


@router.post("/requests/{request_id}/reject", response_model=JoinRequestResult)
def reject_join_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    request = _pending_request(db, request_id, current_user)
    request.status = InviteStatus.rejected
    db.add(request)
    db.commit()
    db.refresh(request)

    logger.info(
        "join_request_rejected",
        workspace_id=request.workspace_id,
        user_id=request.requested_by_id,
    )
    return JoinRequestResult(
        message="Join request rejected",
        request=_request_reads(db, [request])[0],
    )
