"""
Workspace Endpoints Module

This module provides CRUD endpoints for workspaces and their membership.
Members (the owner included) can view a workspace; only the owner can change its
settings, manage members or delete it.
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlmodel import Session, select
from simplifly import crud
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.base import utcnow, utcnow_iso
from simplifly.models.ticket import Ticket
from simplifly.models.user import User
from simplifly.models.workspace import (
    Currency,
    PeriodType,
    Workspace,
    WorkspaceCreate,
    WorkspaceMember,
    WorkspaceRead,
    WorkspaceUpdate,
)
from simplifly.services import periods

router = APIRouter()


class MemberAdd(BaseModel):
    user_id: str


@router.get("", response_model=List[WorkspaceRead])
def list_workspaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    List the workspaces the current user owns or belongs to, newest first.
    """
    member_workspace_ids = select(WorkspaceMember.workspace_id).where(
        WorkspaceMember.user_id == current_user.id
    )
    statement = select(Workspace).where(
        (Workspace.owner_id == current_user.id) |
        (Workspace.id.in_(member_workspace_ids))
    ).order_by(Workspace.id.desc())

    workspaces = db.exec(statement).all()
    return [crud.workspace_read(db, workspace) for workspace in workspaces]


@router.get("/{workspace_id}", response_model=WorkspaceRead)
def read_workspace(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Get a workspace the current user owns or belongs to.

    Raises:
        HTTPException 404: If it doesn't exist or the user has no access
    """
    workspace = deps.get_member_workspace(db, workspace_id, current_user)
    return crud.workspace_read(db, workspace)


@router.post("", response_model=WorkspaceRead, status_code=status.HTTP_201_CREATED)
def create_workspace(
    workspace_in: WorkspaceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Create a workspace owned by the current user, who also becomes its first member.
    """
    if not workspace_in.name.strip():
        raise HTTPException(status_code=400, detail="Workspace name is required")

    workspace = Workspace(
        name=workspace_in.name.strip(),
        description=workspace_in.description,
        owner_id=current_user.id,
    )
    db.add(workspace)
    db.flush()
    db.add(WorkspaceMember(workspace_id=workspace.id, user_id=current_user.id))
    db.commit()
    db.refresh(workspace)
    return crud.workspace_read(db, workspace)


@router.put("/{workspace_id}", response_model=WorkspaceRead)
def update_workspace(
    workspace_id: int,
    workspace_update: WorkspaceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Update name, description or settings (period type, currency). Owner only.

    Raises:
        HTTPException 400: If the period type or currency is not supported
        HTTPException 404: If the workspace doesn't exist or the user is not the owner
    """
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)

    settings = workspace_update.settings
    if settings and settings.period_type:
        if settings.period_type not in [p.value for p in PeriodType]:
            raise HTTPException(
                status_code=400,
                detail="Invalid period type. Must be weekly, monthly, or quarterly"
            )
    if settings and settings.currency:
        if settings.currency not in [c.value for c in Currency]:
            raise HTTPException(status_code=400, detail="Invalid currency. Must be USD or INR")

    if workspace_update.name:
        workspace.name = workspace_update.name
    if workspace_update.description is not None:
        workspace.description = workspace_update.description
    if settings and settings.period_type:
        workspace.period_type = PeriodType(settings.period_type)
    if settings and settings.currency:
        workspace.currency = Currency(settings.currency)
    workspace.updated_at = utcnow_iso()

    db.add(workspace)
    db.commit()
    db.refresh(workspace)
    return crud.workspace_read(db, workspace)


@router.post("/{workspace_id}/members", response_model=WorkspaceRead)
def add_member(
    workspace_id: int,
    member_in: MemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Add an existing user to the workspace. Adding a current member is a no-op.
    """
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)

    if not db.get(User, member_in.user_id):
        raise HTTPException(status_code=404, detail="User not found")

    if member_in.user_id not in deps.get_member_ids(db, workspace):
        db.add(WorkspaceMember(workspace_id=workspace.id, user_id=member_in.user_id))
        db.commit()

    return crud.workspace_read(db, workspace)


@router.delete("/{workspace_id}/members/{user_id}", response_model=WorkspaceRead)
def remove_member(
    workspace_id: int,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Remove a member. The owner cannot be removed from their own workspace.
    """
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)

    if user_id == workspace.owner_id:
        raise HTTPException(status_code=400, detail="The workspace owner cannot be removed")

    membership = db.get(WorkspaceMember, (workspace.id, user_id))
    if membership:
        db.delete(membership)
        db.commit()

    return crud.workspace_read(db, workspace)


@router.delete("/{workspace_id}")
def delete_workspace(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Delete a workspace together with its tickets, manual bill items and invites. Owner only.
    """
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    crud.delete_workspace(db, workspace)
    db.commit()
    return {"message": "Workspace deleted"}


@router.get("/{workspace_id}/periods")
def read_periods(
    workspace_id: int,
    year: Optional[int] = None,
    date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Period navigation data for a workspace.

    Returns the months of `year` (default: the reference date's year), the years
    that have tickets with a go-live date, and the workspace-period containing
    the reference date (default: now).
    """
    workspace = deps.get_member_workspace(db, workspace_id, current_user)
    reference = date or utcnow()

    go_live_dates = db.exec(
        select(Ticket.go_live_date).where(
            Ticket.workspace_id == workspace.id,
            Ticket.go_live_date.is_not(None),
        )
    ).all()
    current = periods.get_period_range(reference, workspace.period_type)

    return {
        "period_type": workspace.period_type,
        "current": {"start": current.start, "end": current.end, "label": current.label},
        "months": periods.get_months_in_year(year or reference.year),
        "years": periods.get_years_from_tickets({"go_live_date": d} for d in go_live_dates),
    }
