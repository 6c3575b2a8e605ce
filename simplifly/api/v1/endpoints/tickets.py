"""
Ticket Endpoints Module

This module provides CRUD endpoints for tickets (stories and subtasks) along with the
status and hours shortcuts used by the board. Lifecycle rules live in
services.ticket_lifecycle; each write commits the ticket and its history rows together.
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from simplifly import crud
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.base import utcnow_iso
from simplifly.models.ticket import (
    Ticket,
    TicketCreate,
    TicketHistory,
    TicketHoursUpdate,
    TicketKind,
    TicketRead,
    TicketStatusUpdate,
    TicketUpdate,
)
from simplifly.models.user import User
from simplifly.models.workspace import Workspace
from simplifly.services import periods
from simplifly.services.ticket_lifecycle import (
    LifecycleError,
    apply_update,
    change_hours,
    change_status,
    created_entry,
    rollup_parent_hours,
    validate_assignee,
    validate_parent,
    validate_structure,
)

router = APIRouter()


def _save(db: Session, ticket: Ticket, entries: List[TicketHistory]) -> Ticket:
    ticket.updated_at = utcnow_iso()
    db.add(ticket)
    for entry in entries:
        db.add(entry)
    db.commit()
    db.refresh(ticket)
    return ticket


def _rollup_parent(db: Session, parent_ticket_id: Optional[int], actor_id: str) -> List[TicketHistory]:
    parent = db.get(Ticket, parent_ticket_id) if parent_ticket_id else None
    if parent is None:
        return []
    entries = rollup_parent_hours(parent, crud.get_subtasks(db, parent.id), actor_id)
    if entries:
        parent.updated_at = utcnow_iso()
        db.add(parent)
    return entries


@router.get("/workspace/{workspace_id}", response_model=List[TicketRead])
def list_workspace_tickets(
    workspace_id: int,
    period_date: Optional[datetime] = None,
    period_type: Optional[str] = None,
    backlog: bool = False,
    kind: Optional[TicketKind] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    List a workspace's tickets, newest first.

    Args:
        period_date: Only tickets going live in the period containing this date
        period_type: weekly/monthly/quarterly; defaults to the workspace setting
        backlog: Only tickets without a go-live date
        kind: Only stories or only subtasks
    """
    workspace = deps.get_member_workspace(db, workspace_id, current_user)

    statement = select(Ticket).where(Ticket.workspace_id == workspace.id)
    if kind:
        statement = statement.where(Ticket.kind == kind)
    if backlog:
        statement = statement.where(Ticket.go_live_date.is_(None))
    elif period_date:
        period = periods.get_period_range(period_date, period_type or workspace.period_type)
        statement = statement.where(
            Ticket.go_live_date >= period.start,
            Ticket.go_live_date <= period.end,
        )

    return db.exec(statement.order_by(Ticket.id.desc())).all()


@router.get("/{ticket_id}", response_model=TicketRead)
def read_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    return deps.get_accessible_ticket(db, ticket_id, current_user)


@router.get("/{ticket_id}/subtasks", response_model=List[TicketRead])
def list_subtasks(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Subtask tickets of a story, oldest first."""
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    return crud.get_subtasks(db, ticket.id)


@router.get("/{ticket_id}/history", response_model=List[TicketHistory])
def list_history(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Audit trail of a ticket in the order it was written."""
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    statement = select(TicketHistory).where(
        TicketHistory.ticket_id == ticket.id
    ).order_by(TicketHistory.created_at, TicketHistory.id)
    return db.exec(statement).all()


@router.post("", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
def create_ticket(
    ticket_in: TicketCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Create a story, or a subtask under an existing story.

    Raises:
        HTTPException 400: Structural violations, assignee not a member, bad parent
        HTTPException 404: Workspace or parent ticket not found
    """
    workspace = deps.get_member_workspace(db, ticket_in.workspace_id, current_user)

    try:
        validate_structure(ticket_in.kind, ticket_in.parent_ticket_id)
        validate_assignee(ticket_in.assignee_id, deps.get_member_ids(db, workspace))
    except LifecycleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if ticket_in.parent_ticket_id is not None:
        parent = db.get(Ticket, ticket_in.parent_ticket_id)
        if not parent:
            raise HTTPException(status_code=404, detail="Parent ticket not found")
        try:
            validate_parent(parent, workspace.id)
        except LifecycleError as e:
            raise HTTPException(status_code=400, detail=str(e))

    title = ticket_in.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")

    ticket = Ticket(**ticket_in.model_dump(exclude={"title"}), title=title)
    db.add(ticket)
    db.flush()
    return _save(db, ticket, [created_entry(ticket, current_user.id)])


@router.put("/{ticket_id}", response_model=TicketRead)
def update_ticket(
    ticket_id: int,
    ticket_update: TicketUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Update a ticket. Only provided fields change; kind and parent are fixed at creation.

    Hours are applied before the status, so hours and completion can be sent together.
    """
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    workspace = db.get(Workspace, ticket.workspace_id)
    old_hours = ticket.hours_worked

    try:
        entries = apply_update(ticket, ticket_update, current_user.id, deps.get_member_ids(db, workspace))
    except LifecycleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if ticket.kind == TicketKind.subtask and ticket.hours_worked != old_hours:
        entries += _rollup_parent(db, ticket.parent_ticket_id, current_user.id)

    return _save(db, ticket, entries)


@router.patch("/{ticket_id}/status", response_model=TicketRead)
def update_ticket_status(
    ticket_id: int,
    status_in: TicketStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Move a ticket between board columns.

    Raises:
        HTTPException 400: When completing a ticket that has no hours worked
    """
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    try:
        entries = change_status(ticket, status_in.status, current_user.id)
    except LifecycleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _save(db, ticket, entries)


@router.patch("/{ticket_id}/hours", response_model=TicketRead)
def update_ticket_hours(
    ticket_id: int,
    hours_in: TicketHoursUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Record hours worked. For a subtask, the parent story's hours become the
    sum of its subtasks' hours.
    """
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    try:
        entries = change_hours(ticket, hours_in.hours_worked, current_user.id)
    except LifecycleError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if entries and ticket.kind == TicketKind.subtask:
        entries += _rollup_parent(db, ticket.parent_ticket_id, current_user.id)

    return _save(db, ticket, entries)


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Delete a ticket. Only the workspace owner can delete.

    Deleting a story also deletes its subtasks; comments and checklist items go
    with their ticket, history is kept. Deleting a subtask recalculates the
    parent story's hours.
    """
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")

    workspace = db.get(Workspace, ticket.workspace_id)
    if not workspace or workspace.owner_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only workspace owner can delete tickets")

    parent_ticket_id = ticket.parent_ticket_id if ticket.kind == TicketKind.subtask else None
    deleted_ids = crud.delete_ticket(db, ticket)

    for entry in _rollup_parent(db, parent_ticket_id, current_user.id):
        db.add(entry)
    db.commit()

    return {"message": "Ticket deleted", "deleted_ticket_ids": deleted_ids}
