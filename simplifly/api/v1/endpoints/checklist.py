"""
Checklist Endpoints Module

Checklist items are lightweight to-do lines on a ticket: a title, an optional
description, a completed flag and a manual sort order. They have no assignee,
hours or status of their own; use subtask tickets for tracked work.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.base import utcnow, utcnow_iso
from simplifly.models.ticket import (
    ChecklistItem,
    ChecklistItemCreate,
    ChecklistItemUpdate,
    HistoryAction,
    TicketHistory,
)
from simplifly.models.user import User

router = APIRouter()


def _get_item(db: Session, item_id: int, user: User) -> ChecklistItem:
    item = db.get(ChecklistItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    # Raises 403 unless the user can reach the owning ticket
    deps.get_accessible_ticket(db, item.ticket_id, user)
    return item


@router.get("/ticket/{ticket_id}", response_model=List[ChecklistItem])
def list_checklist_items(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    statement = select(ChecklistItem).where(
        ChecklistItem.ticket_id == ticket.id
    ).order_by(ChecklistItem.order, ChecklistItem.id)
    return db.exec(statement).all()


@router.post("", response_model=ChecklistItem, status_code=status.HTTP_201_CREATED)
def create_checklist_item(
    item_in: ChecklistItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    ticket = deps.get_accessible_ticket(db, item_in.ticket_id, current_user)

    item = ChecklistItem(**item_in.model_dump())
    db.add(item)
    db.add(TicketHistory(
        ticket_id=ticket.id,
        user_id=current_user.id,
        action=HistoryAction.commented,
        description=f'Added checklist item: "{item.title}"',
    ))
    db.commit()
    db.refresh(item)
    return item


@router.put("/{item_id}", response_model=ChecklistItem)
def update_checklist_item(
    item_id: int,
    item_update: ChecklistItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Update a checklist item. completed_at is set when the item is first checked
    and cleared when it is unchecked.
    """
    item = _get_item(db, item_id, current_user)

    changes = item_update.model_dump(exclude_unset=True)
    if changes.get("title"):
        item.title = changes["title"]
    if "description" in changes:
        item.description = changes["description"]
    if changes.get("order") is not None:
        item.order = changes["order"]
    if changes.get("completed") is not None:
        item.completed = changes["completed"]
        if item.completed and item.completed_at is None:
            item.completed_at = utcnow()
        elif not item.completed:
            item.completed_at = None
    item.updated_at = utcnow_iso()

    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}")
def delete_checklist_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    item = _get_item(db, item_id, current_user)
    db.delete(item)
    db.commit()
    return {"message": "Checklist item deleted"}
