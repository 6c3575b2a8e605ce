"""
Billing Endpoints Module

This module lists billable work, manages manual bill items, generates bills and
updates ticket payment status in bulk. Every endpoint is restricted to the
workspace owner.

A bill is computed on request and never stored; marking the billed tickets is a
separate call to PATCH /billing/tickets/status.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from simplifly import crud
from simplifly.api import deps
from simplifly.core.logger import get_logger
from simplifly.db.session import get_db
from simplifly.models.base import utcnow_iso
from simplifly.models.billing import BillItem, BillItemCreate, BillItemRead, BillItemUpdate
from simplifly.models.ticket import Ticket, TicketKind, TicketRead, TicketStatus
from simplifly.models.user import User
from simplifly.models.workspace import Workspace
from simplifly.schemas.billing import (
    Bill,
    BillableUserGroup,
    BillUser,
    GenerateBillRequest,
    PaymentStatusBulkUpdate,
)
from simplifly.services.billing import (
    BILLABLE_PAYMENT_STATUSES,
    SETTABLE_PAYMENT_STATUSES,
    BillingError,
    build_bill,
    group_by_assignee,
    select_items,
    select_tickets,
    validate_selection,
)
from simplifly.services.ticket_lifecycle import change_payment_status

router = APIRouter()
logger = get_logger("simplifly.billing")


def _billable_tickets(db: Session, workspace_id: int, user_id: str = None) -> List[Ticket]:
    """Completed stories with hours that are not billed yet, most recently completed first."""
    statement = select(Ticket).where(
        Ticket.workspace_id == workspace_id,
        Ticket.kind == TicketKind.story,
        Ticket.status == TicketStatus.completed,
        Ticket.hours_worked > 0,
        Ticket.payment_status.in_(BILLABLE_PAYMENT_STATUSES),
    )
    if user_id:
        statement = statement.where(Ticket.assignee_id == user_id)
    return db.exec(statement.order_by(Ticket.completed_at.desc(), Ticket.id.desc())).all()


def _check_item_user(db: Session, workspace: Workspace, user_id: str) -> None:
    if user_id and user_id not in deps.get_member_ids(db, workspace):
        raise HTTPException(status_code=400, detail="User is not a member of this workspace")


@router.post("/generate", response_model=Bill)
def generate_bill(
    bill_in: GenerateBillRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Generate a bill from selected tickets and manual items.

    For a single-user bill only that user's tickets and manual items are kept;
    an agency-level bill combines everyone. Selected ids that are unknown, in
    another workspace, or not billable are skipped.

    Raises:
        HTTPException 400: Empty selection, non-positive rate, user not a member,
            or nothing billable left after filtering
        HTTPException 404: Workspace not owned by the caller, or user not found
    """
    try:
        validate_selection(bill_in.ticket_ids, bill_in.manual_item_ids, bill_in.hourly_rate)
    except BillingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    workspace = deps.get_owned_workspace(db, bill_in.workspace_id, current_user)

    billed_user = None
    if not bill_in.is_agency_level:
        if not bill_in.user_id:
            raise HTTPException(status_code=400, detail="Select a user or enable agency-level billing")
        billed_user = db.get(User, bill_in.user_id)
        if not billed_user:
            raise HTTPException(status_code=404, detail="User not found")
        if billed_user.id not in deps.get_member_ids(db, workspace):
            raise HTTPException(status_code=400, detail="User is not a member of this workspace")

    scope_user_id = billed_user.id if billed_user else None

    tickets = []
    if bill_in.ticket_ids:
        candidates = db.exec(select(Ticket).where(Ticket.id.in_(bill_in.ticket_ids))).all()
        tickets = select_tickets(candidates, bill_in.ticket_ids, workspace.id, scope_user_id)

    items = []
    if bill_in.manual_item_ids:
        candidates = db.exec(select(BillItem).where(BillItem.id.in_(bill_in.manual_item_ids))).all()
        items = select_items(candidates, bill_in.manual_item_ids, workspace.id, scope_user_id)

    users = crud.get_users_by_ids(
        db, [t.assignee_id for t in tickets] + [i.user_id for i in items]
    )
    try:
        return build_bill(workspace, tickets, items, bill_in.hourly_rate, users, user=billed_user)
    except BillingError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/workspace/{workspace_id}/user/{user_id}", response_model=List[TicketRead])
def list_user_billable_tickets(
    workspace_id: int,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Billable stories assigned to one user."""
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    return _billable_tickets(db, workspace.id, user_id)


@router.get("/workspace/{workspace_id}/tickets", response_model=List[TicketRead])
def list_billable_tickets(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """All billable stories in the workspace, for agency-level bills."""
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    return _billable_tickets(db, workspace.id)


@router.get("/workspace/{workspace_id}/billable", response_model=List[BillableUserGroup])
def list_billable_by_user(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Billable stories grouped by assignee."""
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    groups = group_by_assignee(_billable_tickets(db, workspace.id))
    users = crud.get_users_by_ids(db, groups.keys())

    result = []
    for user_id, tickets in groups.items():
        user = users.get(user_id)
        if user is None:
            # Assignee account no longer exists
            continue
        result.append(BillableUserGroup(
            user=BillUser(id=user.id, name=user.name, username=user.username),
            tickets=[TicketRead.model_validate(t) for t in tickets],
        ))
    return result


@router.get("/workspace/{workspace_id}/manual-items", response_model=List[BillItemRead])
def list_manual_items(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    statement = select(BillItem).where(BillItem.workspace_id == workspace.id).order_by(BillItem.id.desc())
    return db.exec(statement).all()


@router.post(
    "/workspace/{workspace_id}/manual-item",
    response_model=BillItemRead,
    status_code=status.HTTP_201_CREATED,
)
def create_manual_item(
    workspace_id: int,
    item_in: BillItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Add a manual bill item. Leave user_id empty for an agency-level item.
    """
    workspace = deps.get_owned_workspace(db, workspace_id, current_user)
    _check_item_user(db, workspace, item_in.user_id)

    item = BillItem(**item_in.model_dump(), workspace_id=workspace.id)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def _get_owned_item(db: Session, item_id: int, user: User) -> BillItem:
    item = db.get(BillItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Manual item not found")
    workspace = db.get(Workspace, item.workspace_id)
    if not workspace or workspace.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Only workspace owner can manage manual items")
    return item


@router.put("/manual-item/{item_id}", response_model=BillItemRead)
def update_manual_item(
    item_id: int,
    item_update: BillItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    item = _get_owned_item(db, item_id, current_user)
    changes = item_update.model_dump(exclude_unset=True)

    if "user_id" in changes:
        _check_item_user(db, db.get(Workspace, item.workspace_id), changes["user_id"])

    for key, value in changes.items():
        # title and hours are required columns
        if value is None and key in ("title", "hours"):
            continue
        setattr(item, key, value)
    item.updated_at = utcnow_iso()

    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/manual-item/{item_id}")
def delete_manual_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    item = _get_owned_item(db, item_id, current_user)
    db.delete(item)
    db.commit()
    return {"message": "Manual item deleted"}


@router.patch("/tickets/status", response_model=List[TicketRead])
def update_payment_status(
    update_in: PaymentStatusBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Set the payment status of several tickets at once (e.g. mark a bill as billed).

    Raises:
        HTTPException 400: If the status is not pending-pay or billed
        HTTPException 403: If any ticket belongs to a workspace the caller doesn't own
        HTTPException 404: If none of the tickets exist
    """
    if update_in.payment_status not in SETTABLE_PAYMENT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid payment status")

    tickets = db.exec(select(Ticket).where(Ticket.id.in_(update_in.ticket_ids))).all()
    if not tickets:
        raise HTTPException(status_code=404, detail="No tickets found")

    workspace_ids = {ticket.workspace_id for ticket in tickets}
    owned = db.exec(
        select(Workspace.id).where(
            Workspace.id.in_(workspace_ids),
            Workspace.owner_id == current_user.id,
        )
    ).all()
    if set(owned) != workspace_ids:
        raise HTTPException(status_code=403, detail="You can only update tickets in your own workspaces")

    changed = 0
    for ticket in tickets:
        entries = change_payment_status(ticket, update_in.payment_status, current_user.id)
        if entries:
            changed += 1
            ticket.updated_at = utcnow_iso()
            db.add(ticket)
            for entry in entries:
                db.add(entry)
    db.commit()

    logger.info(
        "payment_status_updated",
        ticket_ids=[t.id for t in tickets],
        payment_status=update_in.payment_status.value,
        changed=changed,
    )
    for ticket in tickets:
        db.refresh(ticket)
    return tickets
