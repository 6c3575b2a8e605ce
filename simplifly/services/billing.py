"""Billing aggregation.

Turns a selection of completed stories and manual bill items into an
invoice-shaped summary. Amounts are a flat total_hours * hourly_rate; there are
no per-item rates. Generating a bill has no side effects: marking tickets as
billed is a separate bulk payment-status update.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from simplifly.core.logger import get_logger
from simplifly.models.base import utcnow
from simplifly.models.billing import BillItem
from simplifly.models.ticket import PaymentStatus, Ticket, TicketKind, TicketStatus
from simplifly.models.user import User
from simplifly.models.workspace import Currency, Workspace
from simplifly.schemas.billing import (
    Bill,
    BillSummary,
    BillUser,
    BillWorkspace,
    WorkItem,
)

logger = get_logger("simplifly.billing")

BILLABLE_PAYMENT_STATUSES = (PaymentStatus.pending_pay, PaymentStatus.not_applicable)

# Payment statuses a caller may set in bulk from the billing screen
SETTABLE_PAYMENT_STATUSES = (PaymentStatus.pending_pay, PaymentStatus.billed)


class BillingError(ValueError):
    """Raised when a bill cannot be generated from the given selection."""


def is_billable(ticket: Ticket) -> bool:
    """Only completed stories with hours that have not been billed yet."""
    return (
        ticket.kind == TicketKind.story
        and ticket.status == TicketStatus.completed
        and (ticket.hours_worked or 0) > 0
        and ticket.payment_status in BILLABLE_PAYMENT_STATUSES
    )


def validate_selection(ticket_ids: Sequence[int], manual_item_ids: Sequence[int], hourly_rate: float) -> None:
    if not ticket_ids and not manual_item_ids:
        raise BillingError("Select at least one ticket or manual item to bill")
    if hourly_rate is None or hourly_rate <= 0:
        raise BillingError("Hourly rate must be greater than zero")


def _bill_user(user: Optional[User]) -> Optional[BillUser]:
    if user is None:
        return None
    return BillUser(id=user.id, name=user.name, username=user.username)


def select_tickets(
    tickets: Iterable[Ticket],
    ticket_ids: Sequence[int],
    workspace_id: int,
    user_id: Optional[str] = None,
) -> List[Ticket]:
    """Keep the requested tickets that are billable in this workspace (and for this user)."""
    wanted = set(ticket_ids)
    return [
        ticket for ticket in tickets
        if ticket.id in wanted
        and ticket.workspace_id == workspace_id
        and is_billable(ticket)
        and (user_id is None or ticket.assignee_id == user_id)
    ]


def select_items(
    items: Iterable[BillItem],
    item_ids: Sequence[int],
    workspace_id: int,
    user_id: Optional[str] = None,
) -> List[BillItem]:
    wanted = set(item_ids)
    return [
        item for item in items
        if item.id in wanted
        and item.workspace_id == workspace_id
        and (user_id is None or item.user_id == user_id)
    ]


def build_bill(
    workspace: Workspace,
    tickets: Sequence[Ticket],
    items: Sequence[BillItem],
    hourly_rate: float,
    users: Mapping[str, User],
    user: Optional[User] = None,
    generated_at: Optional[datetime] = None,
) -> Bill:
    """
    Aggregate already-selected tickets and manual items into a Bill.

    Args:
        workspace: Workspace being billed
        tickets: Billable stories
        items: Manual bill items
        hourly_rate: Positive rate applied to the total hours
        users: Users by id, used to label each work item
        user: The billed user, or None for an agency-level bill

    Raises:
        BillingError: If there is nothing to bill
    """
    if not tickets and not items:
        raise BillingError("No valid items found for billing")

    work_items: List[WorkItem] = []
    for ticket in tickets:
        work_items.append(WorkItem(
            id=ticket.id,
            type="ticket",
            title=ticket.title,
            description=ticket.description,
            hours=ticket.hours_worked,
            user=_bill_user(users.get(ticket.assignee_id)),
            go_live_date=ticket.go_live_date,
            completed_at=ticket.completed_at,
        ))
    for item in items:
        work_items.append(WorkItem(
            id=item.id,
            type="manual",
            title=item.title,
            description=item.description,
            hours=item.hours,
            user=_bill_user(users.get(item.user_id)) if item.user_id else None,
        ))

    total_hours = sum(work_item.hours for work_item in work_items)
    total_amount = total_hours * hourly_rate

    logger.info(
        "bill_generated",
        workspace_id=workspace.id,
        is_agency_level=user is None,
        tickets=len(tickets),
        manual_items=len(items),
        total_hours=total_hours,
        total_amount=total_amount,
    )

    return Bill(
        workspace=BillWorkspace(id=workspace.id, name=workspace.name, currency=Currency(workspace.currency).value),
        is_agency_level=user is None,
        user=_bill_user(user),
        hourly_rate=hourly_rate,
        work_items=work_items,
        summary=BillSummary(
            total_items=len(work_items),
            total_tickets=len(tickets),
            total_manual_items=len(items),
            total_hours=total_hours,
            total_amount=total_amount,
        ),
        generated_at=generated_at or utcnow(),
    )


def group_by_assignee(tickets: Iterable[Ticket]) -> Dict[str, List[Ticket]]:
    """Group tickets by assignee id, keeping the incoming order within each group."""
    groups: Dict[str, List[Ticket]] = {}
    for ticket in tickets:
        groups.setdefault(ticket.assignee_id, []).append(ticket)
    return groups
