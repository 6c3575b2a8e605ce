"""Ticket lifecycle rules.

Enforces the structural invariants of tickets and derives the side effects of
every state-changing write:
- A subtask always has a parent story; a story never has a parent
- Completing a ticket requires hours worked
- The first transition into "completed" stamps completed_at (never cleared
  afterwards) and moves a billable story from "not-applicable" to "pending-pay"
- Every actual change of status, assignee, hours or payment status yields one
  history record; writing the current value again yields none

Functions here operate on Ticket objects already loaded by the caller and return
the TicketHistory rows to persist alongside the ticket in the same commit.
"""
from datetime import datetime
from typing import Any, Collection, Dict, Iterable, List, Optional

from simplifly.core.logger import get_logger
from simplifly.models.base import utcnow
from simplifly.models.ticket import (
    HistoryAction,
    PaymentStatus,
    Ticket,
    TicketHistory,
    TicketKind,
    TicketStatus,
    TicketUpdate,
)

logger = get_logger("simplifly.ticket_lifecycle")

HOURS_REQUIRED_MESSAGE = (
    "Cannot mark as completed without hours worked. Please enter hours worked first."
)


class LifecycleError(ValueError):
    """Raised when a ticket write would violate a lifecycle rule."""


def _format_hours(hours: Optional[float]) -> str:
    return f"{hours or 0:g}"


def _history(
    ticket: Ticket,
    actor_id: str,
    action: HistoryAction,
    description: str,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
) -> TicketHistory:
    return TicketHistory(
        ticket_id=ticket.id,
        user_id=actor_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        description=description,
    )


def validate_structure(kind: TicketKind, parent_ticket_id: Optional[int]) -> None:
    """Reject subtasks without a parent and stories with one."""
    if kind == TicketKind.subtask and parent_ticket_id is None:
        raise LifecycleError("Subtask must have a parent ticket")
    if kind == TicketKind.story and parent_ticket_id is not None:
        raise LifecycleError("Only subtasks can have a parent ticket")


def validate_parent(parent: Ticket, workspace_id: int) -> None:
    if parent.workspace_id != workspace_id:
        raise LifecycleError("Parent ticket must be in the same workspace")
    if parent.kind == TicketKind.subtask:
        raise LifecycleError("Cannot create subtask inside a subtask")


def validate_assignee(assignee_id: str, member_ids: Collection[str]) -> None:
    if assignee_id not in member_ids:
        raise LifecycleError("Assignee must be a member of the workspace")


def created_entry(ticket: Ticket, actor_id: str) -> TicketHistory:
    noun = "subtask" if ticket.kind == TicketKind.subtask else "ticket"
    return _history(ticket, actor_id, HistoryAction.created, f'Created {noun} "{ticket.title}"')


def _complete(ticket: Ticket, now: datetime) -> None:
    if ticket.completed_at is not None:
        return
    ticket.completed_at = now
    if (
        ticket.kind == TicketKind.story
        and ticket.hours_worked > 0
        and ticket.payment_status == PaymentStatus.not_applicable
    ):
        ticket.payment_status = PaymentStatus.pending_pay


def change_status(
    ticket: Ticket,
    status: TicketStatus,
    actor_id: str,
    now: Optional[datetime] = None,
) -> List[TicketHistory]:
    """
    Move a ticket to a new status.

    Raises:
        LifecycleError: If the ticket would be completed without hours worked
    """
    status = TicketStatus(status)
    old_status = TicketStatus(ticket.status)
    if status == old_status:
        return []
    if status == TicketStatus.completed and not ticket.hours_worked:
        raise LifecycleError(HOURS_REQUIRED_MESSAGE)

    ticket.status = status
    if status == TicketStatus.completed:
        _complete(ticket, now or utcnow())

    logger.info(
        "ticket_status_changed",
        ticket_id=ticket.id,
        old_status=old_status.value,
        new_status=status.value,
        payment_status=PaymentStatus(ticket.payment_status).value,
    )
    return [_history(
        ticket,
        actor_id,
        HistoryAction.status_changed,
        f"Status changed from {old_status.value} to {status.value}",
        old_value=old_status.value,
        new_value=status.value,
    )]


def change_hours(ticket: Ticket, hours: float, actor_id: str) -> List[TicketHistory]:
    if hours is None or hours < 0:
        raise LifecycleError("Valid hours worked is required")
    old_hours = ticket.hours_worked or 0
    if hours == old_hours:
        return []

    ticket.hours_worked = hours
    return [_history(
        ticket,
        actor_id,
        HistoryAction.hours_updated,
        f"Hours worked updated from {_format_hours(old_hours)} to {_format_hours(hours)}",
        old_value=_format_hours(old_hours),
        new_value=_format_hours(hours),
    )]


def change_assignee(
    ticket: Ticket,
    assignee_id: str,
    actor_id: str,
    member_ids: Collection[str],
) -> List[TicketHistory]:
    validate_assignee(assignee_id, member_ids)
    old_assignee = ticket.assignee_id
    if assignee_id == old_assignee:
        return []

    ticket.assignee_id = assignee_id
    return [_history(
        ticket,
        actor_id,
        HistoryAction.assigned,
        "Assignee changed",
        old_value=old_assignee,
        new_value=assignee_id,
    )]


def change_payment_status(
    ticket: Ticket,
    payment_status: PaymentStatus,
    actor_id: str,
) -> List[TicketHistory]:
    payment_status = PaymentStatus(payment_status)
    old_status = PaymentStatus(ticket.payment_status)
    if payment_status == old_status:
        return []

    ticket.payment_status = payment_status
    return [_history(
        ticket,
        actor_id,
        HistoryAction.payment_status_changed,
        f"Payment status changed from {old_status.value} to {payment_status.value}",
        old_value=old_status.value,
        new_value=payment_status.value,
    )]


def _check_update(ticket: Ticket, changes: Dict[str, Any], member_ids: Collection[str]) -> None:
    # Everything is validated before the ticket is touched
    kind = changes.get("kind")
    if kind is not None and TicketKind(kind) != ticket.kind:
        raise LifecycleError("Cannot change ticket type after creation")

    if "parent_ticket_id" in changes and changes["parent_ticket_id"] != ticket.parent_ticket_id:
        raise LifecycleError("Cannot change parent ticket after creation")

    if changes.get("assignee_id") is not None:
        validate_assignee(changes["assignee_id"], member_ids)

    hours = changes.get("hours_worked")
    if hours is not None and hours < 0:
        raise LifecycleError("Valid hours worked is required")

    status = changes.get("status")
    if status is not None and TicketStatus(status) == TicketStatus.completed \
            and ticket.status != TicketStatus.completed:
        effective_hours = hours if hours is not None else ticket.hours_worked
        if not effective_hours:
            raise LifecycleError(HOURS_REQUIRED_MESSAGE)


def apply_update(
    ticket: Ticket,
    update: TicketUpdate,
    actor_id: str,
    member_ids: Collection[str],
    now: Optional[datetime] = None,
) -> List[TicketHistory]:
    """
    Apply a partial update and return the history rows it produced.

    Hours are applied before the status so one update can both record hours and
    complete the ticket. Fields left out of the update are not touched.
    """
    changes = update.model_dump(exclude_unset=True)
    _check_update(ticket, changes, member_ids)

    entries: List[TicketHistory] = []

    if changes.get("title"):
        ticket.title = changes["title"]
    if "description" in changes:
        ticket.description = changes["description"]
    if "go_live_date" in changes:
        ticket.go_live_date = changes["go_live_date"]

    if changes.get("assignee_id") is not None:
        entries += change_assignee(ticket, changes["assignee_id"], actor_id, member_ids)
    if changes.get("hours_worked") is not None:
        entries += change_hours(ticket, changes["hours_worked"], actor_id)
    if changes.get("status") is not None:
        entries += change_status(ticket, changes["status"], actor_id, now=now)
    if changes.get("payment_status") is not None:
        entries += change_payment_status(ticket, changes["payment_status"], actor_id)

    return entries


def rollup_parent_hours(
    parent: Ticket,
    subtasks: Iterable[Ticket],
    actor_id: str,
) -> List[TicketHistory]:
    """Set a story's hours to the sum of its subtasks' hours."""
    total = sum(subtask.hours_worked or 0 for subtask in subtasks)
    old_hours = parent.hours_worked or 0
    if total == old_hours:
        return []

    parent.hours_worked = total
    return [_history(
        parent,
        actor_id,
        HistoryAction.hours_updated,
        f"Hours worked recalculated from subtasks: {_format_hours(old_hours)} to {_format_hours(total)}",
        old_value=_format_hours(old_hours),
        new_value=_format_hours(total),
    )]
