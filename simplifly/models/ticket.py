"""
Ticket Model Module

This module defines the Ticket model (stories and their subtasks), the append-only
TicketHistory audit log, ticket Comments and the per-ticket ChecklistItem.

A subtask is a Ticket of kind "subtask" with a parent story; it carries its own
assignee, status, hours and history. A ChecklistItem is a narrower concept: a
to-do line on a ticket with nothing but a title and a completed flag.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlmodel import SQLModel, Field

from simplifly.models.base import UTCDateTime, enum_column, to_utc, utcnow, utcnow_iso


class TicketKind(str, Enum):
    story = "story"
    subtask = "subtask"


class TicketStatus(str, Enum):
    todo = "todo"
    in_progress = "in-progress"
    completed = "completed"


class PaymentStatus(str, Enum):
    pending_pay = "pending-pay"
    billed = "billed"
    not_applicable = "not-applicable"


class HistoryAction(str, Enum):
    created = "created"
    status_changed = "status_changed"
    assigned = "assigned"
    hours_updated = "hours_updated"
    payment_status_changed = "payment_status_changed"
    commented = "commented"


class TicketBase(SQLModel):
    """
    Base Ticket model containing common fields.
    """
    title: str = Field(nullable=False)
    description: Optional[str] = None

    # No go-live date means the ticket sits in the backlog
    go_live_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    assignee_id: str = Field(foreign_key="users.id", nullable=False)
    workspace_id: int = Field(foreign_key="workspaces.id", index=True, nullable=False)

    kind: TicketKind = Field(default=TicketKind.story, sa_type=enum_column(TicketKind))
    # Required for subtasks, always None for stories
    parent_ticket_id: Optional[int] = Field(default=None, foreign_key="tickets.id", index=True)

    status: TicketStatus = Field(default=TicketStatus.todo, sa_type=enum_column(TicketStatus))
    payment_status: PaymentStatus = Field(default=PaymentStatus.not_applicable, sa_type=enum_column(PaymentStatus))
    hours_worked: float = Field(default=0, ge=0)

    # Set once, on the first transition into "completed"
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class Ticket(TicketBase, table=True):
    """
    Ticket table model.
    """
    __tablename__ = "tickets"

    id: Optional[int] = Field(default=None, primary_key=True)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
    updated_at: Optional[str] = Field(default_factory=utcnow_iso)


class TicketRead(TicketBase):
    """Schema for reading a ticket."""
    id: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TicketCreate(SQLModel):
    """Schema for creating a ticket. kind defaults to "story"."""
    title: str
    description: Optional[str] = None
    go_live_date: Optional[datetime] = None
    assignee_id: str
    workspace_id: int
    kind: TicketKind = TicketKind.story
    parent_ticket_id: Optional[int] = None

    @field_validator("go_live_date")
    @classmethod
    def go_live_date_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)


class TicketUpdate(SQLModel):
    """Schema for updating a ticket; only provided fields are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    go_live_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    status: Optional[TicketStatus] = None
    payment_status: Optional[PaymentStatus] = None
    hours_worked: Optional[float] = Field(default=None, ge=0)
    kind: Optional[TicketKind] = None
    parent_ticket_id: Optional[int] = None

    @field_validator("go_live_date")
    @classmethod
    def go_live_date_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)


class TicketStatusUpdate(SQLModel):
    status: TicketStatus


class TicketHoursUpdate(SQLModel):
    hours_worked: float = Field(ge=0)


class TicketHistory(SQLModel, table=True):
    """
    Append-only audit record for a ticket. Rows are never updated or deleted.

    ticket_id carries no foreign key so history survives ticket deletion.
    """
    __tablename__ = "ticket_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: int = Field(index=True, nullable=False)
    user_id: str = Field(foreign_key="users.id", nullable=False)

    action: HistoryAction = Field(sa_type=enum_column(HistoryAction))
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    description: Optional[str] = None

    # Full precision so entries written in the same second keep their order
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: int = Field(foreign_key="tickets.id", index=True, nullable=False)
    user_id: str = Field(foreign_key="users.id", nullable=False)
    content: str = Field(nullable=False)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)


class CommentCreate(SQLModel):
    ticket_id: int
    content: str = Field(min_length=1)


class ChecklistItemBase(SQLModel):
    title: str = Field(nullable=False)
    description: Optional[str] = None
    completed: bool = False
    # Set and cleared together with `completed`
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    order: int = 0


class ChecklistItem(ChecklistItemBase, table=True):
    __tablename__ = "checklist_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: int = Field(foreign_key="tickets.id", index=True, nullable=False)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
    updated_at: Optional[str] = Field(default_factory=utcnow_iso)


class ChecklistItemCreate(SQLModel):
    ticket_id: int
    title: str = Field(min_length=1)
    description: Optional[str] = None
    order: int = 0


class ChecklistItemUpdate(SQLModel):
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    order: Optional[int] = None
