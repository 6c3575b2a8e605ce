from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from simplifly.models.ticket import PaymentStatus, TicketRead


class BillUser(BaseModel):
    id: str
    name: str
    username: Optional[str] = None


class BillWorkspace(BaseModel):
    id: int
    name: str
    currency: str


class WorkItem(BaseModel):
    id: int
    type: Literal["ticket", "manual"]
    title: str
    description: Optional[str] = None
    hours: float
    user: Optional[BillUser] = None  # None for agency-level manual items
    go_live_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class BillSummary(BaseModel):
    total_items: int
    total_tickets: int
    total_manual_items: int
    total_hours: float
    total_amount: float


class Bill(BaseModel):
    """Invoice-shaped summary. Presentational only; nothing is persisted."""
    workspace: BillWorkspace
    is_agency_level: bool
    user: Optional[BillUser] = None
    hourly_rate: float
    work_items: List[WorkItem]
    summary: BillSummary
    generated_at: datetime


class GenerateBillRequest(BaseModel):
    workspace_id: int
    ticket_ids: List[int] = []
    manual_item_ids: List[int] = []
    user_id: Optional[str] = None
    hourly_rate: float
    is_agency_level: bool = False


class BillableUserGroup(BaseModel):
    user: BillUser
    tickets: List[TicketRead]


class PaymentStatusBulkUpdate(BaseModel):
    ticket_ids: List[int] = Field(min_length=1)
    payment_status: PaymentStatus
