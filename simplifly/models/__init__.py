from .user import User, UserRole
from .workspace import (
    Workspace, WorkspaceMember, WorkspaceInvite,
    PeriodType, Currency, InviteStatus,
)
from .ticket import (
    Ticket, TicketHistory, Comment, ChecklistItem,
    TicketKind, TicketStatus, PaymentStatus, HistoryAction,
)
from .billing import BillItem

__all__ = [
    "User", "UserRole",
    "Workspace", "WorkspaceMember", "WorkspaceInvite",
    "PeriodType", "Currency", "InviteStatus",
    "Ticket", "TicketHistory", "Comment", "ChecklistItem",
    "TicketKind", "TicketStatus", "PaymentStatus", "HistoryAction",
    "BillItem",
]
