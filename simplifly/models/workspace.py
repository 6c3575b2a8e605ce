"""
Workspace Model Module

This module defines the Workspace model, the WorkspaceMember junction table for
membership, and the WorkspaceInvite model used both for shareable invite links
and for join requests.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
import secrets

from sqlmodel import SQLModel, Field

from simplifly.models.base import UTCDateTime, enum_column, utcnow_iso


class PeriodType(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"


class Currency(str, Enum):
    USD = "USD"
    INR = "INR"


class InviteStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class WorkspaceMember(SQLModel, table=True):
    """
    Junction table for the many-to-many relationship between Workspaces and Users.

    The owner is inserted as a member when the workspace is created.
    """
    __tablename__ = "workspace_members"

    workspace_id: int = Field(foreign_key="workspaces.id", primary_key=True)
    user_id: str = Field(foreign_key="users.id", primary_key=True)


class WorkspaceBase(SQLModel):
    name: str = Field(nullable=False)
    description: Optional[str] = None

    # Settings - how tickets are grouped into periods and how bills are priced
    period_type: PeriodType = Field(default=PeriodType.monthly, sa_type=enum_column(PeriodType))
    currency: Currency = Field(default=Currency.USD, sa_type=enum_column(Currency))


class Workspace(WorkspaceBase, table=True):
    """
    Workspace table model.

    Ownership controls:
    - Members (owner included) can see the workspace and work on its tickets
    - Only the owner can change settings, manage members, delete tickets and bill
    """
    __tablename__ = "workspaces"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(foreign_key="users.id", nullable=False)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
    updated_at: Optional[str] = Field(default_factory=utcnow_iso)


class WorkspaceCreate(SQLModel):
    name: str
    description: Optional[str] = None


class WorkspaceSettingsUpdate(SQLModel):
    period_type: Optional[str] = None
    currency: Optional[str] = None


class WorkspaceUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[WorkspaceSettingsUpdate] = None


class MemberRead(SQLModel):
    id: str
    name: str
    username: Optional[str] = None
    email: str


class WorkspaceRead(WorkspaceBase):
    id: int
    owner_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    members: List[MemberRead] = []


class WorkspaceInvite(SQLModel, table=True):
    """
    Token-bearing invite record.

    - requested_by_id is None: a shareable invite link for the workspace
    - requested_by_id is set: a join request made by that user through a link
    """
    __tablename__ = "workspace_invites"

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    invite_token: str = Field(
        default_factory=lambda: secrets.token_hex(32), unique=True, index=True
    )
    requested_by_id: Optional[str] = Field(default=None, foreign_key="users.id")
    status: InviteStatus = Field(default=InviteStatus.pending, sa_type=enum_column(InviteStatus))
    expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)  # None means never expires

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
