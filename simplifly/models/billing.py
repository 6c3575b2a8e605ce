"""
Billing Model Module

This module defines the BillItem model for manually entered billable lines.
Manual items are not tickets; they are unioned with completed stories when a bill
is generated and carry no payment status of their own.
"""
from typing import Optional
from sqlmodel import SQLModel, Field

from simplifly.models.base import utcnow_iso


class BillItemBase(SQLModel):
    title: str = Field(nullable=False)
    description: Optional[str] = None
    hours: float = Field(ge=0)

    # None marks an agency-level item not attributed to a single user
    user_id: Optional[str] = Field(default=None, foreign_key="users.id")


class BillItem(BillItemBase, table=True):
    __tablename__ = "bill_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: int = Field(foreign_key="workspaces.id", index=True, nullable=False)

    created_at: Optional[str] = Field(default_factory=utcnow_iso)
    updated_at: Optional[str] = Field(default_factory=utcnow_iso)


class BillItemRead(BillItemBase):
    id: int
    workspace_id: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BillItemCreate(SQLModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    hours: float = Field(gt=0)
    user_id: Optional[str] = None


class BillItemUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    hours: Optional[float] = Field(default=None, gt=0)
    user_id: Optional[str] = None
