"""
Superadmin Endpoints Module

Platform-wide read access for superadmins: signup and workspace statistics and
a view of every workspace regardless of membership.
"""
from datetime import datetime, timedelta
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, func, select
from simplifly import crud
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.base import utcnow
from simplifly.models.ticket import Ticket
from simplifly.models.user import User
from simplifly.models.workspace import Workspace, WorkspaceRead

router = APIRouter()

StatsPeriod = Literal["all", "today", "week", "month", "year"]


def _period_start(period: str, now: datetime) -> Optional[datetime]:
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    if period == "year":
        return now - timedelta(days=365)
    return None


def _count(db: Session, model, since: Optional[datetime] = None) -> int:
    statement = select(func.count()).select_from(model)
    if since is not None:
        # created_at is stored as an ISO string, which sorts chronologically
        statement = statement.where(model.created_at >= since.isoformat())
    return db.exec(statement).one()


@router.get("/stats")
def read_stats(
    period: StatsPeriod = "all",
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_superadmin),
):
    """
    Signup and workspace counts, overall and within the requested period.

    week/month/year are rolling windows ending now; today starts at midnight UTC.
    """
    since = _period_start(period, utcnow())
    return {
        "total_users": _count(db, User),
        "users_in_period": _count(db, User, since),
        "total_workspaces": _count(db, Workspace),
        "workspaces_in_period": _count(db, Workspace, since),
        "total_tickets": _count(db, Ticket),
        "period": period,
    }


@router.get("/workspaces", response_model=List[WorkspaceRead])
def list_all_workspaces(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_superadmin),
):
    workspaces = db.exec(select(Workspace).order_by(Workspace.id.desc())).all()
    return [crud.workspace_read(db, workspace) for workspace in workspaces]


@router.get("/workspace/{workspace_id}", response_model=WorkspaceRead)
def read_any_workspace(
    workspace_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_superadmin),
):
    workspace = db.get(Workspace, workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return crud.workspace_read(db, workspace)
