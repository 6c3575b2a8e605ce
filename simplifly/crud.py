"""Shared database operations used by several endpoint modules."""
from typing import Dict, Iterable, List

from sqlmodel import Session, select

from simplifly.core.logger import get_logger
from simplifly.models.billing import BillItem
from simplifly.models.ticket import ChecklistItem, Comment, Ticket, TicketKind
from simplifly.models.user import User
from simplifly.models.workspace import (
    MemberRead,
    Workspace,
    WorkspaceInvite,
    WorkspaceMember,
    WorkspaceRead,
)

logger = get_logger("simplifly.crud")


def get_users_by_ids(db: Session, user_ids: Iterable[str]) -> Dict[str, User]:
    user_ids = {user_id for user_id in user_ids if user_id}
    if not user_ids:
        return {}
    users = db.exec(select(User).where(User.id.in_(user_ids))).all()
    return {user.id: user for user in users}


def workspace_read(db: Session, workspace: Workspace) -> WorkspaceRead:
    """Serialize a workspace together with its members (owner included)."""
    member_ids = set(
        db.exec(
            select(WorkspaceMember.user_id).where(WorkspaceMember.workspace_id == workspace.id)
        ).all()
    )
    member_ids.add(workspace.owner_id)
    users = get_users_by_ids(db, member_ids)
    members = [
        MemberRead(id=user.id, name=user.name, username=user.username, email=user.email)
        for user in sorted(users.values(), key=lambda u: (u.id != workspace.owner_id, u.name))
    ]
    return WorkspaceRead(**workspace.model_dump(), members=members)


def get_subtasks(db: Session, parent_ticket_id: int) -> List[Ticket]:
    return db.exec(
        select(Ticket)
        .where(Ticket.parent_ticket_id == parent_ticket_id, Ticket.kind == TicketKind.subtask)
        .order_by(Ticket.id)
    ).all()


def delete_ticket(db: Session, ticket: Ticket) -> List[int]:
    """
    Delete a ticket, its subtask tickets, and the comments and checklist items of each.

    History rows are left in place. Does not commit.

    Returns:
        Ids of every deleted ticket
    """
    tickets = list(get_subtasks(db, ticket.id)) if ticket.kind == TicketKind.story else []
    tickets.append(ticket)
    ticket_ids = [t.id for t in tickets]

    for model in (Comment, ChecklistItem):
        for row in db.exec(select(model).where(model.ticket_id.in_(ticket_ids))).all():
            db.delete(row)
    # Children first so the parent foreign key never dangles
    for t in tickets:
        db.delete(t)
        db.flush()

    logger.info("tickets_deleted", ticket_ids=ticket_ids)
    return ticket_ids


def delete_workspace(db: Session, workspace: Workspace) -> None:
    """Delete a workspace with its tickets, bill items, invites and memberships. Does not commit."""
    stories = db.exec(
        select(Ticket).where(Ticket.workspace_id == workspace.id, Ticket.kind == TicketKind.story)
    ).all()
    for story in stories:
        delete_ticket(db, story)
    # Subtasks whose story was already gone
    for orphan in db.exec(select(Ticket).where(Ticket.workspace_id == workspace.id)).all():
        delete_ticket(db, orphan)

    for model in (BillItem, WorkspaceInvite, WorkspaceMember):
        for row in db.exec(select(model).where(model.workspace_id == workspace.id)).all():
            db.delete(row)
    db.flush()
    db.delete(workspace)
    logger.info("workspace_deleted", workspace_id=workspace.id)
