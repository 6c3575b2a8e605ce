from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from simplifly.models.base import utcnow
from simplifly.models.ticket import (
    HistoryAction,
    PaymentStatus,
    Ticket,
    TicketHistory,
    TicketKind,
    TicketStatus,
)
from simplifly.models.user import User, UserRole
from simplifly.models.workspace import Currency, PeriodType, Workspace

UTC = timezone.utc


def _seed(session: Session, **ticket_fields) -> Ticket:
    user = User(email="ana@example.com", name="Ana")
    session.add(user)
    session.flush()
    workspace = Workspace(name="Acme", owner_id=user.id, period_type=PeriodType.weekly, currency=Currency.INR)
    session.add(workspace)
    session.flush()
    ticket = Ticket(title="Landing page", assignee_id=user.id, workspace_id=workspace.id, **ticket_fields)
    session.add(ticket)
    session.commit()
    return ticket


def test_utcnow_is_timezone_aware() -> None:
    assert utcnow().utcoffset() == timedelta(0)


def test_datetimes_are_stored_as_utc_and_read_back_aware(engine) -> None:
    eastern = timezone(timedelta(hours=-5))
    with Session(engine) as session:
        ticket = _seed(
            session,
            go_live_date=datetime(2026, 10, 31, 22, 0, tzinfo=eastern),
            completed_at=datetime(2026, 10, 14, 9, 0),
        )
        session.add(TicketHistory(ticket_id=ticket.id, user_id=ticket.assignee_id, action=HistoryAction.created))
        session.commit()
        ticket_id = ticket.id

    with Session(engine) as session:
        stored = session.get(Ticket, ticket_id)
        assert stored.go_live_date == datetime(2026, 11, 1, 3, 0, tzinfo=UTC)
        assert stored.go_live_date.utcoffset() == timedelta(0)
        # Naive values are taken as UTC
        assert stored.completed_at == datetime(2026, 10, 14, 9, 0, tzinfo=UTC)

        entry = session.exec(select(TicketHistory).where(TicketHistory.ticket_id == ticket_id)).one()
        assert entry.created_at.utcoffset() == timedelta(0)
        assert entry.created_at <= utcnow()

        in_november = session.exec(
            select(Ticket).where(Ticket.go_live_date >= datetime(2026, 11, 1, tzinfo=UTC))
        ).all()
        assert [t.id for t in in_november] == [ticket_id]


def test_enum_columns_read_back_as_members(engine) -> None:
    with Session(engine) as session:
        ticket = _seed(session, status=TicketStatus.in_progress)
        ticket_id = ticket.id

    with Session(engine) as session:
        stored = session.get(Ticket, ticket_id)
        assert stored.kind is TicketKind.story
        assert stored.status is TicketStatus.in_progress
        assert stored.payment_status is PaymentStatus.not_applicable

        workspace = session.get(Workspace, stored.workspace_id)
        assert workspace.period_type is PeriodType.weekly
        assert workspace.currency is Currency.INR

        user = session.get(User, stored.assignee_id)
        assert user.role is UserRole.USER

        # Stored as the enum value, so "in-progress" rather than the member name
        raw = session.connection().exec_driver_sql("SELECT status FROM tickets").scalar()
        assert raw == "in-progress"
