"""Period calculations for weekly, monthly and quarterly views.

All boundaries are inclusive: a period runs from its first instant
(00:00:00.000) to one millisecond before the next period starts, so month
lengths and leap years need no special-casing. Weeks start on Monday
regardless of locale.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Union

from simplifly.models.base import to_utc
from simplifly.models.workspace import PeriodType

DateLike = Union[date, datetime]

ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class PeriodRange:
    start: datetime
    end: datetime
    label: str


def _as_datetime(value: DateLike) -> datetime:
    # Naive values are UTC
    if isinstance(value, datetime):
        return to_utc(value)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _start_of_day(value: DateLike) -> datetime:
    value = _as_datetime(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _first_of_month(year: int, month_index: int) -> datetime:
    """First instant of a month; month_index is 0-based and may overflow into later years."""
    year += month_index // 12
    return datetime(year, month_index % 12 + 1, 1, tzinfo=timezone.utc)


def get_month_start(value: DateLike) -> datetime:
    value = _as_datetime(value)
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def get_month_end(value: DateLike) -> datetime:
    value = _as_datetime(value)
    next_month = _first_of_month(value.year, value.month)  # month is 1-based, so this is month + 1
    return next_month - ONE_MS


def get_week_start(value: DateLike) -> datetime:
    start = _start_of_day(value)
    return start - timedelta(days=start.weekday())


def get_week_end(value: DateLike) -> datetime:
    return get_week_start(value) + timedelta(days=7) - ONE_MS


def get_quarter_start(value: DateLike) -> datetime:
    value = _as_datetime(value)
    quarter_month = (value.month - 1) // 3 * 3  # 0, 3, 6 or 9
    return _first_of_month(value.year, quarter_month)


def get_quarter_end(value: DateLike) -> datetime:
    value = _as_datetime(value)
    quarter_month = (value.month - 1) // 3 * 3
    return _first_of_month(value.year, quarter_month + 3) - ONE_MS


def _normalize_period_type(period_type: Optional[Union[str, PeriodType]]) -> PeriodType:
    # Unknown or missing period types fall back to monthly
    try:
        return PeriodType(period_type)
    except ValueError:
        return PeriodType.monthly


def format_period_label(value: DateLike, period_type: Optional[Union[str, PeriodType]]) -> str:
    value = _as_datetime(value)
    period_type = _normalize_period_type(period_type)

    if period_type == PeriodType.weekly:
        start = get_week_start(value)
        end = get_week_end(value)
        return (
            f"{calendar.month_abbr[start.month]} {start.day} - "
            f"{calendar.month_abbr[end.month]} {end.day}, {end.year}"
        )
    if period_type == PeriodType.quarterly:
        quarter = (value.month - 1) // 3 + 1
        return f"Q{quarter} {value.year}"
    return f"{calendar.month_name[value.month]} {value.year}"


def get_period_range(value: DateLike, period_type: Optional[Union[str, PeriodType]]) -> PeriodRange:
    """
    Return the inclusive [start, end] range of the period containing `value`.

    Args:
        value: Reference date
        period_type: "weekly", "monthly" or "quarterly"; anything else is monthly

    Returns:
        PeriodRange with start, end and a human-readable label
    """
    period_type = _normalize_period_type(period_type)

    if period_type == PeriodType.weekly:
        start, end = get_week_start(value), get_week_end(value)
    elif period_type == PeriodType.quarterly:
        start, end = get_quarter_start(value), get_quarter_end(value)
    else:
        start, end = get_month_start(value), get_month_end(value)

    return PeriodRange(start=start, end=end, label=format_period_label(value, period_type))


def is_date_in_period(value: Optional[DateLike], period_start: datetime, period_end: datetime) -> bool:
    if value is None:
        return False
    value = _as_datetime(value)
    return _as_datetime(period_start) <= value <= _as_datetime(period_end)


def get_months_in_year(year: int) -> List[dict]:
    months = []
    for month_index in range(12):
        first = datetime(year, month_index + 1, 1, tzinfo=timezone.utc)
        months.append({
            "year": year,
            "month": month_index + 1,  # 1-12 for display
            "month_index": month_index,
            "start": get_month_start(first),
            "end": get_month_end(first),
            "name": calendar.month_name[month_index + 1],
        })
    return months


def get_years_from_tickets(tickets: Iterable[Any]) -> List[int]:
    """Distinct years of the tickets' go-live dates, most recent first."""
    years = set()
    for ticket in tickets:
        go_live_date = getattr(ticket, "go_live_date", None)
        if go_live_date is None and isinstance(ticket, dict):
            go_live_date = ticket.get("go_live_date")
        if go_live_date:
            years.add(_as_datetime(go_live_date).year)
    return sorted(years, reverse=True)
