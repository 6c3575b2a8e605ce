from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Type

from sqlalchemy import DateTime, Enum as SAEnum
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC copy of a datetime; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Datetime column holding UTC instants.

    Values are converted to UTC and stored without an offset so they sort and
    compare correctly on every backend; they are read back timezone-aware.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        return to_utc(value)


def enum_column(enum_cls: Type[Enum]) -> SAEnum:
    """String column storing an enum's values (e.g. "in-progress"), read back as members."""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=32,
    )
