from __future__ import annotations

from datetime import timezone

from sqlalchemy import DateTime, TypeDecorator

from ..time_utils import as_utc_naive


class UTCDateTime(TypeDecorator):
    """
    TIMESTAMP WITH TIME ZONE column that Python code sees as UTC-naive.

    Naive values are bound as UTC, so a non-UTC session time zone on the
    server cannot shift them. Values read back are normalized to UTC-naive
    whether or not the driver returns them tz-aware.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        return as_utc_naive(value)
