from __future__ import annotations

import calendar
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_iso() -> str:
    return date.today().isoformat()


def struct_to_iso_date(value) -> str | None:
    if value is None:
        return None
    try:
        timestamp = calendar.timegm(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()
