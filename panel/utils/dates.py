from datetime import datetime

import pytz
from flask import current_app

UTC_TZ = pytz.utc


def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite regresa datetimes naive; los asumimos en UTC."""
    if not dt:
        return None
    if dt.tzinfo is None:
        return UTC_TZ.localize(dt)
    return dt.astimezone(UTC_TZ)


def to_local(dt: datetime | None) -> datetime | None:
    dt = as_utc(dt)
    if not dt:
        return None
    tz = pytz.timezone(current_app.config.get("APP_TZ") or "UTC")
    return dt.astimezone(tz)


def iso_local(dt: datetime | None) -> str | None:
    local_dt = to_local(dt)
    return local_dt.isoformat() if local_dt else None
