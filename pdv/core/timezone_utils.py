from datetime import datetime, date, time, timezone
from zoneinfo import ZoneInfo

from pdv.core.config import settings


def report_tz():
    """Timezone used to cut reporting periods (REPORT_TIMEZONE)."""
    name = settings.REPORT_TIMEZONE or "America/Sao_Paulo"
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime.

    Naive values are assumed to already be UTC: that is how timestamps are
    written by this service and how SQLite hands them back.
    """
    if dt is None:
        return None
    if getattr(dt, 'tzinfo', None) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz=None) -> datetime:
    """Convert a stored timestamp to the reporting timezone."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(tz or report_tz())


def local_midnight(d: date, tz=None) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz or report_tz())


def local_today(now: datetime = None, tz=None) -> date:
    """Civil date of `now` (default: current instant) in the reporting timezone."""
    return to_local(now or utcnow(), tz).date()
