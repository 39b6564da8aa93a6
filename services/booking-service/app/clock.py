from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from .availability import to_minutes
from .config import BOOKING_TIMEZONE

LOCAL_TZ = ZoneInfo(BOOKING_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(LOCAL_TZ)


def as_aware(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def scheduled_start(booking, tz=LOCAL_TZ) -> datetime:
    minutes = to_minutes(booking.start_time)
    return datetime.combine(booking.date, time(minutes // 60, minutes % 60), tzinfo=tz)
