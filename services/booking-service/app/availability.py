import re
from datetime import date

from .errors import ValidationError

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def to_minutes(start_time: str) -> int:
    m = TIME_RE.match(start_time or "")
    if not m:
        raise ValidationError("Time must be in HH:MM format")
    return int(m.group(1)) * 60 + int(m.group(2))


def slot_bounds(start_time: str, duration_hours: int) -> tuple[int, int]:
    """
    Minute-of-day interval [start, end) for a slot.
    end may exceed 24*60; slots never wrap into the next day.
    """
    start = to_minutes(start_time)
    return start, start + int(duration_hours) * 60


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and a_end > b_start


def conflicting(bookings, start_time: str, duration_hours: int) -> list:
    c_start, c_end = slot_bounds(start_time, duration_hours)
    found = []
    for b in bookings:
        b_start, b_end = slot_bounds(b.start_time, b.duration_hours)
        if overlaps(c_start, c_end, b_start, b_end):
            found.append(b)
    return found


def describe_slot(booking) -> dict:
    return {
        "booking_id": booking.booking_id,
        "date": booking.date.isoformat(),
        "start_time": booking.start_time,
        "duration_hours": booking.duration_hours,
    }


async def find_conflicts(repo, chef_id: str, day: date, start_time: str, duration_hours: int) -> list:
    existing = await repo.find_overlapping(chef_id, day)
    return conflicting(existing, start_time, duration_hours)


async def has_conflict(repo, chef_id: str, day: date, start_time: str, duration_hours: int) -> bool:
    return bool(await find_conflicts(repo, chef_id, day, start_time, duration_hours))
