"""
Daily lifecycle sweep.

Cancels pending bookings and completes confirmed bookings whose date has
passed. Each step is one conditional bulk update, so a sweep can be re-run
at any time and a failed step is simply picked up by the next run. No state
is kept between runs. Every moved booking gets the same
booking.status_changed event a single transition publishes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from croniter import croniter

from . import publisher
from .clock import as_aware, local_now
from .errors import BookingServiceError
from .lifecycle import CANCELLED, COMPLETED, CONFIRMED, PENDING

logger = logging.getLogger(__name__)

AUTO_CANCEL_NOTE = "Automatically cancelled by system: Date passed without confirmation"


@dataclass
class SweepResult:
    started_at: datetime
    cancelled: int = 0
    completed: int = 0
    failed_steps: list[str] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_steps and not self.skipped_steps


async def run_sweep(repo, now: datetime | None = None, deadline: float | None = None) -> SweepResult:
    """
    One sweep. Both steps use the same `now`, taken once up front.

    deadline is a time.monotonic() value; once it has passed, remaining steps
    are skipped (an in-flight bulk update always runs to completion).
    """
    now = now or local_now()
    stamp = as_aware(now).astimezone(timezone.utc)
    today = now.date()
    result = SweepResult(started_at=now)

    steps = [
        ("cancel_pending", PENDING, CANCELLED, {"notes": AUTO_CANCEL_NOTE}),
        ("complete_confirmed", CONFIRMED, COMPLETED, {"completed_at": stamp}),
    ]

    for name, from_status, to_status, extra in steps:
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning("sweep time budget exhausted; skipping %s until next run", name)
            result.skipped_steps.append(name)
            continue
        try:
            moved = await repo.bulk_transition(from_status, today, to_status, {**extra, "updated_at": stamp})
        except BookingServiceError:
            logger.exception("sweep step %s failed; next run will retry", name)
            result.failed_steps.append(name)
            continue

        count = len(moved)
        if to_status == CANCELLED:
            result.cancelled = count
        else:
            result.completed = count
        if count:
            logger.info("sweep %s: %d bookings %s -> %s", name, count, from_status, to_status)
        for row in moved:
            await publisher.booking_status_changed(row)

    return result


def next_run_after(cron_expr: str, now: datetime) -> datetime:
    return croniter(cron_expr, now).get_next(datetime)


async def sweep_loop(repo, cron_expr: str, stop_event: asyncio.Event, time_budget_seconds: float):
    logger.info("lifecycle sweeper scheduled with '%s'", cron_expr)
    while not stop_event.is_set():
        now = local_now()
        delay = (next_run_after(cron_expr, now) - now).total_seconds()
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=max(delay, 0))
            break
        except asyncio.TimeoutError:
            pass

        try:
            await run_sweep(repo, deadline=time.monotonic() + time_budget_seconds)
        except Exception:
            # the sweeper must never take the service down
            logger.exception("lifecycle sweep crashed")
