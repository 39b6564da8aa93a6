"""
Booking lifecycle state machine.

    pending ──payment verified──▶ confirmed ──sweep──▶ completed
       │                              │
       └──────────▶ cancelled ◀───────┘

completed and cancelled are terminal; nothing moves back into pending.
Behaviour lives in these functions, never on the Booking row itself.
"""

import logging
import uuid
from datetime import date, datetime, timedelta

from . import publisher
from .availability import describe_slot, find_conflicts, to_minutes
from .clock import as_aware, local_now
from .errors import ConflictError, InvalidTransitionError, UnauthorizedError, ValidationError
from .models import Booking, BookingStatus, PaymentStatus
from .pricing import quote, resolve_add_ons, validate_service_type
from .repository import utcnow

logger = logging.getLogger(__name__)

PENDING = BookingStatus.PENDING.value
CONFIRMED = BookingStatus.CONFIRMED.value
COMPLETED = BookingStatus.COMPLETED.value
CANCELLED = BookingStatus.CANCELLED.value

TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED, COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}
TERMINAL_STATUSES = {s for s, targets in TRANSITIONS.items() if not targets}

MAX_DURATION_HOURS = 24
MAX_GUESTS = 1000
REVIEW_WINDOW = timedelta(hours=48)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def assert_transition(current: str, target: str) -> None:
    if target not in TRANSITIONS:
        raise ValidationError(
            f"Invalid status '{target}'. Must be one of: {', '.join(TRANSITIONS)}"
        )
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def is_owner_or_chef(principal, booking) -> bool:
    if principal is None:
        return False
    if booking.user_id and principal.user_id == booking.user_id:
        return True
    return bool(principal.chef_id) and principal.chef_id == booking.chef_id


def authorize(principal, booking) -> None:
    if principal is None:
        raise UnauthorizedError("Authentication required")
    if not is_owner_or_chef(principal, booking):
        raise UnauthorizedError("Only the booking's owner or chef can change it")


async def transition(
    repo,
    booking: Booking,
    target: str,
    extra_fields: dict | None = None,
    expected_payment_status: str | None = None,
) -> Booking:
    """
    Conditionally move booking to target.

    Entering completed twice is a no-op. When another writer changed the
    booking first, the fresh row is returned unchanged; callers compare
    booking.status with target to see whether they won.
    """
    if booking.status == target == COMPLETED:
        return booking
    assert_transition(booking.status, target)

    updated = await repo.update_status(
        booking.booking_id,
        booking.status,
        target,
        extra_fields,
        expected_payment_status=expected_payment_status,
    )
    if updated is None:
        return await repo.get_or_404(booking.booking_id)

    logger.info("booking %s: %s -> %s", booking.booking_id, booking.status, target)
    await publisher.booking_status_changed(updated)
    if extra_fields and "payment_status" in extra_fields:
        await publisher.payment_status_changed(updated)
    return updated


def _require(**fields):
    missing = [name for name, value in fields.items() if value in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing=missing)


def validate_request(service_type, day: date, start_time, duration_hours, guest_count, today: date) -> None:
    validate_service_type(service_type)
    to_minutes(start_time)
    if day < today:
        raise ValidationError("Booking date cannot be in the past")
    if not 1 <= duration_hours <= MAX_DURATION_HOURS:
        raise ValidationError(f"Duration must be between 1 and {MAX_DURATION_HOURS} hours")
    if not 1 <= guest_count <= MAX_GUESTS:
        raise ValidationError(f"Guest count must be between 1 and {MAX_GUESTS}")


async def create_booking(
    repo,
    catalog,
    principal,
    *,
    chef_id: str,
    service_type: str,
    date: date,
    start_time: str,
    duration_hours: int,
    guest_count: int,
    add_ons: list[str] | None = None,
    location: str | None = None,
    special_requests: str | None = None,
    now: datetime | None = None,
) -> Booking:
    if principal is None:
        raise UnauthorizedError("Authentication required")
    _require(
        chef_id=chef_id,
        service_type=service_type,
        date=date,
        start_time=start_time,
        duration_hours=duration_hours,
        guest_count=guest_count,
    )
    now = now or local_now()
    validate_request(service_type, date, start_time, duration_hours, guest_count, now.date())

    chef = await catalog.require_active_chef(chef_id)
    priced_add_ons = resolve_add_ons(service_type, add_ons)
    q = quote(service_type, chef.hourly_rate, duration_hours, guest_count, date, priced_add_ons.values())

    clashes = await find_conflicts(repo, chef_id, date, start_time, duration_hours)
    if clashes:
        raise ConflictError(describe_slot(clashes[0]))

    booking = Booking(
        booking_id=str(uuid.uuid4()),
        chef_id=chef_id,
        user_id=principal.user_id,
        date=date,
        start_time=start_time,
        duration_hours=duration_hours,
        guest_count=guest_count,
        service_type=service_type,
        location=location,
        special_requests=special_requests or "",
        add_ons=list(priced_add_ons),
        base_price=q.base_price,
        guest_multiplier=q.guest_multiplier,
        surge_multiplier=q.surge_multiplier,
        surge_reason=q.surge_reason,
        add_on_total=q.add_on_total,
        total_price=q.total_price,
        status=PENDING,
        payment_status=PaymentStatus.PENDING.value,
        created_at=utcnow(),
        updated_at=utcnow(),
        version=1,
    )
    # the repository re-checks overlap under the slot lock
    booking = await repo.insert(booking)

    logger.info(
        "booking %s created for chef %s on %s %s (%sh, total %s)",
        booking.booking_id, chef_id, date, start_time, duration_hours, booking.total_price,
    )
    await publisher.booking_status_changed(booking)
    return booking


async def cancel_booking(repo, booking: Booking, note: str | None = None, extra_fields: dict | None = None) -> Booking:
    fields = dict(extra_fields or {})
    if note:
        fields["notes"] = note
    return await transition(repo, booking, CANCELLED, fields)


async def update_status(repo, principal, booking_id: str, new_status: str, note: str | None = None) -> Booking:
    """
    Manual status change by the booking's owner or chef.

    Only cancellation is a manual trigger; confirmation comes from payment
    verification and completion from the sweep.
    """
    booking = await repo.get_or_404(booking_id)
    authorize(principal, booking)
    assert_transition(booking.status, new_status)

    if new_status == CONFIRMED:
        raise ValidationError("Bookings are confirmed by payment verification")
    if new_status == COMPLETED:
        raise ValidationError("Bookings are completed automatically once their date has passed")
    if booking.payment_status == PaymentStatus.PAID.value:
        raise ValidationError("Paid bookings are cancelled through the refund flow")

    return await cancel_booking(repo, booking, note or f"Cancelled by {principal.user_id}")


def is_review_eligible(booking: Booking, now: datetime) -> bool:
    if booking.status != COMPLETED or booking.completed_at is None:
        return False
    return as_aware(now) - as_aware(booking.completed_at) <= REVIEW_WINDOW
