"""
Payment reconciliation.

Matches the gateway's asynchronous results (verified payments, failures,
refunds) to bookings and advances their lifecycle through the state machine.
"""

import logging
import time
from datetime import datetime

from . import lifecycle
from .clock import as_aware, local_now, scheduled_start
from .errors import (
    InvalidTransitionError,
    NoRefundEligibleError,
    SignatureMismatchError,
    ValidationError,
)
from .gateway import signature_matches
from .models import Booking, PaymentStatus
from .pricing import round_currency

logger = logging.getLogger(__name__)

PAID = PaymentStatus.PAID.value
PENDING_PAYMENT = PaymentStatus.PENDING.value
FAILED = PaymentStatus.FAILED.value
REFUNDED = PaymentStatus.REFUNDED.value

# refund fraction by hours remaining before the booking starts, strictly more than
REFUND_TIERS = [(72, 1.0), (48, 0.8), (24, 0.5)]
NO_REFUND_CUTOFF_HOURS = REFUND_TIERS[-1][0]


def to_minor_units(amount) -> int:
    return round_currency(amount * 100)


def hours_until(booking: Booking, now: datetime) -> float:
    return (scheduled_start(booking) - as_aware(now)).total_seconds() / 3600


def refund_fraction(hours_before: float) -> float:
    for threshold, fraction in REFUND_TIERS:
        if hours_before > threshold:
            return fraction
    return 0.0


def compute_refund(booking: Booking, now: datetime) -> int:
    if booking.payment_status != PAID:
        raise ValidationError("Cannot refund unpaid booking", payment_status=booking.payment_status)

    h = hours_until(booking, now)
    fraction = refund_fraction(h)
    if fraction == 0:
        raise NoRefundEligibleError(
            f"No refund available: cancellations must be made more than "
            f"{NO_REFUND_CUTOFF_HOURS} hours before the booking starts",
            cutoff_hours=NO_REFUND_CUTOFF_HOURS,
            hours_remaining=round(h, 2),
        )
    return round_currency(booking.total_price * fraction)


def receipt_for(booking_id: str) -> str:
    # gateway receipts are capped at 40 characters
    return f"bk_{booking_id[-8:]}_{str(int(time.time() * 1000))[-8:]}"


class PaymentReconciler:
    """
    Every mutating call holds the booking's lock from the first read to the
    last write, so concurrent callbacks and cancellations on one booking run
    one after another and the gateway is never asked to refund twice.
    """

    def __init__(self, repo, gateway, secret: str, currency: str = "INR", provider_key: str | None = None):
        self.repo = repo
        self.gateway = gateway
        self.secret = secret
        self.currency = currency
        self.provider_key = provider_key

    async def create_order(self, booking_id: str, amount: float | None = None, currency: str | None = None) -> dict:
        async with self.repo.hold_booking(booking_id):
            booking = await self.repo.get_or_404(booking_id)
            if booking.status != lifecycle.PENDING or booking.payment_status == PAID:
                raise ValidationError(
                    "Booking is not awaiting payment",
                    status=booking.status,
                    payment_status=booking.payment_status,
                )
            if amount is not None and round_currency(amount) != booking.total_price:
                raise ValidationError(
                    "Amount does not match the booking total",
                    expected=booking.total_price,
                )

            currency = currency or self.currency
            order = await self.gateway.create_order(
                to_minor_units(booking.total_price),
                currency,
                receipt_for(booking.booking_id),
                {
                    "bookingId": booking.booking_id,
                    "serviceType": booking.service_type,
                    "chefId": booking.chef_id,
                    "guestCount": booking.guest_count,
                },
            )
            order_id = order.get("id")
            if not order_id:
                raise ValidationError("Payment gateway returned no order id")

            updated = await self.repo.update_status(
                booking.booking_id,
                lifecycle.PENDING,
                lifecycle.PENDING,
                {"payment_reference": order_id, "payment_status": PENDING_PAYMENT},
            )
            if updated is None:
                raise ValidationError("Booking changed while the order was being created")

        logger.info("payment order %s created for booking %s", order_id, booking.booking_id)
        return {
            "order_id": order_id,
            "provider_key": self.provider_key,
            "amount": order.get("amount", to_minor_units(booking.total_price)),
            "currency": order.get("currency", currency),
            "receipt": order.get("receipt"),
            "booking_id": booking.booking_id,
        }

    async def verify(self, order_id: str, payment_ref: str, signature: str, booking_id: str) -> Booking:
        async with self.repo.hold_booking(booking_id):
            booking = await self.repo.get_or_404(booking_id)

            if not signature_matches(self.secret, order_id, payment_ref, signature):
                # the booking is untouched: the callback may be retried
                logger.warning("payment signature mismatch for booking %s order %s", booking_id, order_id)
                raise SignatureMismatchError("Payment verification failed: invalid signature")

            if booking.payment_reference and booking.payment_reference not in (order_id, payment_ref):
                raise ValidationError("Payment order does not belong to this booking")

            if booking.payment_status == PAID and booking.status == lifecycle.CONFIRMED:
                return booking

            updated = await lifecycle.transition(
                self.repo,
                booking,
                lifecycle.CONFIRMED,
                {"payment_status": PAID, "payment_reference": payment_ref},
            )
        if updated.status != lifecycle.CONFIRMED:
            logger.error(
                "verified payment %s arrived for booking %s in status %s",
                payment_ref, booking_id, updated.status,
            )
            raise InvalidTransitionError(updated.status, lifecycle.CONFIRMED)
        return updated

    async def record_failure(self, booking_id: str, reason: str | None = None, principal=None) -> Booking:
        async with self.repo.hold_booking(booking_id):
            booking = await self.repo.get_or_404(booking_id)
            if principal is not None:
                lifecycle.authorize(principal, booking)
            if booking.status == lifecycle.CANCELLED:
                # already settled; repeated gateway callbacks change nothing
                return booking

            note = f"Payment failed: {reason or 'Unknown error'}"
            updated = await lifecycle.transition(
                self.repo,
                booking,
                lifecycle.CANCELLED,
                {"payment_status": FAILED, "notes": note},
            )
        logger.info("payment failure recorded for booking %s: %s", booking_id, reason)
        return updated

    async def refund(self, booking_id: str, reason: str | None = None, now: datetime | None = None, principal=None):
        """Refund and cancel a paid booking. Returns (booking, amount, refund_id)."""
        async with self.repo.hold_booking(booking_id):
            return await self._refund(booking_id, reason, now, principal)

    async def _refund(self, booking_id: str, reason: str | None, now: datetime | None, principal):
        # caller holds the booking lock
        booking = await self.repo.get_or_404(booking_id)
        if principal is not None:
            lifecycle.authorize(principal, booking)
        lifecycle.assert_transition(booking.status, lifecycle.CANCELLED)

        now = now or local_now()
        amount = compute_refund(booking, now)
        reason = reason or "Booking cancellation"

        result = await self.gateway.refund(
            booking.payment_reference,
            to_minor_units(amount),
            {"reason": reason, "bookingId": booking.booking_id},
        )

        updated = await lifecycle.transition(
            self.repo,
            booking,
            lifecycle.CANCELLED,
            {
                "payment_status": REFUNDED,
                "notes": f"Refund processed: Rs. {amount}. Reason: {reason}",
            },
            expected_payment_status=PAID,
        )
        if updated.payment_status != REFUNDED:
            # only the sweep writes without the booking lock
            logger.error(
                "refund %s issued for booking %s but it moved to %s/%s first",
                result.get("id"), booking_id, updated.status, updated.payment_status,
            )
        return updated, amount, result.get("id")

    async def cancel_booking(self, principal, booking_id: str, reason: str | None = None, now: datetime | None = None):
        """
        Manual cancellation. Paid bookings are refunded per the refund tiers;
        inside the no-refund window they are cancelled without one.
        Returns (booking, refund_amount).
        """
        async with self.repo.hold_booking(booking_id):
            booking = await self.repo.get_or_404(booking_id)
            lifecycle.authorize(principal, booking)

            if booking.payment_status != PAID:
                return await lifecycle.update_status(self.repo, principal, booking_id, lifecycle.CANCELLED, reason), 0

            try:
                updated, amount, _ = await self._refund(booking_id, reason, now, principal)
            except NoRefundEligibleError as e:
                lifecycle.assert_transition(booking.status, lifecycle.CANCELLED)
                note = f"Cancelled without refund ({e.message}). Reason: {reason or 'Booking cancellation'}"
                return await lifecycle.cancel_booking(self.repo, booking, note), 0
            return updated, amount

    async def payment_status(self, booking_id: str) -> dict:
        booking = await self.repo.get_or_404(booking_id)
        return {
            "booking_id": booking.booking_id,
            "payment_status": booking.payment_status,
            "payment_reference": booking.payment_reference,
            "status": booking.status,
            "total_price": booking.total_price,
        }
