import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from .availability import conflicting, describe_slot
from .errors import ConflictError, NotFoundError, RepositoryError
from .locks import booking_key
from .models import Booking, BookingStatus, INACTIVE_STATUSES, PRICE_FIELDS

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingRepository:
    """
    Booking storage over an async SQLAlchemy session factory.

    Status changes are conditional updates keyed on the expected current
    status, so two writers racing on one booking cannot both win: the loser
    gets None back (stale) instead of an error.
    """

    def __init__(self, session_factory, slot_locks):
        self._sessions = session_factory
        self._locks = slot_locks

    @asynccontextmanager
    async def _session(self):
        try:
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception("booking repository failure")
            raise RepositoryError(f"Booking storage unavailable: {e.__class__.__name__}")

    def hold_booking(self, booking_id: str):
        """Serialize mutations of one booking across requests."""
        return self._locks.hold_key(booking_key(booking_id))

    async def get(self, booking_id: str) -> Booking | None:
        async with self._session() as db:
            res = await db.execute(select(Booking).where(Booking.booking_id == booking_id))
            return res.scalar_one_or_none()

    async def get_or_404(self, booking_id: str) -> Booking:
        booking = await self.get(booking_id)
        if not booking:
            raise NotFoundError("Booking not found", booking_id=booking_id)
        return booking

    async def list_bookings(self, user_id: str | None = None, chef_id: str | None = None) -> list[Booking]:
        stmt = select(Booking)
        if user_id:
            stmt = stmt.where(Booking.user_id == user_id)
        if chef_id:
            stmt = stmt.where(Booking.chef_id == chef_id)
        stmt = stmt.order_by(Booking.date.desc(), Booking.start_time.desc())
        async with self._session() as db:
            res = await db.execute(stmt)
            return list(res.scalars().all())

    @staticmethod
    def _overlapping_stmt(chef_id: str, day: date):
        return select(Booking).where(
            Booking.chef_id == chef_id,
            Booking.date == day,
            Booking.status.not_in(INACTIVE_STATUSES),
        )

    async def find_overlapping(self, chef_id: str, day: date) -> list[Booking]:
        async with self._session() as db:
            res = await db.execute(self._overlapping_stmt(chef_id, day))
            return list(res.scalars().all())

    async def insert(self, booking: Booking) -> Booking:
        """
        Check-and-insert under the (chef_id, date) slot lock.
        Raises ConflictError carrying the first overlapping booking.
        """
        async with self._locks.hold(booking.chef_id, booking.date):
            async with self._session() as db:
                async with db.begin():
                    res = await db.execute(self._overlapping_stmt(booking.chef_id, booking.date))
                    clashes = conflicting(res.scalars().all(), booking.start_time, booking.duration_hours)
                    if clashes:
                        raise ConflictError(describe_slot(clashes[0]))
                    db.add(booking)
        return booking

    async def update_status(
        self,
        booking_id: str,
        expected_status: str,
        new_status: str,
        extra_fields: dict | None = None,
        expected_payment_status: str | None = None,
    ) -> Booking | None:
        """
        Move a booking from expected_status to new_status in one statement.
        Returns the updated booking, or None when the booking is no longer in
        expected_status (stale). Raises NotFoundError for unknown ids.
        """
        values = dict(extra_fields or {})
        frozen = PRICE_FIELDS.intersection(values)
        if frozen:
            raise ValueError(f"Price fields are write-once: {sorted(frozen)}")

        now = utcnow()
        values.setdefault("updated_at", now)
        if new_status == BookingStatus.COMPLETED.value and expected_status != new_status:
            values.setdefault("completed_at", now)
        values["status"] = new_status

        conditions = [Booking.booking_id == booking_id, Booking.status == expected_status]
        if expected_payment_status is not None:
            conditions.append(Booking.payment_status == expected_payment_status)

        stmt = (
            update(Booking)
            .where(*conditions)
            .values(version=Booking.version + 1, **values)
            .execution_options(synchronize_session=False)
        )

        async with self._session() as db:
            async with db.begin():
                res = await db.execute(stmt)
                changed = res.rowcount
            found = await db.execute(select(Booking).where(Booking.booking_id == booking_id))
            booking = found.scalar_one_or_none()

        if booking is None:
            raise NotFoundError("Booking not found", booking_id=booking_id)
        if not changed:
            logger.info(
                "stale update on booking %s: expected %s, found %s",
                booking_id, expected_status, booking.status,
            )
            return None
        return booking

    async def bulk_transition(
        self,
        from_status: str,
        before_date: date,
        to_status: str,
        extra_fields: dict | None = None,
    ) -> list:
        """
        Move every booking in from_status dated before before_date to to_status.
        Returns the moved rows (booking_id, user_id, chef_id, status).
        """
        values = dict(extra_fields or {})
        values.setdefault("updated_at", utcnow())
        values["status"] = to_status

        stmt = (
            update(Booking)
            .where(Booking.status == from_status, Booking.date < before_date)
            .values(version=Booking.version + 1, **values)
            .returning(Booking.booking_id, Booking.user_id, Booking.chef_id, Booking.status)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as db:
            async with db.begin():
                res = await db.execute(stmt)
                return list(res.all())
