import enum

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, JSON, String, Text

from shared.database import Base


class ServiceType(str, enum.Enum):
    BIRTHDAY = "birthday"
    MARRIAGE = "marriage"
    DAILY = "daily"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# "rejected" shows up in legacy request payloads; no transition produces it
INACTIVE_STATUSES = ("cancelled", "rejected")
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

# written once at creation
PRICE_FIELDS = frozenset({"base_price", "guest_multiplier", "surge_multiplier", "total_price"})


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)

    chef_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True, index=True)  # guest bookings have none

    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_hours = Column(Integer, nullable=False)

    guest_count = Column(Integer, nullable=False)
    service_type = Column(String, nullable=False, index=True)
    location = Column(String, nullable=True)
    special_requests = Column(Text, nullable=True)

    add_ons = Column(JSON, nullable=False, default=list)
    base_price = Column(Float, nullable=False)
    guest_multiplier = Column(Float, nullable=False, default=1.0)
    surge_multiplier = Column(Float, nullable=False, default=1.0)
    surge_reason = Column(String, nullable=False, default="")
    add_on_total = Column(Integer, nullable=False, default=0)
    total_price = Column(Integer, nullable=False)

    status = Column(String, nullable=False, index=True)
    payment_status = Column(String, nullable=False)
    payment_reference = Column(String, nullable=True, index=True)
    notes = Column(Text, nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_bookings_chef_date", "chef_id", "date"),
        Index("ix_bookings_date_status", "date", "status"),
    )
