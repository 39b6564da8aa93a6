from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class QuoteRequest(BaseModel):
    chef_id: str
    service_type: str
    date: date
    duration_hours: int
    guest_count: int
    add_ons: list[str] = []


class QuoteResponse(BaseModel):
    base_price: float
    guest_multiplier: float
    surge_multiplier: float
    surge_reason: str
    add_on_total: int
    total_price: int
    add_ons: dict[str, int]


class CreateBookingRequest(BaseModel):
    chef_id: str
    service_type: str
    date: date
    start_time: str
    duration_hours: int = 2
    guest_count: int
    add_ons: list[str] = []
    location: str | None = None
    special_requests: str | None = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    chef_id: str
    user_id: str | None = None
    date: date
    start_time: str
    duration_hours: int
    guest_count: int
    service_type: str
    location: str | None = None
    special_requests: str | None = None
    add_ons: list[str]
    base_price: float
    guest_multiplier: float
    surge_multiplier: float
    surge_reason: str
    add_on_total: int
    total_price: int
    status: str
    payment_status: str
    payment_reference: str | None = None
    notes: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SlotResponse(BaseModel):
    booking_id: str
    date: date
    start_time: str
    duration_hours: int


class AvailabilityResponse(BaseModel):
    chef_id: str
    available: bool
    conflicts: list[SlotResponse]


class StatusUpdateRequest(BaseModel):
    status: str
    reason: str | None = None


class StatusUpdateResponse(BaseModel):
    booking: BookingResponse
    refund_amount: int = 0


class CreateOrderRequest(BaseModel):
    booking_id: str
    amount: float | None = None
    currency: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    provider_key: str | None = None
    amount: int
    currency: str
    receipt: str | None = None
    booking_id: str


class VerifyPaymentRequest(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    booking_id: str


class PaymentFailureRequest(BaseModel):
    booking_id: str
    reason: str | None = None


class RefundRequest(BaseModel):
    booking_id: str
    reason: str | None = None


class RefundResponse(BaseModel):
    refund_id: str | None = None
    refund_amount: int
    booking: BookingResponse


class PaymentStatusResponse(BaseModel):
    booking_id: str
    payment_status: str
    payment_reference: str | None = None
    status: str
    total_price: int
