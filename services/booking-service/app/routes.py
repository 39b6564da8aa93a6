from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from . import lifecycle
from .availability import describe_slot, find_conflicts, to_minutes
from .errors import ValidationError
from .pricing import quote, resolve_add_ons
from .schemas import (
    AvailabilityResponse,
    BookingResponse,
    CreateBookingRequest,
    CreateOrderRequest,
    OrderResponse,
    PaymentFailureRequest,
    PaymentStatusResponse,
    QuoteRequest,
    QuoteResponse,
    RefundRequest,
    RefundResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    VerifyPaymentRequest,
)
from .security import Principal, get_principal

router = APIRouter()


def get_repo(request: Request):
    return request.app.state.repo


def get_catalog(request: Request):
    return request.app.state.catalog


def get_reconciler(request: Request):
    return request.app.state.reconciler


# ================= BOOKINGS =================

@router.post("/bookings/quote", response_model=QuoteResponse)
async def quote_booking(data: QuoteRequest, catalog=Depends(get_catalog)):
    chef = await catalog.require_active_chef(data.chef_id)
    add_ons = resolve_add_ons(data.service_type, data.add_ons)
    q = quote(data.service_type, chef.hourly_rate, data.duration_hours, data.guest_count, data.date, add_ons.values())
    return QuoteResponse(**q.as_dict(), add_ons=add_ons)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: CreateBookingRequest,
    repo=Depends(get_repo),
    catalog=Depends(get_catalog),
    principal: Principal = Depends(get_principal),
):
    booking = await lifecycle.create_booking(repo, catalog, principal, **data.model_dump())
    return BookingResponse.model_validate(booking)


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings(
    user_id: str | None = None,
    chef_id: str | None = None,
    repo=Depends(get_repo),
    principal: Principal = Depends(get_principal),
):
    if not user_id and not chef_id:
        user_id = principal.user_id
    bookings = await repo.list_bookings(user_id=user_id, chef_id=chef_id)
    visible = [b for b in bookings if lifecycle.is_owner_or_chef(principal, b)]
    return [BookingResponse.model_validate(b) for b in visible]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, repo=Depends(get_repo), principal: Principal = Depends(get_principal)):
    booking = await repo.get_or_404(booking_id)
    lifecycle.authorize(principal, booking)
    return BookingResponse.model_validate(booking)


@router.patch("/bookings/{booking_id}/status", response_model=StatusUpdateResponse)
async def update_booking_status(
    booking_id: str,
    data: StatusUpdateRequest,
    repo=Depends(get_repo),
    reconciler=Depends(get_reconciler),
    principal: Principal = Depends(get_principal),
):
    if data.status == lifecycle.CANCELLED:
        booking, refund_amount = await reconciler.cancel_booking(principal, booking_id, data.reason)
    else:
        booking = await lifecycle.update_status(repo, principal, booking_id, data.status, data.reason)
        refund_amount = 0
    return StatusUpdateResponse(booking=BookingResponse.model_validate(booking), refund_amount=refund_amount)


@router.get("/chefs/{chef_id}/availability", response_model=AvailabilityResponse)
async def check_availability(
    chef_id: str,
    date: date,
    start_time: str,
    duration_hours: int = Query(..., ge=1),
    repo=Depends(get_repo),
):
    to_minutes(start_time)
    if duration_hours > lifecycle.MAX_DURATION_HOURS:
        raise ValidationError(f"Duration must be between 1 and {lifecycle.MAX_DURATION_HOURS} hours")
    conflicts = await find_conflicts(repo, chef_id, date, start_time, duration_hours)
    return AvailabilityResponse(
        chef_id=chef_id,
        available=not conflicts,
        conflicts=[describe_slot(b) for b in conflicts],
    )


# ================= PAYMENTS =================

@router.post("/payments/orders", response_model=OrderResponse)
async def create_payment_order(
    data: CreateOrderRequest,
    reconciler=Depends(get_reconciler),
    principal: Principal = Depends(get_principal),
):
    return await reconciler.create_order(data.booking_id, data.amount, data.currency)


@router.post("/payments/verify", response_model=BookingResponse)
async def verify_payment(data: VerifyPaymentRequest, reconciler=Depends(get_reconciler)):
    booking = await reconciler.verify(data.order_id, data.payment_id, data.signature, data.booking_id)
    return BookingResponse.model_validate(booking)


@router.post("/payments/failure", response_model=BookingResponse)
async def payment_failure(
    data: PaymentFailureRequest,
    reconciler=Depends(get_reconciler),
    principal: Principal = Depends(get_principal),
):
    booking = await reconciler.record_failure(data.booking_id, data.reason, principal=principal)
    return BookingResponse.model_validate(booking)


@router.post("/payments/refund", response_model=RefundResponse)
async def refund_payment(
    data: RefundRequest,
    reconciler=Depends(get_reconciler),
    principal: Principal = Depends(get_principal),
):
    booking, amount, refund_id = await reconciler.refund(data.booking_id, data.reason, principal=principal)
    return RefundResponse(refund_id=refund_id, refund_amount=amount, booking=BookingResponse.model_validate(booking))


@router.get("/payments/{booking_id}", response_model=PaymentStatusResponse)
async def get_payment_status(booking_id: str, reconciler=Depends(get_reconciler)):
    return await reconciler.payment_status(booking_id)
