from fastapi import Request
from fastapi.responses import JSONResponse


class BookingServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self):
        if not self.details:
            return self.message
        return {"message": self.message, **self.details}


class ValidationError(BookingServiceError):
    status_code = 400


class InvalidTransitionError(ValidationError):
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot transition booking from {current} to {target}",
            current=current,
            target=target,
        )


class NotFoundError(BookingServiceError):
    status_code = 404


class ConflictError(BookingServiceError):
    """Requested slot overlaps an active booking for the same chef."""

    status_code = 409

    def __init__(self, conflict: dict):
        super().__init__(
            "Chef is already booked for an overlapping time slot",
            conflicting_booking=conflict,
        )
        self.conflict = conflict


class UnauthorizedError(BookingServiceError):
    status_code = 403


class SignatureMismatchError(BookingServiceError):
    status_code = 400


class NoRefundEligibleError(BookingServiceError):
    status_code = 400


class RepositoryError(BookingServiceError):
    status_code = 503


class GatewayError(BookingServiceError):
    status_code = 502


class GatewayTimeoutError(GatewayError):
    status_code = 504


async def booking_error_handler(request: Request, exc: BookingServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})
