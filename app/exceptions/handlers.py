import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import (
    BookingValidationError,
    InvalidBookingStateError,
    PaymentError,
    SupplierError,
)

logger = logging.getLogger(__name__)


async def supplier_error_handler(_request: Request, exc: SupplierError) -> JSONResponse:
    logger.error("Supplier error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=502,
        content={"detail": f"Supplier error: {exc.message}", "code": exc.code},
    )


async def payment_error_handler(_request: Request, exc: PaymentError) -> JSONResponse:
    logger.error("Payment error: %s (status=%s)", exc.message, exc.status_code)
    return JSONResponse(
        status_code=402,
        content={"detail": f"Payment error: {exc.message}"},
    )


async def booking_validation_error_handler(
    _request: Request, exc: BookingValidationError
) -> JSONResponse:
    logger.info("Rejected booking submission: %s", exc.message)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "fields": exc.fields},
    )


async def invalid_booking_state_handler(
    _request: Request, exc: InvalidBookingStateError
) -> JSONResponse:
    logger.warning("Invalid booking state: %s", exc.message)
    return JSONResponse(status_code=409, content={"detail": exc.message})
