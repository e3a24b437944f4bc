import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from app.booking_store import BookingStore
from app.config import Settings
from app.exceptions.custom import (
    BookingValidationError,
    InvalidBookingStateError,
    PaymentError,
    SupplierError,
)
from app.exceptions.handlers import (
    booking_validation_error_handler,
    invalid_booking_state_handler,
    payment_error_handler,
    supplier_error_handler,
)
from app.jobs import JobStore
from app.routers.bookings import router as bookings_router
from app.routers.hotels import router as hotels_router
from app.routers.payments import router as payments_router
from app.services.autocomplete import AutocompleteService
from app.services.booking import BookingService
from app.services.checkout import CheckoutService
from app.services.payment import StripePaymentService, build_stripe_client
from app.services.search import HotelInfoCache, SearchService
from app.services.supplier import SupplierGateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=settings.supplier_timeout_seconds) as client:
        gateway = SupplierGateway(
            client,
            settings.supplier_base_url,
            retry_attempts=settings.supplier_retry_attempts,
            retry_delay=settings.supplier_retry_delay,
            language=settings.supplier_language,
            residency=settings.supplier_residency,
        )
        booking = BookingService(
            gateway,
            poll_interval=settings.booking_poll_interval,
            max_poll_attempts=settings.booking_poll_max_attempts,
        )

        # Without a key, checkout raises PaymentError and /payments/intent answers 400
        payments: StripePaymentService | None = None
        if settings.stripe_secret_key:
            payments = StripePaymentService(build_stripe_client(settings.stripe_secret_key))

        booking_store = BookingStore()

        app.state.autocomplete_service = AutocompleteService(gateway)
        app.state.search_service = SearchService(
            gateway,
            cache=HotelInfoCache(),
            enrichment_limit=settings.enrichment_limit,
            stagger=settings.enrichment_stagger_seconds,
        )
        app.state.booking_service = booking
        app.state.stripe_service = payments
        app.state.booking_store = booking_store
        app.state.checkout_service = CheckoutService(booking, payments, booking_store)
        app.state.job_store = JobStore()

        yield


app = FastAPI(title="Hotel Booking", lifespan=lifespan)

app.add_exception_handler(SupplierError, supplier_error_handler)
app.add_exception_handler(PaymentError, payment_error_handler)
app.add_exception_handler(BookingValidationError, booking_validation_error_handler)
app.add_exception_handler(InvalidBookingStateError, invalid_booking_state_handler)

app.include_router(hotels_router)
app.include_router(bookings_router)
app.include_router(payments_router)
