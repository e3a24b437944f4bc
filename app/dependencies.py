from typing import Annotated

from fastapi import Depends, Request

from app.booking_store import BookingStore
from app.jobs import JobStore
from app.services.autocomplete import AutocompleteService
from app.services.booking import BookingService
from app.services.checkout import CheckoutService
from app.services.payment import StripePaymentService
from app.services.search import SearchService


def get_autocomplete_service(request: Request) -> AutocompleteService:
    return request.app.state.autocomplete_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_booking_store(request: Request) -> BookingStore:
    return request.app.state.booking_store


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_stripe_service(request: Request) -> StripePaymentService | None:
    return getattr(request.app.state, "stripe_service", None)


AutocompleteDep = Annotated[AutocompleteService, Depends(get_autocomplete_service)]
SearchDep = Annotated[SearchService, Depends(get_search_service)]
BookingDep = Annotated[BookingService, Depends(get_booking_service)]
CheckoutDep = Annotated[CheckoutService, Depends(get_checkout_service)]
BookingStoreDep = Annotated[BookingStore, Depends(get_booking_store)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
StripeDep = Annotated[StripePaymentService | None, Depends(get_stripe_service)]
