import logging
import uuid

from app.booking_store import BookingStore
from app.exceptions.custom import PaymentError
from app.schemas.booking import (
    BookingRecord,
    BookingSession,
    BookingState,
    CheckoutRequest,
    CheckoutResult,
    GuestDetails,
    Payment,
    RecordStatus,
)
from app.services.booking import BookingService, validate_submission
from app.services.payment import PaymentCapture

logger = logging.getLogger(__name__)

SUPPORT_MESSAGE = "Our support team will contact you to complete this booking."


class CheckoutService:
    def __init__(
        self,
        booking: BookingService,
        payments: PaymentCapture | None,
        store: BookingStore,
    ):
        self._booking = booking
        self._payments = payments
        self._store = store
        self._in_flight: set[str] = set()

    async def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """Payment capture followed by supplier finalization, then a stored record.

        A session that could not be created (``form_error``, e.g. an expired
        rate) does not block payment: the booking is recorded as ``pending`` for
        manual fulfilment. A payment reference or partner order that already
        backs a record (or a checkout in progress) is never booked twice.
        """
        validate_submission(request.guests, request.contact)

        if self._payments is None:
            raise PaymentError("Payment processor is not configured")

        duplicate = self._find_duplicate(request)
        if duplicate is not None:
            return duplicate

        keys = self._reservation_keys(request)
        self._in_flight.update(keys)
        try:
            return await self._checkout(request)
        finally:
            self._in_flight.difference_update(keys)

    def _reservation_keys(self, request: CheckoutRequest) -> set[str]:
        keys = set()
        if request.payment_token:
            keys.add(f"payment:{request.payment_token}")
        if request.partner_order_id:
            keys.add(f"order:{request.partner_order_id}")
        return keys

    def _find_duplicate(self, request: CheckoutRequest) -> CheckoutResult | None:
        existing = None
        if request.payment_token:
            existing = self._store.find_by_payment_id(request.payment_token)
        if existing is None and request.partner_order_id:
            existing = self._store.find_by_partner_order_id(request.partner_order_id)
        if existing is not None:
            logger.warning(
                "Checkout rejected: payment %s / order %s already backs record %s",
                request.payment_token,
                request.partner_order_id,
                existing.id,
            )
            return CheckoutResult(
                status="duplicate",
                message=f"This payment is already used by booking {existing.id}",
                record=existing,
            )

        if self._reservation_keys(request) & self._in_flight:
            logger.warning("Checkout rejected: payment %s already in progress", request.payment_token)
            return CheckoutResult(
                status="duplicate",
                message="A checkout for this payment is already in progress",
            )
        return None

    async def _checkout(self, request: CheckoutRequest) -> CheckoutResult:
        session = await self._resolve_session(request)

        payment = await self._payments.capture(
            request.amount, request.currency, request.payment_token
        )
        if not payment.success:
            logger.warning("Payment declined for checkout: %s", payment.message)
            return CheckoutResult(
                status="payment_failed", message=payment.message, session=session
            )

        if session is not None and session.status == BookingState.form_created:
            session = await self._booking.finalize(
                session,
                request.guests,
                request.contact,
                Payment(
                    type=request.payment_type,
                    amount=request.amount,
                    currency=request.currency,
                    external_payment_ref=payment.payment_ref,
                ),
                request.rooms_count,
            )
            status = RecordStatus(session.status.value)
            message = session.error_message
            if status == RecordStatus.failed:
                message = f"{message}. {SUPPORT_MESSAGE}" if message else SUPPORT_MESSAGE
        else:
            status = RecordStatus.pending
            message = SUPPORT_MESSAGE
            logger.warning(
                "Checkout continuing without supplier session (payment %s): %s",
                payment.payment_ref,
                session.error_message if session else "no rate selected",
            )

        record = self._store.save(
            BookingRecord(
                id=uuid.uuid4().hex[:12],
                payment_id=payment.payment_ref,
                item_id=request.hotel_id,
                guest_details=GuestDetails(guests=request.guests, contact=request.contact),
                booked_by=request.booked_by or request.contact.email,
                total_price=request.amount,
                currency=request.currency,
                status=status,
                partner_order_id=session.partner_order_id if session else None,
                order_id=session.order_id if session else None,
                message=message,
            )
        )
        logger.info("Booking record %s stored with status %s", record.id, record.status)
        return CheckoutResult(
            status=record.status.value, message=message, session=session, record=record
        )

    async def _resolve_session(self, request: CheckoutRequest) -> BookingSession | None:
        if request.partner_order_id:
            return BookingSession(
                book_hash=request.book_hash or "",
                status=BookingState.form_created,
                partner_order_id=request.partner_order_id,
            )
        if request.book_hash:
            return await self._booking.create_session(request.book_hash)
        return None
