import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import ValidationError

from app.exceptions.custom import (
    BookingValidationError,
    InvalidBookingStateError,
    SupplierError,
)
from app.mappers.booking_state import next_state, read_status
from app.schemas.booking import (
    TERMINAL_STATES,
    BookingSession,
    BookingState,
    CancellationResult,
    Contact,
    Guest,
    Payment,
    StatusCheck,
)
from app.schemas.supplier import BookingFormData, Money
from app.services.supplier import Sleep, SupplierGateway

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0  # seconds
MAX_POLL_ATTEMPTS = 24  # 2 minutes at POLL_INTERVAL
RATE_NOT_FOUND = "rate_not_found"
INVALID_RESPONSE = "invalid_response"

CANCEL_MESSAGES = {
    "order_not_found": "Booking not found or already processed",
    "order_not_cancellable": (
        "This booking cannot be cancelled. The stay period may have started "
        "or cancellation is not permitted."
    ),
    "sandbox_restriction": "Cannot cancel this booking in the current environment",
    "lock": "Please wait a moment before trying again",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def validate_submission(guests: list[Guest], contact: Contact) -> None:
    """Local checks before the finish call. Raises BookingValidationError."""
    missing: list[str] = []
    if not guests:
        missing.append("guests")
    for i, guest in enumerate(guests):
        if not guest.first_name.strip():
            missing.append(f"guests[{i}].first_name")
        if not guest.last_name.strip():
            missing.append(f"guests[{i}].last_name")
    if not contact.email.strip():
        missing.append("contact.email")
    if not contact.phone.strip():
        missing.append("contact.phone")
    if missing:
        raise BookingValidationError(missing)


def _guest_payload(guest: Guest) -> dict:
    payload: dict = {"first_name": guest.first_name.strip(), "last_name": guest.last_name.strip()}
    if guest.is_child:
        payload["is_child"] = True
    if guest.age is not None:
        payload["age"] = guest.age
    return payload


def _money(value) -> Money | None:
    if not isinstance(value, dict):
        return None
    return Money(**{k: v for k, v in value.items() if v is not None})


class BookingService:
    def __init__(
        self,
        gateway: SupplierGateway,
        poll_interval: float = POLL_INTERVAL,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._sleep = sleep
        self._clock = clock

    async def create_session(self, book_hash: str) -> BookingSession:
        """Open a supplier booking form for a rate hash.

        Supplier failures end in ``form_error`` instead of raising; an expired
        hash is flagged with ``rate_expired`` so the UI can stay quiet about it.
        """
        if not book_hash:
            raise ValueError("book_hash is required")

        session = BookingSession(book_hash=book_hash)
        try:
            resp = await self._gateway.booking_form(book_hash)
        except SupplierError as exc:
            return self._form_error(session, exc.code, exc.message)

        if not resp.success or not isinstance(resp.data, dict):
            return self._form_error(
                session, resp.error, resp.error or "Failed to create booking form"
            )

        try:
            form = BookingFormData(**resp.data)
        except ValidationError:
            logger.warning("Unexpected booking form payload: %r", resp.data)
            return self._form_error(
                session, INVALID_RESPONSE, "Supplier returned an invalid booking form"
            )

        session.status = BookingState.form_created
        session.order_id = form.order_id
        session.partner_order_id = form.partner_order_id
        session.payment_types = form.payment_types
        logger.info(
            "Booking form created: order_id=%s partner_order_id=%s",
            form.order_id,
            form.partner_order_id,
        )
        return session

    def _form_error(
        self, session: BookingSession, code: str | None, message: str
    ) -> BookingSession:
        session.status = BookingState.form_error
        session.error_code = code
        session.error_message = message
        if code == RATE_NOT_FOUND:
            session.rate_expired = True
            logger.info("Rate expired for book_hash=%s", session.book_hash)
        else:
            logger.warning("Booking form failed for book_hash=%s: %s", session.book_hash, message)
        return session

    async def submit(
        self,
        session: BookingSession,
        guests: list[Guest],
        contact: Contact,
        payment: Payment,
        rooms_count: int = 1,
    ) -> BookingSession:
        """Send guests and the captured payment. ``processing`` on acceptance."""
        if session.status != BookingState.form_created or not session.partner_order_id:
            raise InvalidBookingStateError(
                session.status, BookingState.form_created, "submit booking"
            )
        validate_submission(guests, contact)

        session.guests = guests
        session.contact = contact
        session.payment = payment
        session.rooms_count = rooms_count

        user: dict = {"email": contact.email.strip(), "phone": contact.phone.strip()}
        comment_lines = [contact.comment] if contact.comment else []
        if payment.external_payment_ref:
            comment_lines.append(f"Payment ref: {payment.external_payment_ref}")
        if comment_lines:
            user["comment"] = "\n".join(comment_lines)

        try:
            resp = await self._gateway.booking_finish(
                session.partner_order_id,
                guests=[_guest_payload(g) for g in guests],
                user=user,
                payment={
                    "type": payment.type,
                    "amount": f"{payment.amount:.2f}",
                    "currency": payment.currency,
                },
                rooms_count=rooms_count,
                stripe_payment_id=payment.external_payment_ref,
            )
        except SupplierError as exc:
            return self._finish(session, BookingState.failed, exc.message)

        if not resp.success:
            return self._finish(
                session, BookingState.failed, resp.error or "Booking submission rejected"
            )

        session.status = BookingState.processing
        session.submitted_at = _now()
        logger.info("Booking %s submitted, awaiting confirmation", session.partner_order_id)
        return session

    async def poll(self, session: BookingSession) -> BookingSession:
        """Check status until terminal or the attempt budget runs out.

        Checks run strictly one after another, each a single attempt whose
        timeout is capped to the time left in the window of
        ``poll_interval * max_poll_attempts``. Transient failures and unknown
        statuses count as ``processing``. When the attempts or the window run
        out the booking is treated as confirmed and ``confirmation_assumed`` is
        set.
        """
        if session.status != BookingState.processing:
            raise InvalidBookingStateError(
                session.status, BookingState.processing, "poll booking"
            )

        deadline = self._clock() + self._poll_interval * self._max_poll_attempts

        for attempt in range(1, self._max_poll_attempts + 1):
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(self._poll_interval, remaining))

            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            try:
                resp = await self._gateway.booking_status(
                    session.partner_order_id, retry=False, timeout=remaining
                )
                supplier_status, error = read_status(resp)
            except SupplierError as exc:
                logger.warning(
                    "Status check %d for %s failed: %s",
                    attempt,
                    session.partner_order_id,
                    exc.message,
                )
                supplier_status, error = None, None

            state, message = next_state(supplier_status, error)
            session.status_checks.append(
                StatusCheck(
                    attempt=attempt,
                    supplier_status=supplier_status,
                    state=state,
                    checked_at=_now(),
                )
            )
            logger.info(
                "Booking %s status: %s (attempt %d/%d)",
                session.partner_order_id,
                supplier_status,
                attempt,
                self._max_poll_attempts,
            )

            if state in TERMINAL_STATES:
                return self._finish(session, state, message)

        logger.warning(
            "Booking %s still processing after %d checks, assuming confirmed",
            session.partner_order_id,
            len(session.status_checks),
        )
        session.confirmation_assumed = True
        return self._finish(session, BookingState.confirmed, None)

    def _finish(
        self, session: BookingSession, state: BookingState, message: str | None
    ) -> BookingSession:
        session.status = state
        session.error_message = message
        session.finished_at = _now()
        if state == BookingState.failed:
            logger.warning("Booking %s failed: %s", session.partner_order_id, message)
        else:
            logger.info("Booking %s confirmed", session.partner_order_id)
        return session

    async def finalize(
        self,
        session: BookingSession,
        guests: list[Guest],
        contact: Contact,
        payment: Payment,
        rooms_count: int = 1,
    ) -> BookingSession:
        session = await self.submit(session, guests, contact, payment, rooms_count)
        if session.status == BookingState.processing:
            session = await self.poll(session)
        return session

    async def cancel(self, partner_order_id: str) -> CancellationResult:
        try:
            resp = await self._gateway.booking_cancel(partner_order_id)
        except SupplierError as exc:
            return CancellationResult(
                success=False,
                partner_order_id=partner_order_id,
                message=exc.message,
                error_code="unknown",
            )

        data = resp.data if isinstance(resp.data, dict) else {}
        if resp.success:
            logger.info("Booking %s cancelled", partner_order_id)
            return CancellationResult(
                success=True,
                partner_order_id=partner_order_id,
                message=resp.message or "Booking cancelled successfully",
                cancellation_fee=_money(data.get("cancellation_fee")),
                refunded=_money(data.get("refunded")),
                original_amount=_money(data.get("original_amount")),
            )

        code = data.get("error_code") or resp.error or "unknown"
        logger.warning("Cancel %s rejected: %s", partner_order_id, code)
        return CancellationResult(
            success=False,
            partner_order_id=partner_order_id,
            message=CANCEL_MESSAGES.get(code) or resp.error or "Failed to cancel booking",
            error_code=code,
        )
