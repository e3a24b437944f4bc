from app.schemas.booking import BookingState
from app.schemas.supplier import SupplierResponse

THREE_DS_MESSAGE = (
    "Payment verification required (3-D Secure). "
    "This booking could not be completed automatically, please contact support."
)
DEFAULT_FAILURE_MESSAGE = "Booking failed"


def read_status(resp: SupplierResponse) -> tuple[str | None, str | None]:
    """Extract (supplier_status, error_message) from a status-poll response."""
    status = None
    if isinstance(resp.data, dict):
        status = resp.data.get("status")
    if status is None and not resp.success:
        status = "error"
    return status, resp.error


def next_state(
    supplier_status: str | None, error: str | None = None
) -> tuple[BookingState, str | None]:
    """Map one supplier status onto the session state.

    ok -> confirmed, error -> failed with the supplier message, 3ds -> failed
    (deposit bookings never expect a 3DS challenge). Anything else, including a
    failed check (None), keeps the session processing.
    """
    if supplier_status == "ok":
        return BookingState.confirmed, None
    if supplier_status == "error":
        return BookingState.failed, error or DEFAULT_FAILURE_MESSAGE
    if supplier_status == "3ds":
        return BookingState.failed, THREE_DS_MESSAGE
    return BookingState.processing, None
