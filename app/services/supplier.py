import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date

import httpx

from app.exceptions.custom import SupplierError
from app.schemas.supplier import SupplierResponse

logger = logging.getLogger(__name__)

AUTOCOMPLETE_PATH = "/hotels/autocomplete"
SEARCH_PATH = "/hotels/search"
INFO_PATH = "/hotels/info"
RATES_PATH = "/hotels/rates"
BOOKING_FORM_PATH = "/hotels/booking/form"
BOOKING_FINISH_PATH = "/hotels/booking/finish"
BOOKING_STATUS_PATH = "/hotels/booking/status"
BOOKING_CANCEL_PATH = "/hotels/booking/cancel"

_ENVELOPE_KEYS = {"success", "error", "message", "data"}

Sleep = Callable[[float], Awaitable[None]]


def _is_retryable(resp: httpx.Response) -> bool:
    return resp.status_code >= 500 or resp.status_code == 429


def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        error = body.get("error") or body.get("message")
        if error:
            return str(error)
    return resp.text or f"HTTP {resp.status_code}"


def normalize_response(resp: httpx.Response) -> SupplierResponse:
    """Fold the proxy's JSON body into a SupplierResponse.

    The proxy answers either ``{success, data, error}`` or ``{success, <key>: ...}``
    (autocomplete, search, info, rates). In the second form the non-envelope keys
    become ``data``.
    """
    try:
        body = resp.json()
    except ValueError:
        return SupplierResponse(
            success=False,
            error=resp.text or f"HTTP {resp.status_code}",
            status_code=resp.status_code,
        )

    if not isinstance(body, dict):
        return SupplierResponse(
            success=resp.is_success, data=body, status_code=resp.status_code
        )

    success = resp.is_success and bool(body.get("success", True))
    error = body.get("error")
    if isinstance(error, dict):
        error = error.get("message") or error.get("code") or str(error)

    data = body.get("data")
    if data is None:
        rest = {k: v for k, v in body.items() if k not in _ENVELOPE_KEYS}
        data = rest or None

    return SupplierResponse(
        success=success,
        data=data,
        error=str(error) if error is not None else None,
        message=body.get("message"),
        status_code=resp.status_code,
    )


class SupplierGateway:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        language: str = "en",
        residency: str = "us",
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._language = language
        self._residency = residency
        self._sleep = sleep

    async def call(
        self,
        endpoint: str,
        body: dict,
        retry: bool = True,
        timeout: float | None = None,
    ) -> SupplierResponse:
        """POST to the proxy, retrying transport failures and 5xx/429 only.

        A well-formed answer is returned as-is even when ``success`` is false so
        the caller can branch on the error code. Raises SupplierError once all
        attempts fail. ``retry=False`` makes a single attempt; ``timeout``
        overrides the client timeout for this call.
        """
        url = f"{self._base_url}{endpoint}"
        attempts = self._retry_attempts if retry else 1
        extra = {"timeout": timeout} if timeout is not None else {}
        last_error = ""
        last_status: int | None = None

        for attempt in range(1, attempts + 1):
            logger.info("Supplier POST %s (attempt %d/%d)", endpoint, attempt, attempts)
            try:
                resp = await self._client.post(url, json=body, **extra)
            except httpx.TransportError as exc:
                last_error = str(exc) or type(exc).__name__
                last_status = None
            else:
                if not _is_retryable(resp):
                    return normalize_response(resp)
                last_error = _error_text(resp)
                last_status = resp.status_code

            if attempt < attempts:
                delay = self._retry_delay * attempt
                logger.warning(
                    "Supplier %s failed (%s), retrying in %.1fs", endpoint, last_error, delay
                )
                await self._sleep(delay)

        logger.error(
            "Supplier %s failed after %d attempts: %s",
            endpoint,
            attempts,
            last_error,
        )
        raise SupplierError(last_error, status_code=last_status)

    async def autocomplete(self, query: str) -> SupplierResponse:
        return await self.call(
            AUTOCOMPLETE_PATH, {"query": query, "language": self._language}
        )

    async def search(
        self,
        region_id: int,
        checkin: date,
        checkout: date,
        guests: list[dict],
        currency: str,
    ) -> SupplierResponse:
        return await self.call(
            SEARCH_PATH,
            {
                "region_id": region_id,
                "checkin": checkin.isoformat(),
                "checkout": checkout.isoformat(),
                "guests": guests,
                "currency": currency,
                "language": self._language,
                "residency": self._residency,
            },
        )

    async def hotel_info(self, hotel_id: str) -> SupplierResponse:
        return await self.call(INFO_PATH, {"id": hotel_id, "language": self._language})

    async def rates(
        self,
        hotel_id: str,
        checkin: date,
        checkout: date,
        guests: list[dict],
        currency: str,
    ) -> SupplierResponse:
        return await self.call(
            RATES_PATH,
            {
                "id": hotel_id,
                "checkin": checkin.isoformat(),
                "checkout": checkout.isoformat(),
                "guests": guests,
                "currency": currency,
                "residency": self._residency,
                "language": self._language,
            },
        )

    async def booking_form(self, book_hash: str) -> SupplierResponse:
        return await self.call(
            BOOKING_FORM_PATH, {"book_hash": book_hash, "language": self._language}
        )

    async def booking_finish(
        self,
        partner_order_id: str,
        guests: list[dict],
        user: dict,
        payment: dict,
        rooms_count: int,
        stripe_payment_id: str | None = None,
    ) -> SupplierResponse:
        body: dict = {
            "partner_order_id": partner_order_id,
            "guests": guests,
            "user": user,
            "payment": payment,
            "rooms_count": rooms_count,
            "language": self._language,
        }
        if stripe_payment_id:
            body["stripe_payment_id"] = stripe_payment_id
        return await self.call(BOOKING_FINISH_PATH, body)

    async def booking_status(
        self,
        partner_order_id: str,
        retry: bool = True,
        timeout: float | None = None,
    ) -> SupplierResponse:
        return await self.call(
            BOOKING_STATUS_PATH,
            {"partner_order_id": partner_order_id},
            retry=retry,
            timeout=timeout,
        )

    async def booking_cancel(self, partner_order_id: str) -> SupplierResponse:
        return await self.call(
            BOOKING_CANCEL_PATH, {"partner_order_id": partner_order_id}
        )
