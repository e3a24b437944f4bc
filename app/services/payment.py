import logging
from typing import Protocol

import stripe

from app.exceptions.custom import PaymentError
from app.schemas.booking import PaymentIntentResponse, PaymentResult

logger = logging.getLogger(__name__)


class PaymentCapture(Protocol):
    async def capture(
        self, amount: float, currency: str, token: str | None = None
    ) -> PaymentResult: ...


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def build_stripe_client(secret_key: str, max_network_retries: int = 2) -> stripe.StripeClient:
    """Stripe client on the SDK's async httpx transport."""
    return stripe.StripeClient(
        secret_key,
        http_client=stripe.HTTPXClient(),
        max_network_retries=max_network_retries,
    )


def _payment_error(exc: stripe.StripeError) -> PaymentError:
    return PaymentError(exc.user_message or str(exc), status_code=exc.http_status)


class StripePaymentService:
    """Stripe PaymentIntents through the official SDK.

    The card is confirmed client-side; ``capture`` verifies (and, for manual
    capture intents, captures) the intent the client hands back as ``token``.
    """

    def __init__(self, client: stripe.StripeClient):
        self._client = client

    async def create_payment_intent(self, amount: float, currency: str) -> PaymentIntentResponse:
        try:
            intent = await self._client.v1.payment_intents.create_async(
                params={
                    "amount": to_minor_units(amount),
                    "currency": currency.lower(),
                    "automatic_payment_methods": {"enabled": True},
                }
            )
        except stripe.StripeError as exc:
            logger.error("Stripe create payment intent failed: %s", exc)
            raise _payment_error(exc) from exc

        logger.info("Created payment intent %s", intent.id)
        return PaymentIntentResponse(
            client_secret=intent.client_secret, payment_intent_id=intent.id
        )

    async def _retrieve(self, intent_id: str) -> stripe.PaymentIntent | None:
        try:
            return await self._client.v1.payment_intents.retrieve_async(intent_id)
        except stripe.InvalidRequestError as exc:
            if exc.http_status == 404:
                return None
            raise _payment_error(exc) from exc
        except stripe.StripeError as exc:
            raise _payment_error(exc) from exc

    async def _capture_intent(self, intent_id: str) -> stripe.PaymentIntent:
        try:
            return await self._client.v1.payment_intents.capture_async(intent_id)
        except stripe.StripeError as exc:
            raise _payment_error(exc) from exc

    async def capture(
        self, amount: float, currency: str, token: str | None = None
    ) -> PaymentResult:
        if not token:
            return PaymentResult(success=False, message="Missing payment reference")

        intent = await self._retrieve(token)
        if intent is None:
            return PaymentResult(success=False, message=f"Payment {token} not found")

        if intent.status == "requires_capture":
            logger.info("Capturing payment intent %s", token)
            intent = await self._capture_intent(token)

        if intent.status != "succeeded":
            logger.warning("Payment %s not completed: %s", token, intent.status)
            return PaymentResult(
                success=False, message=f"Payment not completed (status: {intent.status})"
            )

        received = getattr(intent, "amount_received", None) or getattr(intent, "amount", None) or 0
        intent_currency = (getattr(intent, "currency", None) or "").upper()
        if intent_currency and intent_currency != currency.upper():
            return PaymentResult(
                success=False,
                message=f"Payment currency {intent_currency} does not match {currency.upper()}",
            )
        if received < to_minor_units(amount):
            return PaymentResult(
                success=False, message="Captured amount does not cover the booking total"
            )

        return PaymentResult(
            success=True,
            payment_ref=intent.id,
            amount=received / 100,
            currency=intent_currency or currency.upper(),
        )
