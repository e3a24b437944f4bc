from fastapi import APIRouter, HTTPException

from app.dependencies import StripeDep
from app.schemas.booking import PaymentIntentRequest, PaymentIntentResponse

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    request: PaymentIntentRequest, stripe: StripeDep
) -> PaymentIntentResponse:
    if stripe is None:
        raise HTTPException(status_code=400, detail="Stripe is not configured")
    return await stripe.create_payment_intent(request.amount, request.currency)
