from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.schemas.booking import CheckoutResult


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    partner_order_id: str | None = None
    result: CheckoutResult | None = None
    error: str | None = None
