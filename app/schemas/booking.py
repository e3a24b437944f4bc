from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.supplier import Money


class BookingState(StrEnum):
    uninitialized = "uninitialized"
    form_created = "form_created"
    form_error = "form_error"
    processing = "processing"
    confirmed = "confirmed"
    failed = "failed"


TERMINAL_STATES = {BookingState.confirmed, BookingState.failed}


class Guest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    is_child: bool = False
    age: int | None = None


class Contact(BaseModel):
    email: str = ""
    phone: str = ""
    comment: str | None = None


class Payment(BaseModel):
    type: Literal["deposit", "now"] = "deposit"
    amount: float = Field(ge=0)
    currency: str = "USD"
    external_payment_ref: str | None = None


class StatusCheck(BaseModel):
    attempt: int
    supplier_status: str | None  # None when the check itself failed
    state: BookingState
    checked_at: datetime


class BookingSession(BaseModel):
    book_hash: str
    status: BookingState = BookingState.uninitialized
    order_id: int | str | None = None
    partner_order_id: str | None = None
    payment_types: list[dict] = []
    guests: list[Guest] = []
    contact: Contact | None = None
    payment: Payment | None = None
    rooms_count: int = 1
    error_code: str | None = None
    error_message: str | None = None
    rate_expired: bool = False
    # Set when the poll budget ran out and the booking was assumed confirmed.
    confirmation_assumed: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    submitted_at: datetime | None = None
    finished_at: datetime | None = None
    status_checks: list[StatusCheck] = []


class BookingFormRequest(BaseModel):
    book_hash: str | None = None
    match_hash: str | None = None


class PaymentResult(BaseModel):
    success: bool
    payment_ref: str | None = None
    amount: float | None = None
    currency: str | None = None
    message: str | None = None


class PaymentIntentRequest(BaseModel):
    amount: float = Field(gt=0)
    currency: str = "usd"


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str


class CancellationResult(BaseModel):
    success: bool
    partner_order_id: str
    message: str
    error_code: str | None = None
    cancellation_fee: Money | None = None
    refunded: Money | None = None
    original_amount: Money | None = None


class RecordStatus(StrEnum):
    confirmed = "confirmed"
    failed = "failed"
    pending = "pending"  # payment taken, supplier booking not made
    cancelled = "cancelled"


class GuestDetails(BaseModel):
    guests: list[Guest] = []
    contact: Contact | None = None


class BookingRecord(BaseModel):
    id: str
    payment_id: str | None = None
    type: str = "hotel"
    item_id: str | None = None
    guest_details: GuestDetails = Field(default_factory=GuestDetails)
    booked_by: str | None = None
    total_price: float = 0.0
    currency: str = "USD"
    status: RecordStatus
    partner_order_id: str | None = None
    order_id: int | str | None = None
    message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None


class CheckoutRequest(BaseModel):
    hotel_id: str | None = None
    book_hash: str | None = None
    partner_order_id: str | None = None
    guests: list[Guest]
    contact: Contact
    amount: float = Field(ge=0)
    currency: str = "USD"
    rooms_count: int = Field(default=1, ge=1)
    payment_type: Literal["deposit", "now"] = "deposit"
    payment_token: str | None = None
    booked_by: str | None = None


class CheckoutResult(BaseModel):
    status: Literal["confirmed", "failed", "pending", "payment_failed", "duplicate"]
    message: str | None = None
    session: BookingSession | None = None
    record: BookingRecord | None = None


class RecordPage(BaseModel):
    data: list[BookingRecord]
    page: int
    limit: int
    total: int
    total_pages: int
