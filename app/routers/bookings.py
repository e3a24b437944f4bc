import asyncio
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from app.dependencies import BookingDep, BookingStoreDep, CheckoutDep, JobStoreDep
from app.jobs import JobStore
from app.schemas.booking import (
    BookingFormRequest,
    BookingRecord,
    BookingSession,
    CancellationResult,
    CheckoutRequest,
    CheckoutResult,
    RecordPage,
    RecordStatus,
)
from app.schemas.responses import JobStatusResponse, JobSubmittedResponse
from app.services.checkout import CheckoutService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _run_checkout(
    job_id: str,
    service: CheckoutService,
    store: JobStore,
    request: CheckoutRequest,
) -> None:
    store.mark_running(job_id)
    try:
        result = await service.checkout(request)
        store.mark_completed(job_id, result)
    except Exception as exc:
        logger.exception("Checkout job %s failed", job_id)
        store.mark_failed(job_id, str(exc))


@router.post("/bookings/form", response_model=BookingSession)
async def create_booking_form(
    request: BookingFormRequest, service: BookingDep
) -> BookingSession:
    book_hash = request.book_hash or request.match_hash
    if not book_hash:
        raise HTTPException(status_code=400, detail="book_hash or match_hash is required")
    return await service.create_session(book_hash)


@router.post("/bookings/checkout", response_model=JobSubmittedResponse, status_code=202)
async def checkout(
    request: CheckoutRequest,
    service: CheckoutDep,
    store: JobStoreDep,
) -> JobSubmittedResponse:
    existing = store.has_active_job(request.partner_order_id)
    if existing:
        return JSONResponse(content={
            "job_id": existing.job_id,
            "status": "already_running",
            "message": "A checkout is already in progress for this booking",
        })

    job = store.create_job(partner_order_id=request.partner_order_id)
    asyncio.create_task(_run_checkout(job.job_id, service, store, request))
    return JobSubmittedResponse(
        job_id=job.job_id,
        status=job.status,
        message="Checkout job submitted",
    )


@router.post("/bookings/checkout/sync", response_model=CheckoutResult)
async def checkout_sync(request: CheckoutRequest, service: CheckoutDep) -> CheckoutResult:
    return await service.checkout(request)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())


@router.get("/bookings", response_model=RecordPage)
async def list_bookings(
    records: BookingStoreDep,
    filter: str | None = None,
    sort: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> RecordPage:
    return records.list_records(filter=filter, sort=sort, page=page, limit=limit)


@router.get("/bookings/payments", response_model=list[BookingRecord])
async def list_payments(records: BookingStoreDep) -> list[BookingRecord]:
    return records.payments()


@router.get("/bookings/{record_id}", response_model=BookingRecord)
async def get_booking(record_id: str, records: BookingStoreDep) -> BookingRecord:
    record = records.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return record


@router.post("/bookings/{record_id}/cancel", response_model=CancellationResult)
async def cancel_booking(
    record_id: str, records: BookingStoreDep, service: BookingDep
) -> CancellationResult:
    record = records.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Booking not found")

    if not record.partner_order_id:
        # Never reached the supplier: local record only.
        records.update_status(record_id, RecordStatus.cancelled)
        return CancellationResult(
            success=True, partner_order_id="", message="Booking cancelled"
        )

    result = await service.cancel(record.partner_order_id)
    if result.success:
        records.update_status(record_id, RecordStatus.cancelled, result.message)
    return result
