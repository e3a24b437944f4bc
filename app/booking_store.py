from __future__ import annotations

import math
from datetime import datetime, timezone

from app.schemas.booking import BookingRecord, RecordPage, RecordStatus

_SORT_KEYS = {
    "latest": (lambda r: r.created_at, True),
    "oldest": (lambda r: r.created_at, False),
    "price-high": (lambda r: r.total_price, True),
    "price-low": (lambda r: r.total_price, False),
}


class BookingStore:
    """In-memory booking records keyed by record id."""

    def __init__(self) -> None:
        self._records: dict[str, BookingRecord] = {}

    def save(self, record: BookingRecord) -> BookingRecord:
        existing = self._records.get(record.id)
        if existing:
            record = record.model_copy(update={"created_at": existing.created_at})
        record.updated_at = datetime.now(timezone.utc)
        self._records[record.id] = record
        return record

    def get(self, record_id: str) -> BookingRecord | None:
        return self._records.get(record_id)

    def find_by_partner_order_id(self, partner_order_id: str) -> BookingRecord | None:
        return next(
            (r for r in self._records.values() if r.partner_order_id == partner_order_id),
            None,
        )

    def find_by_payment_id(self, payment_id: str) -> BookingRecord | None:
        return next(
            (r for r in self._records.values() if r.payment_id == payment_id),
            None,
        )

    def update_status(
        self, record_id: str, status: RecordStatus, message: str | None = None
    ) -> BookingRecord | None:
        if record := self._records.get(record_id):
            record.status = status
            if message is not None:
                record.message = message
            record.updated_at = datetime.now(timezone.utc)
        return record

    def list_records(
        self,
        filter: str | None = None,
        sort: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> RecordPage:
        records = list(self._records.values())
        if filter and filter != "all":
            records = [r for r in records if r.type == filter or r.status == filter]

        key, reverse = _SORT_KEYS.get(sort or "latest", _SORT_KEYS["latest"])
        records.sort(key=key, reverse=reverse)

        page = max(1, page)
        limit = max(1, limit)
        start = (page - 1) * limit
        return RecordPage(
            data=records[start:start + limit],
            page=page,
            limit=limit,
            total=len(records),
            total_pages=math.ceil(len(records) / limit),
        )

    def payments(self) -> list[BookingRecord]:
        return sorted(
            (r for r in self._records.values() if r.payment_id),
            key=lambda r: r.created_at,
            reverse=True,
        )
