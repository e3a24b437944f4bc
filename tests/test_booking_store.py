"""Tests for BookingStore filtering, sorting and pagination."""

from datetime import datetime, timedelta, timezone

from app.booking_store import BookingStore
from app.schemas.booking import BookingRecord, RecordStatus

BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _record(record_id, price, status=RecordStatus.confirmed, days=0, payment_id="pi"):
    return BookingRecord(
        id=record_id,
        payment_id=payment_id,
        total_price=price,
        status=status,
        partner_order_id=f"P-{record_id}",
        created_at=BASE + timedelta(days=days),
    )


def _store():
    store = BookingStore()
    store.save(_record("a", 100, days=0))
    store.save(_record("b", 300, status=RecordStatus.failed, days=1))
    store.save(_record("c", 200, status=RecordStatus.pending, days=2, payment_id=None))
    return store


def test_save_and_get():
    store = _store()
    assert store.get("a").total_price == 100
    assert store.get("a").updated_at is not None
    assert store.get("zzz") is None


def test_save_upsert_keeps_created_at():
    store = _store()
    store.save(_record("a", 150, days=10))

    record = store.get("a")
    assert record.total_price == 150
    assert record.created_at == BASE


def test_find_by_partner_order_id():
    assert _store().find_by_partner_order_id("P-b").id == "b"
    assert _store().find_by_partner_order_id("P-x") is None


def test_update_status():
    store = _store()
    store.update_status("a", RecordStatus.cancelled, "Cancelled by guest")

    assert store.get("a").status == RecordStatus.cancelled
    assert store.get("a").message == "Cancelled by guest"
    assert store.update_status("missing", RecordStatus.cancelled) is None


def test_default_sort_is_latest():
    assert [r.id for r in _store().list_records().data] == ["c", "b", "a"]


def test_sort_orders():
    store = _store()
    assert [r.id for r in store.list_records(sort="oldest").data] == ["a", "b", "c"]
    assert [r.id for r in store.list_records(sort="price-high").data] == ["b", "c", "a"]
    assert [r.id for r in store.list_records(sort="price-low").data] == ["a", "c", "b"]


def test_filter_by_status_and_type():
    store = _store()
    assert [r.id for r in store.list_records(filter="failed").data] == ["b"]
    assert store.list_records(filter="hotel").total == 3
    assert store.list_records(filter="all").total == 3
    assert store.list_records(filter="flight").total == 0


def test_pagination():
    page = _store().list_records(sort="oldest", page=2, limit=2)
    assert [r.id for r in page.data] == ["c"]
    assert page.total == 3
    assert page.total_pages == 2
    assert page.page == 2


def test_payments_only_records_with_payment_id():
    assert [r.id for r in _store().payments()] == ["b", "a"]


def test_find_by_payment_id():
    store = _store()
    store.save(_record("d", 50, payment_id="pi_d"))

    assert store.find_by_payment_id("pi_d").id == "d"
    assert store.find_by_payment_id("pi_missing") is None
