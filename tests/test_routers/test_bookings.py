import asyncio

import respx
from httpx import AsyncClient, Response

SUPPLIER_URL = "http://supplier.test/api"
FORM_URL = f"{SUPPLIER_URL}/hotels/booking/form"
FINISH_URL = f"{SUPPLIER_URL}/hotels/booking/finish"
STATUS_URL = f"{SUPPLIER_URL}/hotels/booking/status"
CANCEL_URL = f"{SUPPLIER_URL}/hotels/booking/cancel"
STRIPE_INTENTS_URL = "https://api.stripe.com/v1/payment_intents"

CHECKOUT_BODY = {
    "hotel_id": "hotel_lumen",
    "book_hash": "bh_1",
    "guests": [{"first_name": "Ana", "last_name": "Silva"}],
    "contact": {"email": "ana@example.com", "phone": "+351 900 000 000"},
    "amount": 250.0,
    "currency": "EUR",
    "payment_token": "pi_123",
}


def _mock_form(partner_order_id="P-1"):
    respx.post(FORM_URL).mock(
        return_value=Response(
            200,
            json={
                "success": True,
                "data": {"order_id": 555, "partner_order_id": partner_order_id},
            },
        )
    )


def _mock_stripe_succeeded():
    respx.get(f"{STRIPE_INTENTS_URL}/pi_123").mock(
        return_value=Response(
            200,
            json={
                "id": "pi_123",
                "status": "succeeded",
                "amount": 25000,
                "amount_received": 25000,
                "currency": "eur",
            },
        )
    )


def _mock_finish_and_status(*statuses):
    finish = respx.post(FINISH_URL).mock(return_value=Response(200, json={"success": True, "data": {}}))
    respx.post(STATUS_URL).mock(
        side_effect=[
            Response(200, json={"success": True, "data": {"status": s}}) for s in statuses
        ]
    )
    return finish


async def submit_and_wait(client: AsyncClient, json=None, timeout: float = 5.0):
    """POST /bookings/checkout → 202, then poll GET /jobs/{job_id} until terminal state."""
    resp = await client.post("/bookings/checkout", json=json)
    assert resp.status_code == 202

    data = resp.json()
    job_id = data["job_id"]
    assert data["status"] == "pending"

    deadline = asyncio.get_event_loop().time() + timeout
    while asyncio.get_event_loop().time() < deadline:
        await asyncio.sleep(0.05)
        status_resp = await client.get(f"/jobs/{job_id}")
        assert status_resp.status_code == 200
        job = status_resp.json()
        if job["status"] in ("completed", "failed"):
            return job

    raise TimeoutError(f"Job {job_id} did not complete within {timeout}s")


@respx.mock
async def test_booking_form_created(client):
    _mock_form()

    resp = await client.post("/bookings/form", json={"book_hash": "bh_1"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "form_created"
    assert data["partner_order_id"] == "P-1"


@respx.mock
async def test_booking_form_expired_rate(client):
    respx.post(FORM_URL).mock(
        return_value=Response(400, json={"success": False, "error": "rate_not_found"})
    )

    resp = await client.post("/bookings/form", json={"match_hash": "mh_1"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "form_error"
    assert data["rate_expired"] is True


async def test_booking_form_requires_hash(client):
    resp = await client.post("/bookings/form", json={})
    assert resp.status_code == 400


@respx.mock
async def test_checkout_sync_confirmed(client):
    _mock_form()
    _mock_stripe_succeeded()
    _mock_finish_and_status("processing", "ok")

    resp = await client.post("/bookings/checkout/sync", json=CHECKOUT_BODY)

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "confirmed"
    assert data["record"]["status"] == "confirmed"
    assert data["session"]["partner_order_id"] == "P-1"
    assert len(data["session"]["status_checks"]) == 2


@respx.mock
async def test_checkout_job_completes(client):
    _mock_form()
    _mock_stripe_succeeded()
    _mock_finish_and_status("3ds")

    job = await submit_and_wait(client, json=CHECKOUT_BODY)

    assert job["status"] == "completed"
    assert job["result"]["status"] == "failed"
    assert "3-D Secure" in job["result"]["message"]


async def test_checkout_missing_contact_is_422(client):
    body = {**CHECKOUT_BODY, "contact": {"email": "", "phone": ""}}

    resp = await client.post("/bookings/checkout/sync", json=body)

    assert resp.status_code == 422
    assert resp.json()["fields"] == ["contact.email", "contact.phone"]


async def test_checkout_duplicate_returns_already_running(client):
    from app.main import app

    existing = app.state.job_store.create_job(partner_order_id="P-7")

    resp = await client.post(
        "/bookings/checkout", json={**CHECKOUT_BODY, "partner_order_id": "P-7"}
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "already_running"
    assert data["job_id"] == existing.job_id


async def test_job_not_found(client):
    resp = await client.get("/jobs/nope")
    assert resp.status_code == 404


@respx.mock
async def test_list_get_and_cancel_booking(client):
    _mock_form()
    _mock_stripe_succeeded()
    _mock_finish_and_status("ok")
    respx.post(CANCEL_URL).mock(
        return_value=Response(
            200,
            json={
                "success": True,
                "data": {"refunded": {"amount": 250.0, "currency": "EUR"}},
            },
        )
    )

    created = (await client.post("/bookings/checkout/sync", json=CHECKOUT_BODY)).json()
    record_id = created["record"]["id"]

    listing = await client.get("/bookings", params={"filter": "confirmed"})
    assert listing.status_code == 200
    assert listing.json()["total"] == 1

    payments = await client.get("/bookings/payments")
    assert payments.json()[0]["payment_id"] == "pi_123"

    fetched = await client.get(f"/bookings/{record_id}")
    assert fetched.json()["partner_order_id"] == "P-1"

    cancelled = await client.post(f"/bookings/{record_id}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["success"] is True
    assert cancelled.json()["refunded"]["amount"] == 250.0

    fetched = await client.get(f"/bookings/{record_id}")
    assert fetched.json()["status"] == "cancelled"


@respx.mock
async def test_cancel_rejected_keeps_record(client):
    _mock_form()
    _mock_stripe_succeeded()
    _mock_finish_and_status("ok")
    respx.post(CANCEL_URL).mock(
        return_value=Response(
            400, json={"success": False, "error": "order_not_cancellable"}
        )
    )

    created = (await client.post("/bookings/checkout/sync", json=CHECKOUT_BODY)).json()
    record_id = created["record"]["id"]

    resp = await client.post(f"/bookings/{record_id}/cancel")

    assert resp.json()["success"] is False
    assert resp.json()["error_code"] == "order_not_cancellable"
    assert (await client.get(f"/bookings/{record_id}")).json()["status"] == "confirmed"


async def test_get_unknown_booking_is_404(client):
    resp = await client.get("/bookings/unknown")
    assert resp.status_code == 404


@respx.mock
async def test_checkout_sync_same_payment_twice_books_once(client):
    _mock_form()
    _mock_stripe_succeeded()
    finish_route = _mock_finish_and_status("ok")

    first = (await client.post("/bookings/checkout/sync", json=CHECKOUT_BODY)).json()
    second = (
        await client.post("/bookings/checkout/sync", json={**CHECKOUT_BODY, "book_hash": "bh_2"})
    ).json()

    assert first["status"] == "confirmed"
    assert second["status"] == "duplicate"
    assert second["record"]["id"] == first["record"]["id"]
    assert finish_route.call_count == 1
