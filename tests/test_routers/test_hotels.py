import json

import respx
from httpx import Response

SUPPLIER_URL = "http://supplier.test/api"

SEARCH_URL = f"{SUPPLIER_URL}/hotels/search"
INFO_URL = f"{SUPPLIER_URL}/hotels/info"
RATES_URL = f"{SUPPLIER_URL}/hotels/rates"
AUTOCOMPLETE_URL = f"{SUPPLIER_URL}/hotels/autocomplete"

SEARCH_BODY = {
    "destination_region_id": 2734,
    "check_in": "2026-05-01",
    "check_out": "2026-05-03",
    "adults_total": 2,
    "rooms_count": 1,
    "currency": "EUR",
}


def _info_response(request):
    hotel_id = json.loads(request.content)["id"]
    if hotel_id == "broken_hotel":
        return Response(404, json={"success": False, "error": "hotel not found"})
    return Response(
        200,
        json={
            "success": True,
            "data": {
                "hotel": {
                    "id": hotel_id,
                    "name": "Hotel Lumen",
                    "city": "Paris",
                    "country": "France",
                    "star_rating": 4,
                    "images": ["https://cdn.example.com/t/{size}/1.jpg"],
                }
            },
        },
    )


async def test_autocomplete_short_query_returns_popular(client):
    resp = await client.post("/hotels/autocomplete", json={"query": "p"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["regions"][0]["name"] == "Paris"
    assert data["hotels"] == []


@respx.mock
async def test_autocomplete_supplier_results(client):
    respx.post(AUTOCOMPLETE_URL).mock(
        return_value=Response(
            200,
            json={
                "success": True,
                "regions": [{"id": 2734, "name": "Paris", "type": "City", "country_code": "FR"}],
                "hotels": [{"id": "hotel_lumen", "name": "Hotel Lumen", "region_id": 2734}],
            },
        )
    )

    resp = await client.post("/hotels/autocomplete", json={"query": "paris"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["regions"][0]["id"] == "2734"
    assert data["hotels"][0]["hotel_id"] == "hotel_lumen"


@respx.mock
async def test_search_mixes_enriched_and_fallback(client):
    respx.post(SEARCH_URL).mock(
        return_value=Response(
            200,
            json={
                "success": True,
                "data": {
                    "hotels": [
                        {"id": "hotel_lumen", "best_offer": {"total_price": "210.00", "currency": "EUR"}},
                        {"id": "broken_hotel", "min_price": 99},
                    ]
                },
            },
        )
    )
    respx.post(INFO_URL).mock(side_effect=_info_response)

    resp = await client.post("/hotels/search", json=SEARCH_BODY)

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    assert data["enriched"] == 1
    first, second = data["offers"]
    assert first["kind"] == "enriched"
    assert first["image"] == "https://cdn.example.com/t/1024x768/1.jpg"
    assert first["location"] == "Paris, France"
    assert second["kind"] == "fallback"
    assert second["name"] == "Broken Hotel"
    assert second["price"] == 99.0


@respx.mock
async def test_search_supplier_down_is_502(client):
    route = respx.post(SEARCH_URL).mock(return_value=Response(503, text="unavailable"))

    resp = await client.post("/hotels/search", json=SEARCH_BODY)

    assert resp.status_code == 502
    assert route.call_count == 3


async def test_search_validates_occupancy(client):
    resp = await client.post("/hotels/search", json={**SEARCH_BODY, "adults_total": 0})
    assert resp.status_code == 422


@respx.mock
async def test_hotel_info(client):
    respx.post(INFO_URL).mock(side_effect=_info_response)

    resp = await client.post("/hotels/info", json={"id": "hotel_lumen"})

    assert resp.status_code == 200
    assert resp.json()["name"] == "Hotel Lumen"


@respx.mock
async def test_rates(client):
    respx.post(RATES_URL).mock(
        return_value=Response(
            200,
            json={
                "success": True,
                "rates": [{"book_hash": "bh_1", "total_price": 210, "room_name": "Double"}],
            },
        )
    )

    resp = await client.post(
        "/hotels/rates",
        json={
            "hotel_id": "hotel_lumen",
            "check_in": "2026-05-01",
            "check_out": "2026-05-03",
            "currency": "EUR",
        },
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["hotel_id"] == "hotel_lumen"
    assert data["rates"][0]["book_hash"] == "bh_1"
