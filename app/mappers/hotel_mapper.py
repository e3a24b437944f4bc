import re

from app.schemas.hotels import EnrichedOffer, FallbackOffer, OfferBase
from app.schemas.supplier import CancellationInfo, HotelInfo, Rate, SearchHotel

PLACEHOLDER_IMAGES = [
    "https://images.unsplash.com/photo-1566073771259-6a8506099945?w=800&h=600&fit=crop",
    "https://images.unsplash.com/photo-1542314831-068cd1dbfeeb?w=800&h=600&fit=crop",
    "https://images.unsplash.com/photo-1520250497591-112f2f40a3f4?w=800&h=600&fit=crop",
    "https://images.unsplash.com/photo-1551882547-ff40c63fe5fa?w=800&h=600&fit=crop",
    "https://images.unsplash.com/photo-1564501049412-61c2a3083791?w=800&h=600&fit=crop",
    "https://images.unsplash.com/photo-1582719478250-c89cae4dc85b?w=800&h=600&fit=crop",
]
DEFAULT_AMENITIES = ["Free WiFi", "Air Conditioning"]
IMAGE_SIZE = "1024x768"
MAX_IMAGES = 5

_SIZE_PATTERNS = [
    (re.compile(r"t/\{size\}/", re.IGNORECASE), f"t/{IMAGE_SIZE}/"),
    (re.compile(r"/\{size\}/", re.IGNORECASE), f"/{IMAGE_SIZE}/"),
    (re.compile(r"t\{size\}", re.IGNORECASE), IMAGE_SIZE),
    (re.compile(r"_\{size\}_", re.IGNORECASE), f"_{IMAGE_SIZE}_"),
    (re.compile(r"\{size\}", re.IGNORECASE), IMAGE_SIZE),
    (re.compile(r"\{width\}x\{height\}", re.IGNORECASE), IMAGE_SIZE),
    (re.compile(r"\{w\}x\{h\}", re.IGNORECASE), IMAGE_SIZE),
]
_IMAGE_KEYS = ("url", "src", "image", "photo", "tmpl", "orig", "original", "large", "medium")


def build_occupancy(adults_total: int, rooms_count: int) -> list[dict]:
    """Split adults across rooms, fuller rooms first.

    5 adults / 2 rooms -> [3, 2]. Every room gets at least one adult since the
    supplier rejects empty rooms. Children are always sent empty.
    """
    if adults_total < 1 or rooms_count < 1:
        raise ValueError("adults_total and rooms_count must be >= 1")

    base, extra = divmod(adults_total, rooms_count)
    return [
        {"adults": max(1, base + (1 if i < extra else 0)), "children": []}
        for i in range(rooms_count)
    ]


def format_hotel_name(hotel_id: str) -> str:
    """'the_ritz-paris' -> 'The Ritz Paris'."""
    words = re.split(r"[_\-\s]+", hotel_id.strip())
    return " ".join(w.capitalize() for w in words if w) or hotel_id


def process_image_url(url: str | None) -> str | None:
    if not url or not isinstance(url, str):
        return None

    processed = re.sub(r"%7B", "{", url, flags=re.IGNORECASE)
    processed = re.sub(r"%7D", "}", processed, flags=re.IGNORECASE)
    for pattern, replacement in _SIZE_PATTERNS:
        processed = pattern.sub(replacement, processed)

    if processed.startswith("http://"):
        processed = "https://" + processed[len("http://"):]
    elif processed.startswith("//"):
        processed = "https:" + processed
    return processed


def collect_images(info: HotelInfo) -> list[str]:
    images: list[str] = []
    for raw in info.images:
        url = raw
        if isinstance(raw, dict):
            url = next((raw[k] for k in _IMAGE_KEYS if raw.get(k)), None)
        processed = process_image_url(url)
        if processed and processed not in images:
            images.append(processed)
    return images


def extract_amenities(info: HotelInfo, limit: int | None = None) -> list[str]:
    names: list[str] = []
    sources: list = list(info.amenities)
    if not sources and info.amenity_groups:
        for group in info.amenity_groups:
            sources.extend(group.get("amenities") or [])

    for item in sources:
        name = item.get("name") if isinstance(item, dict) else item
        if name and name not in names:
            names.append(str(name))
        if limit is not None and len(names) >= limit:
            break
    return names


def _to_float(value) -> float | None:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


def parse_price(hotel: SearchHotel) -> float:
    """Cheapest known price for a search result, 0 when the supplier gave none."""
    candidates: list[float] = []
    if hotel.best_offer:
        price = _to_float(hotel.best_offer.total_price)
        if price is not None:
            candidates.append(price)
    if not candidates:
        price = _to_float(hotel.min_price)
        if price is not None:
            candidates.append(price)
    if not candidates:
        for rate in hotel.rates:
            payment_types = (rate.get("payment_options") or {}).get("payment_types") or []
            if payment_types:
                first = payment_types[0]
                price = _to_float(first.get("show_amount") or first.get("amount"))
                if price is not None:
                    candidates.append(price)

    if not candidates:
        return 0.0
    return max(0.0, min(candidates))


def build_location(info: HotelInfo) -> str:
    if info.location:
        return info.location
    if info.address:
        return info.address
    parts = [p for p in (info.city, info.country) if p]
    return ", ".join(parts) or "Unknown Location"


def _description_text(info: HotelInfo) -> str | None:
    if isinstance(info.description, list):
        text = "\n\n".join(p for p in info.description if p)
        return text or None
    return info.description or None


def _base_fields(hotel: SearchHotel, currency: str) -> dict:
    offer_currency = currency
    if hotel.best_offer and hotel.best_offer.currency:
        offer_currency = hotel.best_offer.currency
    return {
        "id": hotel.id,
        "hid": hotel.hid,
        "price": parse_price(hotel),
        "currency": offer_currency,
        "best_offer": hotel.best_offer,
        "total_rates": hotel.total_rates,
    }


def to_fallback_offer(hotel: SearchHotel, index: int, currency: str) -> FallbackOffer:
    placeholder = PLACEHOLDER_IMAGES[index % len(PLACEHOLDER_IMAGES)]
    name = hotel.name if hotel.name and hotel.name != hotel.id else format_hotel_name(hotel.id)
    return FallbackOffer(
        **_base_fields(hotel, currency),
        name=name,
        image=placeholder,
        images=[placeholder],
        amenities=list(DEFAULT_AMENITIES),
    )


def to_enriched_offer(
    hotel: SearchHotel, info: HotelInfo, index: int, currency: str
) -> EnrichedOffer:
    images = collect_images(info)[:MAX_IMAGES]
    if not images:
        images = [PLACEHOLDER_IMAGES[index % len(PLACEHOLDER_IMAGES)]]

    rating = info.star_rating or 0.0
    if not rating and info.review_score:
        rating = info.review_score / 2

    return EnrichedOffer(
        **_base_fields(hotel, currency),
        name=info.name or hotel.name or format_hotel_name(hotel.id),
        location=build_location(info),
        rating=rating,
        review_score=round(info.review_score or 0.0, 1),
        image=images[0],
        images=images,
        amenities=extract_amenities(info) or list(DEFAULT_AMENITIES),
        description=_description_text(info),
    )


def to_rate(raw: dict, currency: str) -> Rate:
    cancellation = raw.get("cancellation")
    return Rate(
        match_hash=raw.get("match_hash"),
        book_hash=raw.get("book_hash"),
        room_name=raw.get("room_name"),
        total_price=max(0.0, _to_float(raw.get("total_price")) or 0.0),
        currency=raw.get("currency") or currency,
        daily_prices=raw.get("daily_prices"),
        meal=raw.get("meal"),
        meal_code=raw.get("meal_code"),
        cancellation=CancellationInfo(**cancellation) if isinstance(cancellation, dict) else None,
        amenities=raw.get("amenities") or [],
        allotment=raw.get("allotment"),
    )


def sort_offers(offers: list[OfferBase], by: str = "price") -> list[OfferBase]:
    """Display-time sort; search itself keeps supplier order."""
    if by == "price":
        return sorted(offers, key=lambda o: o.price)
    if by == "rating":
        return sorted(offers, key=lambda o: (o.rating, o.review_score), reverse=True)
    raise ValueError(f"Unknown sort key: {by}")
