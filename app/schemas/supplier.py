from pydantic import BaseModel


class SupplierResponse(BaseModel):
    """Normalized envelope returned by every gateway call."""

    success: bool = False
    data: dict | list | None = None
    error: str | None = None
    message: str | None = None
    status_code: int | None = None


class SupplierSuggestion(BaseModel):
    id: str | int
    name: str = ""
    type: str | None = None  # City | Region | Hotel | Airport ...
    country_code: str | None = None
    region_id: int | None = None
    hid: int | None = None


class BestOffer(BaseModel):
    match_hash: str | None = None
    book_hash: str | None = None
    room_name: str | None = None
    total_price: str | float | None = None
    currency: str | None = None
    daily_price: str | float | None = None
    meal: str | None = None
    meal_code: str | None = None
    free_cancellation_before: str | None = None
    amenities: list[str] = []


class SearchHotel(BaseModel):
    id: str
    hid: int | None = None
    name: str | None = None
    best_offer: BestOffer | None = None
    total_rates: int = 0
    min_price: str | float | None = None
    rates: list[dict] = []


class HotelInfo(BaseModel):
    id: str | None = None
    hid: int | None = None
    name: str | None = None
    address: str | None = None
    location: str | None = None
    city: str | None = None
    country: str | None = None
    star_rating: float | None = None
    review_score: float | None = None
    reviews_count: int | None = None
    images: list[str | dict] = []
    amenities: list[str | dict] = []
    amenity_groups: list[dict] | None = None
    description: list[str] | str | None = None
    check_in_time: str | None = None
    check_out_time: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    email: str | None = None


class CancellationInfo(BaseModel):
    free_cancellation_before: str | None = None
    policies: list[dict] = []


class Rate(BaseModel):
    match_hash: str | None = None
    book_hash: str | None = None
    room_name: str | None = None
    total_price: float = 0.0
    currency: str | None = None
    daily_prices: list[str | float] | None = None
    meal: str | None = None
    meal_code: str | None = None
    cancellation: CancellationInfo | None = None
    amenities: list[str] = []
    allotment: int | None = None


class BookingFormData(BaseModel):
    order_id: int | str | None = None
    partner_order_id: str | None = None
    item_id: int | str | None = None
    payment_types: list[dict] = []
    is_gender_required: bool = False


class Money(BaseModel):
    amount: float = 0.0
    currency: str = "EUR"
