from datetime import date
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.supplier import BestOffer, Rate


class SuggestionType(StrEnum):
    city = "City"
    region = "Region"
    hotel = "Hotel"


class Suggestion(BaseModel):
    id: str
    name: str
    type: str  # region ids and hotel ids are not interchangeable
    country_code: str | None = None
    hotel_id: str | None = None
    region_id: int | None = None
    label: str = ""


class AutocompleteResult(BaseModel):
    regions: list[Suggestion] = []
    hotels: list[Suggestion] = []


class AutocompleteRequest(BaseModel):
    query: str = ""


class SearchRequest(BaseModel):
    destination_region_id: int
    check_in: date
    check_out: date
    adults_total: int = Field(default=2, ge=1)
    rooms_count: int = Field(default=1, ge=1)
    currency: str = "USD"
    sort: Literal["price", "rating"] | None = None


class RatesRequest(BaseModel):
    hotel_id: str
    check_in: date
    check_out: date
    adults_total: int = Field(default=2, ge=1)
    rooms_count: int = Field(default=1, ge=1)
    currency: str = "USD"


class OfferBase(BaseModel):
    id: str
    hid: int | None = None
    name: str
    location: str = ""
    rating: float = 0.0
    review_score: float = 0.0
    price: float = Field(default=0.0, ge=0)
    currency: str = "USD"
    image: str = ""
    images: list[str] = []
    amenities: list[str] = []
    description: str | None = None
    best_offer: BestOffer | None = None
    total_rates: int = 0


class EnrichedOffer(OfferBase):
    kind: Literal["enriched"] = "enriched"


class FallbackOffer(OfferBase):
    kind: Literal["fallback"] = "fallback"


Offer = Annotated[EnrichedOffer | FallbackOffer, Field(discriminator="kind")]


class SearchResponse(BaseModel):
    total: int
    enriched: int
    offers: list[Offer]


class HotelInfoRequest(BaseModel):
    id: str


class RatesResponse(BaseModel):
    hotel_id: str
    rates: list[Rate]
