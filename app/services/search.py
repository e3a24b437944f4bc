import asyncio
import logging

from pydantic import ValidationError

from app.exceptions.custom import SupplierError
from app.mappers.hotel_mapper import (
    build_occupancy,
    sort_offers,
    to_enriched_offer,
    to_fallback_offer,
    to_rate,
)
from app.schemas.hotels import EnrichedOffer, FallbackOffer, RatesRequest, SearchRequest
from app.schemas.supplier import HotelInfo, Rate, SearchHotel
from app.services.supplier import Sleep, SupplierGateway

logger = logging.getLogger(__name__)

ENRICHMENT_LIMIT = 15
ENRICHMENT_STAGGER = 0.05  # seconds between detail-call starts


class HotelInfoCache:
    """Read-through memo of hotel info by id. Entries never expire."""

    def __init__(self) -> None:
        self._items: dict[str, HotelInfo] = {}

    def get(self, hotel_id: str) -> HotelInfo | None:
        return self._items.get(hotel_id)

    def put(self, hotel_id: str, info: HotelInfo) -> None:
        self._items[hotel_id] = info

    def __contains__(self, hotel_id: str) -> bool:
        return hotel_id in self._items

    def __len__(self) -> int:
        return len(self._items)


class SearchService:
    def __init__(
        self,
        gateway: SupplierGateway,
        cache: HotelInfoCache | None = None,
        enrichment_limit: int = ENRICHMENT_LIMIT,
        stagger: float = ENRICHMENT_STAGGER,
        sleep: Sleep = asyncio.sleep,
    ):
        self._gateway = gateway
        self._cache = cache
        self._enrichment_limit = enrichment_limit
        self._stagger = stagger
        self._sleep = sleep

    async def search(self, request: SearchRequest) -> list[EnrichedOffer | FallbackOffer]:
        """Priced offers for a region, enriched with hotel detail where possible.

        Raises SupplierError when the search call itself fails. Individual detail
        failures degrade that hotel to a fallback offer; nothing is dropped and
        the supplier's ordering is kept unless ``request.sort`` asks otherwise.
        """
        guests = build_occupancy(request.adults_total, request.rooms_count)
        resp = await self._gateway.search(
            request.destination_region_id,
            request.check_in,
            request.check_out,
            guests,
            request.currency,
        )
        if not resp.success:
            raise SupplierError(
                resp.error or "Hotel search failed",
                status_code=resp.status_code,
                code=resp.error,
            )

        hotels = self._parse_hotels(resp.data)
        logger.info(
            "Search region=%s found %d hotels", request.destination_region_id, len(hotels)
        )
        if not hotels:
            return []

        head = hotels[: self._enrichment_limit]
        tail = hotels[self._enrichment_limit:]

        enriched = await asyncio.gather(
            *(self._enrich(hotel, i, request.currency) for i, hotel in enumerate(head))
        )
        offers = list(enriched)
        offers.extend(
            to_fallback_offer(hotel, i, request.currency)
            for i, hotel in enumerate(tail, start=len(head))
        )

        fallbacks = sum(1 for o in offers if o.kind == "fallback")
        if fallbacks:
            logger.info("Search returned %d/%d fallback offers", fallbacks, len(offers))

        if request.sort:
            offers = sort_offers(offers, request.sort)
        return offers

    def _parse_hotels(self, data) -> list[SearchHotel]:
        raw_hotels = data.get("hotels") if isinstance(data, dict) else data
        hotels: list[SearchHotel] = []
        for raw in raw_hotels or []:
            try:
                hotels.append(SearchHotel(**raw))
            except (ValidationError, TypeError):
                hotel_id = raw.get("id") if isinstance(raw, dict) else None
                if hotel_id in (None, ""):
                    logger.warning("Skipping search result without id: %r", raw)
                    continue
                # Keep what identifies the hotel; the offer falls back on the rest.
                logger.warning("Malformed search result for %s, keeping id only", hotel_id)
                name = raw.get("name")
                hotels.append(
                    SearchHotel(id=str(hotel_id), name=name if isinstance(name, str) else None)
                )
        return hotels

    async def _enrich(
        self, hotel: SearchHotel, index: int, currency: str
    ) -> EnrichedOffer | FallbackOffer:
        if index and self._stagger:
            await self._sleep(self._stagger * index)
        try:
            info = await self.get_hotel_info(hotel.id)
        except Exception:
            logger.warning("Hotel info failed for %s, using fallback", hotel.id, exc_info=True)
            return to_fallback_offer(hotel, index, currency)
        return to_enriched_offer(hotel, info, index, currency)

    async def get_hotel_info(self, hotel_id: str) -> HotelInfo:
        if self._cache is not None:
            cached = self._cache.get(hotel_id)
            if cached is not None:
                return cached

        resp = await self._gateway.hotel_info(hotel_id)
        payload = resp.data.get("hotel", resp.data) if isinstance(resp.data, dict) else None
        if not resp.success or not payload:
            raise SupplierError(
                resp.error or f"Hotel {hotel_id} not found",
                status_code=resp.status_code,
            )

        info = HotelInfo(**payload)
        if self._cache is not None:
            self._cache.put(hotel_id, info)
        return info

    async def get_rates(self, request: RatesRequest) -> list[Rate]:
        guests = build_occupancy(request.adults_total, request.rooms_count)
        resp = await self._gateway.rates(
            request.hotel_id,
            request.check_in,
            request.check_out,
            guests,
            request.currency,
        )
        if not resp.success:
            if resp.status_code == 404:
                logger.info("No rates available for hotel %s", request.hotel_id)
                return []
            raise SupplierError(
                resp.error or "Rates lookup failed",
                status_code=resp.status_code,
                code=resp.error,
            )

        raw_rates = resp.data.get("rates") if isinstance(resp.data, dict) else None
        return [to_rate(r, request.currency) for r in raw_rates or [] if isinstance(r, dict)]
