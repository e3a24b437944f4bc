import logging

from pydantic import ValidationError

from app.exceptions.custom import SupplierError
from app.schemas.hotels import AutocompleteResult, Suggestion, SuggestionType
from app.schemas.supplier import SupplierSuggestion
from app.services.supplier import SupplierGateway

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2

POPULAR_DESTINATIONS = [
    Suggestion(id="2734", name="Paris", type="City", country_code="FR", label="Paris, FR"),
    Suggestion(id="2114", name="London", type="City", country_code="GB", label="London, GB"),
    Suggestion(id="2621", name="New York", type="City", country_code="US", label="New York, US"),
    Suggestion(id="3593", name="Tokyo", type="City", country_code="JP", label="Tokyo, JP"),
    Suggestion(id="6053839", name="Dubai", type="City", country_code="AE", label="Dubai, AE"),
]


def popular_destinations() -> AutocompleteResult:
    return AutocompleteResult(
        regions=[s.model_copy() for s in POPULAR_DESTINATIONS], hotels=[]
    )


def _to_suggestion(raw: SupplierSuggestion, hotel: bool) -> Suggestion:
    if hotel:
        return Suggestion(
            id=str(raw.id),
            name=raw.name,
            type=SuggestionType.hotel,
            hotel_id=str(raw.id),
            region_id=raw.region_id,
            label=raw.name,
        )
    label = f"{raw.name}, {raw.country_code}" if raw.country_code else raw.name
    return Suggestion(
        id=str(raw.id),
        name=raw.name,
        type=raw.type or SuggestionType.region,
        country_code=raw.country_code,
        label=label,
    )


class AutocompleteService:
    def __init__(self, gateway: SupplierGateway):
        self._gateway = gateway

    async def autocomplete(self, query: str) -> AutocompleteResult:
        """Region/hotel suggestions for free text. Never raises."""
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return popular_destinations()

        try:
            resp = await self._gateway.autocomplete(query)
        except SupplierError as exc:
            logger.warning("Autocomplete failed for %r: %s", query, exc.message)
            return AutocompleteResult()

        if not resp.success or not isinstance(resp.data, dict):
            logger.warning("Autocomplete rejected for %r: %s", query, resp.error)
            return AutocompleteResult()

        try:
            raw_items = [
                *(SupplierSuggestion(**r) for r in resp.data.get("regions") or []),
                *(SupplierSuggestion(type="Hotel", **{k: v for k, v in h.items() if k != "type"})
                  for h in resp.data.get("hotels") or []),
            ]
        except (ValidationError, TypeError, AttributeError):
            logger.warning("Malformed autocomplete payload for %r", query, exc_info=True)
            return AutocompleteResult()

        result = AutocompleteResult()
        seen: set[tuple[bool, str]] = set()
        for raw in raw_items:
            is_hotel = raw.type == SuggestionType.hotel
            key = (is_hotel, str(raw.id))
            if key in seen:
                continue
            seen.add(key)
            if is_hotel:
                result.hotels.append(_to_suggestion(raw, hotel=True))
            else:
                result.regions.append(_to_suggestion(raw, hotel=False))

        logger.info(
            "Autocomplete %r: %d regions, %d hotels",
            query,
            len(result.regions),
            len(result.hotels),
        )
        return result
