from fastapi import APIRouter

from app.dependencies import AutocompleteDep, SearchDep
from app.schemas.hotels import (
    AutocompleteRequest,
    AutocompleteResult,
    HotelInfoRequest,
    RatesRequest,
    RatesResponse,
    SearchRequest,
    SearchResponse,
)
from app.schemas.supplier import HotelInfo

router = APIRouter(prefix="/hotels", tags=["hotels"])


@router.post("/autocomplete", response_model=AutocompleteResult)
async def autocomplete(
    request: AutocompleteRequest, service: AutocompleteDep
) -> AutocompleteResult:
    return await service.autocomplete(request.query)


@router.post("/search", response_model=SearchResponse)
async def search_hotels(request: SearchRequest, service: SearchDep) -> SearchResponse:
    offers = await service.search(request)
    return SearchResponse(
        total=len(offers),
        enriched=sum(1 for o in offers if o.kind == "enriched"),
        offers=offers,
    )


@router.post("/info", response_model=HotelInfo)
async def hotel_info(request: HotelInfoRequest, service: SearchDep) -> HotelInfo:
    return await service.get_hotel_info(request.id)


@router.post("/rates", response_model=RatesResponse)
async def hotel_rates(request: RatesRequest, service: SearchDep) -> RatesResponse:
    rates = await service.get_rates(request)
    return RatesResponse(hotel_id=request.hotel_id, rates=rates)
