"""
Explore endpoints.

GET    /api/v1/explore/destinations   cheapest destinations from an airport (cached)
DELETE /api/v1/explore/destinations   drop the cached listings
GET    /api/v1/explore/autocomplete   airport / city suggestions
"""
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response

from flightsearch.api.v1.deps import RegistryDep, http_error
from flightsearch.errors import SearchError
from flightsearch.models.explore import AutocompleteResult, ExploreDestination
from flightsearch.services.destination_cache import cache_key, cached_destinations

router = APIRouter()


@router.get("/destinations", response_model=list[ExploreDestination])
async def list_destinations(
    registry: RegistryDep,
    departure: Annotated[str, Query(min_length=3, max_length=3, description="IATA code of the departure airport")],
    arrival_type: Annotated[str, Query(pattern="^(country|city)$")] = "country",
    arrival_id: Annotated[str | None, Query(description="Entity id when arrival_type=city")] = None,
) -> list[ExploreDestination]:
    if arrival_type == "city" and not arrival_id:
        raise HTTPException(status_code=422, detail="arrival_id is required when arrival_type=city")

    try:
        return await cached_destinations(
            registry.destination_cache, registry.explore_client,
            departure.upper(), arrival_type, arrival_id,
        )
    except SearchError as exc:
        raise http_error(exc)


@router.delete("/destinations", status_code=204)
async def invalidate_destinations(
    registry: RegistryDep,
    departure: Annotated[str | None, Query(min_length=3, max_length=3)] = None,
    arrival_type: str = "country",
    arrival_id: str | None = None,
) -> Response:
    key = cache_key(departure, arrival_type, arrival_id) if departure else None
    await registry.destination_cache.invalidate(key)
    return Response(status_code=204)


@router.get("/autocomplete", response_model=list[AutocompleteResult])
async def autocomplete(
    registry: RegistryDep,
    query: Annotated[str, Query(min_length=1, max_length=64)],
) -> list[AutocompleteResult]:
    try:
        return await registry.explore_client.autocomplete(query)
    except SearchError as exc:
        raise http_error(exc)
