"""Place search endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from placecache.api.deps import get_place_search
from placecache.core.errors import ProviderError, RateLimitError, ValidationError
from placecache.core.logging import get_logger
from placecache.models.places import NearbySearchResponse, PlaceRecord, PlaceSearchResponse
from placecache.services.place_search import PlaceSearchService
from placecache.services.search_cache.key_generator import GeoPoint

logger = get_logger(__name__)
router = APIRouter(tags=["places"])


@router.get("/places/search", response_model=PlaceSearchResponse)
async def search_places(
    q: str = Query(..., description="Search text"),
    lat: float = Query(..., ge=-90, le=90, description="Origin latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Origin longitude"),
    place_search: PlaceSearchService = Depends(get_place_search),
) -> PlaceSearchResponse:
    """Search places, answering from the cache whenever possible."""
    try:
        outcome = await place_search.search(q, GeoPoint(latitude=lat, longitude=lng))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except RateLimitError as e:
        logger.warning(f"Places provider rate limited: {e}")
        raise HTTPException(
            status_code=429,
            detail="Place search is temporarily rate limited",
            headers={"Retry-After": str(e.retry_after or 60)},
        )
    except ProviderError as e:
        logger.error(f"Places provider failed: {e}")
        raise HTTPException(status_code=502, detail="Place search provider unavailable")

    return PlaceSearchResponse(
        query=outcome.query,
        source=outcome.source,
        cached=outcome.cached,
        results=[PlaceRecord(**record) for record in outcome.results],
    )


@router.get("/places/nearby", response_model=NearbySearchResponse)
async def nearby_places(
    lat: float = Query(..., ge=-90, le=90, description="Origin latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Origin longitude"),
    radius: int = Query(5000, gt=0, le=50000, description="Search radius in meters"),
    place_search: PlaceSearchService = Depends(get_place_search),
) -> NearbySearchResponse:
    """List places around an origin, answering from the nearby cache whenever possible."""
    try:
        outcome = await place_search.nearby(GeoPoint(latitude=lat, longitude=lng), radius)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except RateLimitError as e:
        logger.warning(f"Places provider rate limited: {e}")
        raise HTTPException(
            status_code=429,
            detail="Place search is temporarily rate limited",
            headers={"Retry-After": str(e.retry_after or 60)},
        )
    except ProviderError as e:
        logger.error(f"Places provider failed: {e}")
        raise HTTPException(status_code=502, detail="Place search provider unavailable")

    return NearbySearchResponse(
        latitude=lat,
        longitude=lng,
        radius_m=radius,
        source=outcome.source,
        cached=outcome.cached,
        results=[PlaceRecord(**record) for record in outcome.results],
    )
