"""Google Places text and nearby search client.

Every call is billed, so callers are expected to consult the search cache
first. The client never retries; retry and backoff belong to the caller.
"""

from typing import Any, Dict, List, Optional

import httpx

from placecache.core.errors import ProviderError, RateLimitError, categorize_error
from placecache.core.logging import get_logger
from placecache.services.search_cache.key_generator import GeoPoint
from placecache.utils.geo import haversine_distance

logger = get_logger(__name__)

TEXT_SEARCH_PATH = "/textsearch/json"
NEARBY_SEARCH_PATH = "/nearbysearch/json"


def street_address(formatted_address: str) -> str:
    """Street part of a formatted address (text before the first comma)."""
    return formatted_address.split(",")[0].strip()


def to_place_record(place: Dict[str, Any], origin: GeoPoint) -> Dict[str, Any]:
    """Map a raw text or nearby search result onto a place record."""
    geo = place.get("geometry", {}).get("location", {})
    lat = geo.get("lat")
    lng = geo.get("lng")

    distance = 0
    coordinates: List[float] = []
    if lat is not None and lng is not None:
        distance = round(haversine_distance(origin.latitude, origin.longitude, lat, lng))
        coordinates = [lng, lat]

    return {
        "id": place["place_id"],
        "name": place.get("name", ""),
        "address": street_address(place.get("formatted_address") or place.get("vicinity", "")),
        "types": place.get("types", []),
        "distance": distance,
        "coordinates": coordinates,
        "business_status": place.get("business_status", "OPERATIONAL"),
    }


class GooglePlacesProvider:
    """Async client for the Places text and nearby search endpoints."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://maps.googleapis.com/maps/api/place",
        radius_m: int = 5000,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.radius_m = radius_m
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "GooglePlacesProvider":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def text_search(self, query: str, origin: GeoPoint) -> List[Dict[str, Any]]:
        """Search places matching ``query`` around ``origin``.

        Returns:
            Place records sorted by distance from the origin.

        Raises:
            RateLimitError: If the provider quota is exhausted.
            ProviderError: On configuration, HTTP or provider status errors.
        """
        logger.info(
            "Places text search",
            extra={"query": query.strip(), "radius_m": self.radius_m},
        )
        return await self._search(
            TEXT_SEARCH_PATH,
            {"query": query.strip(), "radius": self.radius_m},
            origin,
        )

    async def nearby_search(self, origin: GeoPoint, radius_m: int) -> List[Dict[str, Any]]:
        """List places within ``radius_m`` of ``origin``, nearest first.

        Raises:
            RateLimitError: If the provider quota is exhausted.
            ProviderError: On configuration, HTTP or provider status errors.
        """
        logger.info("Places nearby search", extra={"radius_m": radius_m})
        return await self._search(NEARBY_SEARCH_PATH, {"radius": radius_m}, origin)

    async def _search(self, path: str, params: Dict[str, Any], origin: GeoPoint) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise ProviderError("Google Places API key not configured", status="CONFIG_ERROR", recoverable=False)

        if self._client is None:
            await self.connect()

        params = {
            **params,
            "location": f"{origin.latitude},{origin.longitude}",
            "key": self.api_key,
        }

        try:
            response = await self._client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            error = categorize_error(e)
            if not isinstance(error, ProviderError):
                error = ProviderError(
                    error.message,
                    category=error.category,
                    recoverable=error.recoverable,
                    retry_after=error.retry_after,
                )
            raise error from e
        except ValueError as e:
            raise ProviderError(f"Invalid provider response: {e}") from e

        status = data.get("status", "UNKNOWN_ERROR")
        if status == "ZERO_RESULTS":
            return []
        if status == "OVER_QUERY_LIMIT":
            raise RateLimitError("Places quota exceeded", status=status)
        if status != "OK":
            message = data.get("error_message") or f"Places search failed: {status}"
            raise ProviderError(message, status=status, recoverable=status == "UNKNOWN_ERROR")

        records = [to_place_record(place, origin) for place in data.get("results", [])]
        return sorted(records, key=lambda record: record["distance"])
