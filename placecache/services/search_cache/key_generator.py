"""Cache key generation for place text searches.

Keys are derived from the normalized query text and the search origin at the
coordinates' full precision. No rounding or location bucketing happens here:
two origins that differ by a fraction of a degree produce distinct keys.

Durable key format: {prefix}:{version}[:{namespace}]:{query_hash}:{lat}:{lng}

Examples:
    placesearch:v1:3f0a0b6a0f...:13.7563:100.5018
    placesearch:v1:nearby:9b1c2d...:13.756:100.502

Nearby searches have no text. Their key query is a radius label such as
``radius=500`` and their origin is rounded to three decimals (about 100 m).
"""

import hashlib
import math
import re
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional

from placecache.core.errors import ValidationError

_WHITESPACE = re.compile(r"\s+")

NEARBY_NAMESPACE = "nearby"
NEARBY_QUERY_PREFIX = "radius="
NEARBY_COORDINATE_DECIMALS = 3


@dataclass(frozen=True)
class GeoPoint:
    """Search origin."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached text search."""

    query: str  # normalized
    latitude: float
    longitude: float

    def to_storage_key(self) -> str:
        """Render the deterministic string key used by the durable tier."""
        return CacheKeyGenerator.storage_key(self)


class CacheKeyGenerator:
    """Key generation and input validation for the search cache."""

    PREFIX = "placesearch"
    VERSION = "v1"

    @classmethod
    def normalize_query(cls, query: Any) -> str:
        """Trim, collapse internal whitespace and lower-case a query.

        Raises:
            ValidationError: If the query is not a string or is blank.
        """
        if not isinstance(query, str):
            raise ValidationError("Query must be a string", field="query", value=query)

        normalized = _WHITESPACE.sub(" ", query.strip()).lower()
        if not normalized:
            raise ValidationError("Query must not be empty", field="query", value=query)
        return normalized

    @classmethod
    def validate_location(cls, location: Any) -> GeoPoint:
        """Check that a location carries finite numeric coordinates."""
        latitude = getattr(location, "latitude", None)
        longitude = getattr(location, "longitude", None)

        for name, value in (("latitude", latitude), ("longitude", longitude)):
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ValidationError(f"{name} must be a number", field=name, value=value)
            if not math.isfinite(value):
                raise ValidationError(f"{name} must be finite", field=name, value=value)

        return GeoPoint(latitude=float(latitude), longitude=float(longitude))

    @classmethod
    def search_key(cls, query: Any, location: Any) -> CacheKey:
        """Build the cache key for a (query, location) pair."""
        point = cls.validate_location(location)
        return CacheKey(
            query=cls.normalize_query(query),
            latitude=point.latitude,
            longitude=point.longitude,
        )

    @classmethod
    def validate_radius(cls, radius_m: Any) -> int:
        """Check that a search radius is a positive finite number of meters."""
        if isinstance(radius_m, bool) or not isinstance(radius_m, Real):
            raise ValidationError("radius must be a number", field="radius", value=radius_m)
        if not math.isfinite(radius_m) or radius_m <= 0:
            raise ValidationError("radius must be positive", field="radius", value=radius_m)
        return int(round(radius_m))

    @classmethod
    def nearby_key(cls, location: Any, radius_m: Any) -> CacheKey:
        """Build the cache key for a nearby search.

        The origin is rounded so searches a few meters apart share a key.
        """
        point = cls.validate_location(location)
        radius = cls.validate_radius(radius_m)
        return CacheKey(
            query=f"{NEARBY_QUERY_PREFIX}{radius}",
            latitude=round(point.latitude, NEARBY_COORDINATE_DECIMALS),
            longitude=round(point.longitude, NEARBY_COORDINATE_DECIMALS),
        )

    @classmethod
    def nearby_radius(cls, key: CacheKey) -> Optional[int]:
        """Radius encoded in a nearby key, or None for text search keys."""
        if not key.query.startswith(NEARBY_QUERY_PREFIX):
            return None
        try:
            return int(key.query[len(NEARBY_QUERY_PREFIX):])
        except ValueError:
            return None

    @classmethod
    def storage_key(cls, key: CacheKey, namespace: Optional[str] = None) -> str:
        """Render a CacheKey as a durable-tier string key."""
        parts = [cls.PREFIX, cls.VERSION]
        if namespace:
            parts.append(namespace)
        parts.extend([
            cls.hash_content(key.query),
            repr(key.latitude),
            repr(key.longitude),
        ])
        return ":".join(parts)

    @classmethod
    def storage_pattern(cls, namespace: Optional[str] = None) -> str:
        """Glob pattern matching the durable keys of a namespace."""
        if namespace:
            return f"{cls.PREFIX}:{cls.VERSION}:{namespace}:*"
        return f"{cls.PREFIX}:{cls.VERSION}:*"

    @classmethod
    def in_namespace(cls, storage_key: str, namespace: Optional[str] = None) -> bool:
        """Check a durable key belongs to ``namespace`` (None for text searches).

        The text search pattern also matches namespaced keys, so scans filter
        on the number of key segments.
        """
        parts = storage_key.split(":")
        if namespace:
            return len(parts) == 6 and parts[2] == namespace
        return len(parts) == 5

    @classmethod
    def hash_content(cls, content: str) -> str:
        """MD5 hash of arbitrary content."""
        return hashlib.md5(content.encode('utf-8')).hexdigest()
