"""Place search request and response models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PlaceRecord(BaseModel):
    """A place returned by the text search provider."""
    id: str
    name: str
    address: str = ""
    types: List[str] = Field(default_factory=list)
    distance: int = 0  # meters from the search origin
    coordinates: List[float] = Field(default_factory=list)  # [longitude, latitude]
    business_status: Optional[str] = None


class PlaceSearchResponse(BaseModel):
    """Place search response."""
    query: str
    source: str = Field(..., description="fast, durable, similar, provider or skipped")
    cached: bool
    results: List[PlaceRecord]


class NearbySearchResponse(BaseModel):
    """Nearby search response."""
    latitude: float
    longitude: float
    radius_m: int
    source: str = Field(..., description="fast, durable, proximity or provider")
    cached: bool
    results: List[PlaceRecord]


class CacheStatsResponse(BaseModel):
    """Search cache statistics."""
    durable_entries: int
    fast_entries: int
    total_size_kb: int
    approximate_size_bytes: int
    oldest_entry: Optional[str] = None
    newest_entry: Optional[str] = None
    counters: Dict[str, Any] = Field(default_factory=dict)
    nearby: Dict[str, Any] = Field(default_factory=dict)
