"""Tests for the Google Places text search client."""

import httpx
import pytest

from placecache.core.errors import ErrorCategory, ProviderError, RateLimitError
from placecache.services.places_provider import GooglePlacesProvider, street_address, to_place_record


def _raw_place(place_id, name, lat, lng, **extra):
    place = {
        "place_id": place_id,
        "name": name,
        "formatted_address": "123 Sukhumvit Rd, Khlong Toei, Bangkok 10110, Thailand",
        "types": ["cafe", "food"],
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }
    place.update(extra)
    return place


def _provider(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GooglePlacesProvider(api_key=api_key, base_url="https://places.test/api", client=client)


class TestPlaceRecordMapping:
    """Tests for mapping raw results onto place records."""

    def test_street_address(self):
        assert street_address("123 Sukhumvit Rd, Bangkok, Thailand") == "123 Sukhumvit Rd"
        assert street_address("") == ""

    def test_to_place_record(self, bangkok):
        record = to_place_record(_raw_place("p1", "Roast", 13.7600, 100.5018), bangkok)

        assert record["id"] == "p1"
        assert record["name"] == "Roast"
        assert record["address"] == "123 Sukhumvit Rd"
        assert record["types"] == ["cafe", "food"]
        assert record["coordinates"] == [100.5018, 13.7600]
        assert record["business_status"] == "OPERATIONAL"
        assert 400 < record["distance"] < 420
        assert isinstance(record["distance"], int)

    def test_missing_geometry(self, bangkok):
        record = to_place_record({"place_id": "p1"}, bangkok)
        assert record["distance"] == 0
        assert record["coordinates"] == []


class TestGooglePlacesProvider:
    """Tests for GooglePlacesProvider.text_search."""

    @pytest.mark.asyncio
    async def test_sends_query_and_sorts_by_distance(self, bangkok):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={
                "status": "OK",
                "results": [
                    _raw_place("far", "Far Cafe", 13.80, 100.55),
                    _raw_place("near", "Near Cafe", 13.757, 100.502),
                ],
            })

        provider = _provider(handler)
        records = await provider.text_search("  Coffee ", bangkok)

        assert [r["id"] for r in records] == ["near", "far"]
        assert seen["url"].path == "/api/textsearch/json"
        assert seen["url"].params["query"] == "Coffee"
        assert seen["url"].params["location"] == f"{bangkok.latitude},{bangkok.longitude}"
        assert seen["url"].params["radius"] == "5000"
        assert seen["url"].params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_zero_results(self, bangkok):
        provider = _provider(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
        assert await provider.text_search("Nowhere", bangkok) == []

    @pytest.mark.asyncio
    async def test_over_query_limit_is_rate_limit(self, bangkok):
        provider = _provider(lambda request: httpx.Response(200, json={"status": "OVER_QUERY_LIMIT"}))

        with pytest.raises(RateLimitError) as exc_info:
            await provider.text_search("Coffee", bangkok)
        assert exc_info.value.status == "OVER_QUERY_LIMIT"
        assert exc_info.value.category == ErrorCategory.RATE_LIMIT

    @pytest.mark.asyncio
    async def test_denied_request(self, bangkok):
        provider = _provider(lambda request: httpx.Response(200, json={
            "status": "REQUEST_DENIED",
            "error_message": "The provided API key is invalid.",
        }))

        with pytest.raises(ProviderError) as exc_info:
            await provider.text_search("Coffee", bangkok)
        assert exc_info.value.status == "REQUEST_DENIED"
        assert exc_info.value.message == "The provided API key is invalid."
        assert exc_info.value.recoverable is False

    @pytest.mark.asyncio
    async def test_http_error_status(self, bangkok):
        provider = _provider(lambda request: httpx.Response(503))

        with pytest.raises(ProviderError) as exc_info:
            await provider.text_search("Coffee", bangkok)
        assert exc_info.value.status_code == 503
        assert exc_info.value.recoverable is True

    @pytest.mark.asyncio
    async def test_http_429_is_rate_limit(self, bangkok):
        provider = _provider(lambda request: httpx.Response(429))

        with pytest.raises(RateLimitError):
            await provider.text_search("Coffee", bangkok)

    @pytest.mark.asyncio
    async def test_network_error_becomes_provider_error(self, bangkok):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)

        with pytest.raises(ProviderError) as exc_info:
            await provider.text_search("Coffee", bangkok)
        assert exc_info.value.category == ErrorCategory.NETWORK

    @pytest.mark.asyncio
    async def test_invalid_json(self, bangkok):
        provider = _provider(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ProviderError):
            await provider.text_search("Coffee", bangkok)

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_request(self, bangkok):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"status": "OK", "results": []})

        provider = _provider(handler, api_key=None)

        with pytest.raises(ProviderError) as exc_info:
            await provider.text_search("Coffee", bangkok)
        assert exc_info.value.status == "CONFIG_ERROR"
        assert calls == []

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        provider = GooglePlacesProvider(api_key="k", client=client)

        await provider.close()
        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_owns_client(self):
        async with GooglePlacesProvider(api_key="k") as provider:
            client = provider._client
            assert client is not None
        assert client.is_closed is True


class TestNearbySearch:
    """Tests for GooglePlacesProvider.nearby_search."""

    @pytest.mark.asyncio
    async def test_sends_origin_and_radius(self, bangkok):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            place = _raw_place("p1", "Corner Cafe", 13.757, 100.502, vicinity="88 Silom Rd, Bang Rak")
            del place["formatted_address"]
            return httpx.Response(200, json={"status": "OK", "results": [place]})

        provider = _provider(handler)
        records = await provider.nearby_search(bangkok, 750)

        assert seen["url"].path == "/api/nearbysearch/json"
        assert seen["url"].params["radius"] == "750"
        assert seen["url"].params["location"] == f"{bangkok.latitude},{bangkok.longitude}"
        assert seen["url"].params["key"] == "test-key"
        assert "query" not in seen["url"].params
        assert records[0]["address"] == "88 Silom Rd"

    @pytest.mark.asyncio
    async def test_status_errors_are_mapped(self, bangkok):
        provider = _provider(lambda request: httpx.Response(200, json={"status": "OVER_QUERY_LIMIT"}))

        with pytest.raises(RateLimitError):
            await provider.nearby_search(bangkok, 500)
