"""Tests for the debounced search controller."""

import asyncio

import pytest

from placecache.core.errors import ProviderError
from placecache.services.debounce import SearchDebouncer
from placecache.services.place_search import PlaceSearchOutcome

DELAY = 0.01


class RecordingSearch:
    """Search function double recording each executed query."""

    def __init__(self, error=None):
        self.queries = []
        self.error = error

    async def __call__(self, query, location):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return PlaceSearchOutcome(query=query, source="provider", results=[{"id": query}])


class TestSearchDebouncer:
    """Tests for SearchDebouncer."""

    @pytest.mark.asyncio
    async def test_only_last_keystroke_is_searched(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        for text in ("C", "Co", "Cof", "Coff", "Coffe", "Coffee"):
            debouncer.submit(text, bangkok)
        outcome = await debouncer.wait()

        assert search.queries == ["Coffee"]
        assert outcome.query == "Coffee"
        assert debouncer.last_searched_query == "Coffee"

    @pytest.mark.asyncio
    async def test_short_queries_never_search(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        assert debouncer.submit("Co", bangkok) is None
        assert debouncer.submit("  ab  ", bangkok) is None
        await asyncio.sleep(DELAY * 3)

        assert search.queries == []
        assert debouncer.pending is False

    @pytest.mark.asyncio
    async def test_short_query_cancels_pending_search(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        debouncer.submit("Coffee", bangkok)
        debouncer.submit("Co", bangkok)
        await asyncio.sleep(DELAY * 3)

        assert search.queries == []

    @pytest.mark.asyncio
    async def test_small_refinement_is_skipped(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        debouncer.submit("Coffee", bangkok)
        await debouncer.wait()
        debouncer.submit("Coffee S", bangkok)
        outcome = await debouncer.wait()

        assert outcome is None
        assert search.queries == ["Coffee"]

    @pytest.mark.asyncio
    async def test_larger_refinement_is_searched(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        debouncer.submit("Coffee", bangkok)
        await debouncer.wait()
        debouncer.submit("Coffee Sh", bangkok)
        await debouncer.wait()

        assert search.queries == ["Coffee", "Coffee Sh"]

    @pytest.mark.asyncio
    async def test_clearing_input_resets_refinement_skip(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        debouncer.submit("Coffee", bangkok)
        await debouncer.wait()
        debouncer.submit("", bangkok)
        debouncer.submit("Coffee S", bangkok)
        await debouncer.wait()

        assert search.queries == ["Coffee", "Coffee S"]

    @pytest.mark.asyncio
    async def test_refinement_skip_can_be_disabled(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY, refinement_skip_chars=None)

        debouncer.submit("Coffee", bangkok)
        await debouncer.wait()
        debouncer.submit("Coffee S", bangkok)
        await debouncer.wait()

        assert search.queries == ["Coffee", "Coffee S"]

    @pytest.mark.asyncio
    async def test_on_results_callback(self, bangkok):
        received = []
        debouncer = SearchDebouncer(RecordingSearch(), delay=DELAY, on_results=received.append)

        debouncer.submit("Thai food", bangkok)
        await debouncer.wait()

        assert [outcome.query for outcome in received] == ["Thai food"]

    @pytest.mark.asyncio
    async def test_errors_go_to_on_error(self, bangkok):
        errors = []
        search = RecordingSearch(error=ProviderError("boom"))
        debouncer = SearchDebouncer(search, delay=DELAY, on_error=errors.append)

        debouncer.submit("Coffee", bangkok)

        assert await debouncer.wait() is None
        assert len(errors) == 1
        assert errors[0].message == "boom"

    @pytest.mark.asyncio
    async def test_errors_propagate_without_handler(self, bangkok):
        debouncer = SearchDebouncer(RecordingSearch(error=ProviderError("boom")), delay=DELAY)

        debouncer.submit("Coffee", bangkok)

        with pytest.raises(ProviderError):
            await debouncer.wait()

    @pytest.mark.asyncio
    async def test_cancel(self, bangkok):
        search = RecordingSearch()
        debouncer = SearchDebouncer(search, delay=DELAY)

        debouncer.submit("Coffee", bangkok)
        assert debouncer.pending is True
        debouncer.cancel()

        assert await debouncer.wait() is None
        assert search.queries == []

    @pytest.mark.asyncio
    async def test_wait_without_submit(self):
        debouncer = SearchDebouncer(RecordingSearch(), delay=DELAY)
        assert await debouncer.wait() is None


def test_from_settings():
    from placecache.core.config import Settings

    settings = Settings(debounce_delay_ms=250, min_query_length=4)
    debouncer = SearchDebouncer.from_settings(RecordingSearch(), settings, refinement_skip_chars=None)

    assert debouncer.delay == 0.25
    assert debouncer.min_query_length == 4
    assert debouncer.refinement_skip_chars is None
