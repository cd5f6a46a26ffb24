"""Debounced query controller for search-as-you-type.

Each keystroke calls ``submit``; a search only runs once the user has paused
for ``delay`` seconds, and any search still waiting when a new keystroke
arrives is cancelled. The search cache stays correct without this controller,
it only cuts down how often it and the provider are hit.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from placecache.core.errors import PlaceCacheError
from placecache.core.logging import get_logger
from placecache.services.place_search import PlaceSearchOutcome

logger = get_logger(__name__)

SearchFn = Callable[[str, Any], Awaitable[PlaceSearchOutcome]]


class SearchDebouncer:
    """Runs the latest query after a typing pause.

    Usage:
        debouncer = SearchDebouncer(service.search, on_results=show_results)
        for text in ("C", "Co", "Cof", "Coff", "Coffee"):
            debouncer.submit(text, origin)
        await debouncer.wait()  # only "Coffee" is searched
    """

    def __init__(
        self,
        search: SearchFn,
        delay: float = 0.8,
        min_query_length: int = 3,
        refinement_skip_chars: Optional[int] = 2,
        on_results: Optional[Callable[[PlaceSearchOutcome], None]] = None,
        on_error: Optional[Callable[[PlaceCacheError], None]] = None,
    ):
        """Initialize the controller.

        Args:
            search: Coroutine function running one search.
            delay: Typing pause in seconds before a search runs.
            min_query_length: Shorter queries never trigger a search.
            refinement_skip_chars: Skip a query that extends the last executed
                one by at most this many characters; None disables the skip.
            on_results: Called with each completed search outcome.
            on_error: Called with search errors; if unset they propagate from ``wait``.
        """
        self._search = search
        self.delay = delay
        self.min_query_length = min_query_length
        self.refinement_skip_chars = refinement_skip_chars
        self._on_results = on_results
        self._on_error = on_error

        self._task: Optional[asyncio.Task] = None
        self.last_searched_query = ""

    @classmethod
    def from_settings(cls, search: SearchFn, settings: Any, **kwargs: Any) -> "SearchDebouncer":
        """Build a controller using the configured delay and minimum length."""
        return cls(
            search,
            delay=settings.debounce_delay_ms / 1000,
            min_query_length=settings.min_query_length,
            **kwargs,
        )

    @property
    def pending(self) -> bool:
        """True while a search is scheduled or running."""
        return self._task is not None and not self._task.done()

    def submit(self, query: str, location: Any) -> Optional[asyncio.Task]:
        """Register a keystroke; returns the scheduled task, if any."""
        self.cancel()

        text = query.strip()
        if len(text) < self.min_query_length:
            if not text:
                self.last_searched_query = ""
            return None

        self._task = asyncio.create_task(self._run(text, location))
        return self._task

    def cancel(self) -> None:
        """Abandon any scheduled or running search."""
        if self.pending:
            self._task.cancel()

    async def wait(self) -> Optional[PlaceSearchOutcome]:
        """Wait for the current search; None if it was cancelled or skipped."""
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            return None

    def _is_refinement(self, text: str) -> bool:
        if self.refinement_skip_chars is None or not self.last_searched_query:
            return False
        previous = self.last_searched_query
        return (
            text.startswith(previous)
            and len(text) - len(previous) <= self.refinement_skip_chars
        )

    async def _run(self, text: str, location: Any) -> Optional[PlaceSearchOutcome]:
        await asyncio.sleep(self.delay)

        if self._is_refinement(text):
            logger.debug(f"Search skipped: '{text}' refines '{self.last_searched_query}'")
            return None

        self.last_searched_query = text
        try:
            outcome = await self._search(text, location)
        except PlaceCacheError as e:
            if self._on_error is None:
                raise
            logger.warning(f"Debounced search for '{text}' failed: {e}")
            self._on_error(e)
            return None

        if self._on_results is not None:
            self._on_results(outcome)
        return outcome
