"""Paginated result fetcher with generation-based stale response suppression."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from discovery.models import (
    CatalogPage,
    FetchFailure,
    PageStatus,
    ResultPage,
    SearchQuery,
)
from discovery.sources import CatalogSource

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12


class PaginatedResultFetcher:
    """Turns a :class:`SearchQuery` into incrementally loaded result pages.

    State machine::

        LoadingFirstPage --> CanLoadMore | Exhausted
        CanLoadMore --load_more--> LoadingMore --> CanLoadMore | Exhausted

    Every new query bumps a generation counter. Each request remembers the
    generation it was issued under, and when it completes its result is only
    applied if that generation is still current. A slow response for an old
    query therefore never overwrites the page of a newer one; the call itself
    is not cancelled, its result is just dropped.

    Failures are not retried. The last successfully loaded page stays on
    display, a :class:`~discovery.models.FetchFailure` is stored in
    :attr:`last_error` and passed once to *on_error*.

    Args:
        source: The catalog to query.
        page_size: Items requested per page.
        on_update: Called with the new :class:`ResultPage` after every
            applied state change.
        on_error: Called once per surfaced failure.
    """

    def __init__(
        self,
        source: CatalogSource,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_update: Callable[[ResultPage], None] | None = None,
        on_error: Callable[[FetchFailure], None] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size!r}")
        self._source = source
        self._page_size = page_size
        self._on_update = on_update
        self._on_error = on_error

        self._generation = 0
        self._query: SearchQuery | None = None
        # Query the displayed items belong to; lags _query while a first
        # page is loading or after a first-page failure.
        self._page_query: SearchQuery | None = None
        self._page = ResultPage()
        self._settled_status = PageStatus.LOADING_FIRST_PAGE
        self._last_error: FetchFailure | None = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def page(self) -> ResultPage:
        """The page to display.

        When the first page of the first query fails there is no earlier
        page to fall back to, so the status stays ``LoadingFirstPage``. A
        view must check :attr:`last_error` to tell a failed load from one
        still in flight.
        """
        return self._page

    @property
    def query(self) -> SearchQuery | None:
        return self._query

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_error(self) -> FetchFailure | None:
        return self._last_error

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def fetch(self, query: SearchQuery) -> ResultPage:
        """Load the first page of *query*.

        A query equal to the current one is a no-op. Otherwise any request
        still in flight is superseded and the state restarts at
        ``LoadingFirstPage``; items of the previous query stay visible until
        the new first page arrives.

        Returns:
            The page as it stands when this call completes, which reflects a
            newer query if this one was superseded meanwhile.
        """
        if query == self._query:
            return self._page
        return await self._load_first_page(query)

    async def retry(self) -> ResultPage:
        """Re-issue the first page of the current query after a failure."""
        if self._query is None:
            return self._page
        return await self._load_first_page(self._query)

    async def load_more(self, page_size: int | None = None) -> ResultPage:
        """Append the next page of the current query.

        Does nothing unless the status is ``CanLoadMore`` and the displayed
        items belong to the current query.

        Args:
            page_size: Items to request. Defaults to the fetcher's page size.
        """
        n = page_size or self._page_size
        if (
            self._page.status != PageStatus.CAN_LOAD_MORE
            or self._query is None
            or self._page_query != self._query
        ):
            return self._page

        generation = self._generation
        query = self._query
        self._settled_status = self._page.status
        self._apply(replace(self._page, status=PageStatus.LOADING_MORE))

        try:
            result = await self._source.search(query, self._page.cursor, n)
        except Exception as exc:
            if generation != self._generation:
                self._log_stale(generation)
                return self._page
            self._fail(query, generation, exc, PageStatus.LOADING_MORE)
            return self._page

        if generation != self._generation:
            self._log_stale(generation)
            return self._page

        self._apply(
            ResultPage(
                items=self._page.items + result.items,
                cursor=result.continue_cursor,
                status=self._status_after(result, n),
            )
        )
        return self._page

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_first_page(self, query: SearchQuery) -> ResultPage:
        self._generation += 1
        generation = self._generation
        self._query = query
        self._last_error = None
        if self._page.status not in (PageStatus.LOADING_FIRST_PAGE, PageStatus.LOADING_MORE):
            self._settled_status = self._page.status
        self._apply(replace(self._page, status=PageStatus.LOADING_FIRST_PAGE))
        logger.debug("Fetching first page (generation=%d): %s", generation, query)

        n = self._page_size
        try:
            result = await self._source.search(query, None, n)
        except Exception as exc:
            if generation != self._generation:
                self._log_stale(generation)
                return self._page
            self._fail(query, generation, exc, PageStatus.LOADING_FIRST_PAGE)
            return self._page

        if generation != self._generation:
            self._log_stale(generation)
            return self._page

        self._page_query = query
        self._apply(
            ResultPage(
                items=result.items,
                cursor=result.continue_cursor,
                status=self._status_after(result, n),
            )
        )
        return self._page

    @staticmethod
    def _status_after(result: CatalogPage, requested: int) -> PageStatus:
        if result.is_done or len(result.items) < requested:
            return PageStatus.EXHAUSTED
        return PageStatus.CAN_LOAD_MORE

    def _fail(
        self,
        query: SearchQuery,
        generation: int,
        error: Exception,
        phase: PageStatus,
    ) -> None:
        failure = FetchFailure(query=query, generation=generation, error=error, phase=phase)
        self._last_error = failure
        logger.warning(
            "Catalog fetch failed (generation=%d, phase=%s): %s",
            generation,
            phase.value,
            error,
        )
        self._apply(replace(self._page, status=self._settled_status))
        if self._on_error is not None:
            self._on_error(failure)

    def _apply(self, page: ResultPage) -> None:
        self._page = page
        if self._on_update is not None:
            self._on_update(page)

    @staticmethod
    def _log_stale(generation: int) -> None:
        logger.debug("Discarding stale response for generation %d.", generation)
