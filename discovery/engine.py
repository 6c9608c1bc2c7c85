"""Discovery engine: wires context, presets, filters, text and paging together."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from discovery.context import ContextDetector
from discovery.fetcher import DEFAULT_PAGE_SIZE, PaginatedResultFetcher
from discovery.filters import FilterComposer
from discovery.models import (
    FetchFailure,
    FilterState,
    MoodPreset,
    ResultPage,
    SearchQuery,
    SortMode,
    UserContext,
)
from discovery.presets import PresetCatalogue
from discovery.scorer import MoodPresetScorer
from discovery.search_text import DEFAULT_DEBOUNCE_SECONDS, SearchTextController
from discovery.sources import CatalogSource

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Answers "what should this user see right now".

    Data flow::

        ContextDetector -> MoodPresetScorer -> (optional) FilterComposer pre-fill
            -> SearchTextController -> SearchQuery -> PaginatedResultFetcher

    The :class:`SearchQuery` is recomputed from its three inputs (filters,
    debounced text, sort mode) whenever one of them changes. If the result
    differs from the query currently shown, a first-page fetch is scheduled
    on the event loop; superseded fetches are discarded by the fetcher.

    Args:
        detector: Samples the user context.
        presets: Mood preset catalogue.
        source: Catalog to search.
        scorer: Preset scorer. Defaults to the standard weights.
        page_size: Items per page.
        debounce_seconds: Quiet period for free-text input.
        default_sort: Ordering used while no text is entered.
        on_update: Forwarded to the fetcher; called on every page change.
        on_error: Forwarded to the fetcher; called once per fetch failure.
        on_suggestion: Called with the new suggested preset (or ``None``)
            whenever the context is refreshed.
    """

    def __init__(
        self,
        detector: ContextDetector,
        presets: PresetCatalogue,
        source: CatalogSource,
        scorer: MoodPresetScorer | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        default_sort: SortMode = SortMode.NEWEST,
        on_update: Callable[[ResultPage], None] | None = None,
        on_error: Callable[[FetchFailure], None] | None = None,
        on_suggestion: Callable[[MoodPreset | None], None] | None = None,
    ) -> None:
        self._detector = detector
        self._presets = presets
        self._source = source
        self._scorer = scorer or MoodPresetScorer()
        self._on_suggestion = on_suggestion

        self._composer = FilterComposer()
        self._composer.subscribe(self._on_filters_changed)
        self._search_text = SearchTextController(
            on_change=self._on_text_changed,
            delay_seconds=debounce_seconds,
            default_sort=default_sort,
        )
        self._fetcher = PaginatedResultFetcher(
            source, page_size=page_size, on_update=on_update, on_error=on_error
        )

        self._context: UserContext | None = None
        self._suggested: MoodPreset | None = None
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read access for the view layer
    # ------------------------------------------------------------------

    @property
    def context(self) -> UserContext | None:
        return self._context

    @property
    def suggested_preset(self) -> MoodPreset | None:
        return self._suggested

    @property
    def suggestions(self) -> list[MoodPreset]:
        """All presets eligible for the current context, in catalogue order."""
        if self._context is None:
            return []
        return self._scorer.eligible(self._context, self._presets)

    @property
    def composer(self) -> FilterComposer:
        return self._composer

    @property
    def search_text(self) -> SearchTextController:
        return self._search_text

    @property
    def filters(self) -> FilterState:
        return self._composer.state

    @property
    def active_filter_count(self) -> int:
        return self._composer.active_filter_count

    @property
    def page(self) -> ResultPage:
        return self._fetcher.page

    @property
    def last_error(self) -> FetchFailure | None:
        return self._fetcher.last_error

    def current_query(self) -> SearchQuery:
        return self._composer.build_query(
            self._search_text.debounced_text, self._search_text.sort_mode
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ResultPage:
        """Sample the context, pick a suggestion, start refreshing, load page one."""
        self._set_context(await self._detector.sample())
        self._detector.start_refresh_loop(self._set_context)
        return await self._fetcher.fetch(self.current_query())

    async def close(self) -> None:
        """Stop timers and wait for scheduled fetches to settle."""
        self._search_text.close()
        await self._detector.stop_refresh_loop()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def refresh_context(self) -> UserContext:
        """Resample the context immediately and re-score the presets."""
        context = await self._detector.sample()
        self._set_context(context)
        return context

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def apply_preset(self, preset: MoodPreset) -> FilterState:
        """Pre-fill emotional-tag filters from the cue labels of *preset*.

        Tags already selected stay selected.
        """
        logger.info("Applying mood preset %r.", preset.preset_id)
        return self._composer.apply_emotional_tags(c.label for c in preset.cues)

    async def refresh_results(self) -> ResultPage:
        """Fetch the current query now; a no-op if it is already shown."""
        return await self._fetcher.fetch(self.current_query())

    async def load_more(self, page_size: int | None = None) -> ResultPage:
        return await self._fetcher.load_more(page_size)

    async def retry(self) -> ResultPage:
        return await self._fetcher.retry()

    async def settle(self) -> ResultPage:
        """Wait until every scheduled fetch has completed."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        return self._fetcher.page

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_context(self, context: UserContext) -> None:
        self._context = context
        suggested = self._scorer.select(context, self._presets)
        changed = suggested != self._suggested
        self._suggested = suggested
        logger.debug("Context updated: %s", context)
        if changed and self._on_suggestion is not None:
            self._on_suggestion(suggested)

    def _on_filters_changed(self, state: FilterState) -> None:
        self._schedule_fetch()

    def _on_text_changed(self, text: str, sort_mode: SortMode) -> None:
        self._schedule_fetch()

    def _schedule_fetch(self) -> None:
        query = self.current_query()
        if query == self._fetcher.query:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; fetch deferred until refresh_results().")
            return
        task = loop.create_task(self._fetcher.fetch(query))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
