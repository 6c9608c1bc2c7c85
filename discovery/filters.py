"""Facet filter composer: the single owner of the current FilterState."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

from discovery.models import (
    FilterState,
    Range,
    RangeFacet,
    SearchQuery,
    SetFacet,
    SortMode,
)

logger = logging.getLogger(__name__)

FilterListener = Callable[[FilterState], None]


class FilterComposer:
    """Holds the facet selections and turns them into search queries.

    The state is an immutable :class:`~discovery.models.FilterState`; every
    operation builds a new value and, if it differs from the old one,
    notifies the subscribed listeners. Nothing outside this class replaces
    the state.

    Cross-field validation is limited: an inverted range (``min > max``) is
    accepted and logged, and the catalog source answers it with no results.

    Args:
        initial: Starting state. Defaults to no filters.
    """

    def __init__(self, initial: FilterState | None = None) -> None:
        self._state = initial or FilterState()
        self._listeners: list[FilterListener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def active_filter_count(self) -> int:
        return self._state.active_count

    @property
    def has_active_filters(self) -> bool:
        return self._state.active_count > 0

    def build_query(self, free_text: str, sort_mode: SortMode) -> SearchQuery:
        """Return the canonical query for the current filters.

        Args:
            free_text: Search text; surrounding whitespace is dropped.
            sort_mode: Ordering of the results.
        """
        return SearchQuery(free_text=free_text.strip(), filters=self._state, sort_mode=sort_mode)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        """Register *listener* for state changes.

        Returns:
            A callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle(self, facet: SetFacet, value: str) -> FilterState:
        """Add *value* to the facet's selection, or remove it if present."""
        facet = SetFacet(facet)
        current: frozenset[str] = getattr(self._state, facet.value)
        updated = current - {value} if value in current else current | {value}
        return self._set(replace(self._state, **{facet.value: updated}))

    def apply_emotional_tags(self, labels: Iterable[str]) -> FilterState:
        """Select every label in *labels* as an emotional tag.

        Labels already selected stay selected; nothing is deselected.
        """
        updated = self._state.emotional_tags | frozenset(labels)
        return self._set(replace(self._state, emotional_tags=updated))

    def set_range(
        self,
        facet: RangeFacet,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> FilterState:
        """Replace a range facet. ``None`` leaves that side unbounded."""
        facet = RangeFacet(facet)
        new_range = Range(min=minimum, max=maximum)
        if new_range.is_inverted:
            logger.warning(
                "Inverted %s accepted (min=%r > max=%r); expect no results.",
                facet.value,
                minimum,
                maximum,
            )
        return self._set(replace(self._state, **{facet.value: new_range}))

    def set_min_reviews(self, value: int | None) -> FilterState:
        """Set or clear (``None``) the minimum review count.

        Raises:
            ValueError: If *value* is negative.
        """
        if value is not None and value < 0:
            raise ValueError(f"min_reviews must be >= 0, got {value!r}")
        return self._set(replace(self._state, min_reviews=value))

    def clear(self) -> FilterState:
        """Reset to the empty filter state."""
        return self._set(FilterState())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set(self, new_state: FilterState) -> FilterState:
        if new_state == self._state:
            return self._state
        self._state = new_state
        logger.debug("Filters changed: %d active.", new_state.active_count)
        for listener in list(self._listeners):
            listener(new_state)
        return new_state
