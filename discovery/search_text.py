"""Debounced free-text input coupled with the result sort mode."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from discovery.models import SortMode

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

ChangeListener = Callable[[str, SortMode], None]


class SearchTextController:
    """Coalesces keystrokes and keeps the sort mode in step with searching.

    Text passed to :meth:`set_text` is published as :attr:`debounced_text`
    only after *delay_seconds* without further input (trailing debounce).
    Each keystroke restarts the timer, so a burst of typing yields a single
    publication carrying the final text.

    Sort coupling, applied when the published text changes:

    - empty -> non-empty: the sort switches to ``relevance``.
    - non-empty -> empty: the sort reverts to *default_sort*, unless the
      user picked a different sort mode with :meth:`set_sort_mode` while
      searching, in which case that choice is kept.

    Choosing a sort mode never changes the text.

    Args:
        on_change: Called with ``(debounced_text, sort_mode)`` whenever
            either value changes.
        delay_seconds: Quiet period before text is published.
        default_sort: Ordering used while no text is present.
        loop: Event loop for the debounce timer. Defaults to the running
            loop at the time of the first keystroke.
    """

    def __init__(
        self,
        on_change: ChangeListener | None = None,
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        default_sort: SortMode = SortMode.NEWEST,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._on_change = on_change
        self._delay = delay_seconds
        self._loop = loop
        self._text = ""
        self._debounced = ""
        self._default_sort = SortMode(default_sort)
        self._sort = self._default_sort
        self._explicit_sort_while_searching = False
        self._timer: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        """The latest raw input, published or not."""
        return self._text

    @property
    def debounced_text(self) -> str:
        return self._debounced

    @property
    def sort_mode(self) -> SortMode:
        return self._sort

    @property
    def is_searching(self) -> bool:
        return bool(self._debounced.strip())

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_text(self, text: str) -> None:
        """Record a keystroke and (re)start the debounce timer."""
        self._text = text
        self._cancel_timer()
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._publish)

    def set_sort_mode(self, mode: SortMode) -> None:
        """Apply an explicit sort choice from the user.

        Choosing the mode that is already active changes nothing. While
        searching, only a choice other than ``relevance`` survives clearing
        the text.
        """
        mode = SortMode(mode)
        if mode == self._sort:
            return
        if self.is_searching:
            self._explicit_sort_while_searching = mode != SortMode.RELEVANCE
        self._sort = mode
        self._notify()

    def flush(self) -> None:
        """Publish pending text immediately instead of waiting for the timer."""
        if self._timer is not None:
            self._cancel_timer()
            self._publish()

    def close(self) -> None:
        """Drop any pending text without publishing it."""
        self._cancel_timer()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish(self) -> None:
        self._timer = None
        new_text = self._text
        if new_text == self._debounced:
            return

        was_searching = self.is_searching
        self._debounced = new_text
        now_searching = self.is_searching

        if now_searching and not was_searching:
            self._sort = SortMode.RELEVANCE
            self._explicit_sort_while_searching = False
        elif was_searching and not now_searching:
            if not self._explicit_sort_while_searching:
                self._sort = self._default_sort
            self._explicit_sort_while_searching = False

        logger.debug("Search text published: %r (sort=%s).", new_text, self._sort.value)
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._debounced, self._sort)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
