"""Catalog sources: the external collaborator that answers search queries.

Two implementations are provided:

- :class:`InMemoryCatalogSource` evaluates queries over a list of
  :class:`~discovery.models.AnimeSummary` records with the same facet
  semantics as the production backend.
- :class:`GrpcCatalogSource` forwards queries to a remote
  ``discovery.CatalogService`` over ``grpc.aio``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

import grpc

from discovery.models import (
    AnimeSummary,
    CatalogPage,
    FilterOptions,
    FilterState,
    Range,
    SearchQuery,
    SortMode,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "discovery.CatalogService"
SEARCH_METHOD = f"/{SERVICE_NAME}/Search"
FILTER_OPTIONS_METHOD = f"/{SERVICE_NAME}/GetFilterOptions"

DEFAULT_RPC_TIMEOUT_SECONDS = 5.0


class CatalogSourceError(Exception):
    """Raised when a catalog source cannot answer a request."""


class CatalogSource(Protocol):
    """Interface every catalog source implements.

    Sources must be idempotent for identical requests and return a stable
    total order per sort mode, so that paging never reorders items that
    were already delivered.
    """

    async def search(
        self, query: SearchQuery, cursor: str | None, num_items: int
    ) -> CatalogPage: ...

    async def filter_options(self) -> FilterOptions: ...


# ---------------------------------------------------------------------------
# Cursors
# ---------------------------------------------------------------------------


def encode_cursor(offset: int) -> str:
    """Return an opaque continuation token for *offset*."""
    raw = json.dumps({"offset": offset}).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str | None) -> int:
    """Return the offset stored in *cursor*; ``None`` means the start.

    Raises:
        ValueError: If *cursor* was not produced by :func:`encode_cursor`.
    """
    if cursor is None:
        return 0
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        offset = int(data["offset"])
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
        raise ValueError(f"Malformed cursor {cursor!r}") from None
    if offset < 0:
        raise ValueError(f"Malformed cursor {cursor!r}")
    return offset


# ---------------------------------------------------------------------------
# Query evaluation
# ---------------------------------------------------------------------------


def keyword_match_score(text: str, anime: AnimeSummary) -> float:
    """Score how well free *text* matches *anime*, in [0, 1].

    A title containing the whole text scores highest; otherwise the share of
    query words found in the title, and then in the genre, theme and
    emotional-tag labels, is used. Empty text matches everything with 1.0.
    """
    query = text.casefold().strip()
    if not query:
        return 1.0
    title = anime.title.casefold()
    if query == title:
        return 1.0
    if query in title:
        return 0.9

    query_tokens = set(query.split())
    title_tokens = set(title.split())
    label_tokens: set[str] = set()
    for label in (*anime.genres, *anime.themes, *anime.emotional_tags):
        label_tokens.update(label.casefold().split())

    title_overlap = len(query_tokens & title_tokens) / len(query_tokens)
    label_overlap = len(query_tokens & label_tokens) / len(query_tokens)
    return max(title_overlap * 0.8, label_overlap * 0.6)


def matches_filters(anime: AnimeSummary, filters: FilterState) -> bool:
    """Return ``True`` if *anime* satisfies every facet in *filters*.

    - genres: all selected genres must be present;
    - studios, themes, emotional tags: at least one selected value per facet;
    - ranges: inclusive; a missing field fails any defined bound;
    - ``min_reviews > 0``: at least that many reviews;
      ``min_reviews == 0``: only items without reviews.
    """
    if filters.genres and not filters.genres.issubset(anime.genres):
        return False
    if filters.studios and filters.studios.isdisjoint(anime.studios):
        return False
    if filters.themes and filters.themes.isdisjoint(anime.themes):
        return False
    if filters.emotional_tags and filters.emotional_tags.isdisjoint(anime.emotional_tags):
        return False
    if not filters.year_range.contains(anime.year):
        return False
    if not filters.rating_range.contains(anime.rating):
        return False
    if not filters.user_rating_range.contains(anime.average_user_rating):
        return False
    if filters.min_reviews is not None:
        reviews = anime.review_count
        if filters.min_reviews > 0:
            if reviews is None or reviews < filters.min_reviews:
                return False
        elif reviews:
            return False
    return True


# sort mode -> (field accessor, descending)
_SORT_FIELDS: dict[SortMode, tuple[Callable[[AnimeSummary], Any], bool]] = {
    SortMode.NEWEST: (lambda a: a.created_at, True),
    SortMode.OLDEST: (lambda a: a.created_at, False),
    SortMode.TITLE_ASC: (lambda a: a.title.casefold(), False),
    SortMode.TITLE_DESC: (lambda a: a.title.casefold(), True),
    SortMode.YEAR_DESC: (lambda a: a.year, True),
    SortMode.YEAR_ASC: (lambda a: a.year, False),
    SortMode.RATING_DESC: (lambda a: a.rating, True),
    SortMode.RATING_ASC: (lambda a: a.rating, False),
    SortMode.USER_RATING_DESC: (lambda a: a.average_user_rating, True),
    SortMode.USER_RATING_ASC: (lambda a: a.average_user_rating, False),
    SortMode.MOST_REVIEWED: (lambda a: a.review_count, True),
    SortMode.LEAST_REVIEWED: (lambda a: a.review_count, False),
}


def order_results(
    items: Iterable[AnimeSummary], query: SearchQuery
) -> list[AnimeSummary]:
    """Order *items* by the query's sort mode.

    Ties are broken by ``anime_id`` and items lacking the sort field come
    last in either direction, giving a stable total order.
    """
    ordered = sorted(items, key=lambda a: a.anime_id)
    if query.sort_mode == SortMode.RELEVANCE:
        ordered.sort(key=lambda a: keyword_match_score(query.free_text, a), reverse=True)
        return ordered

    accessor, descending = _SORT_FIELDS[query.sort_mode]
    if descending:
        ordered.sort(
            key=lambda a: (accessor(a) is not None, accessor(a)), reverse=True
        )
    else:
        ordered.sort(key=lambda a: (accessor(a) is None, accessor(a)))
    return ordered


def _observed_range(values: Iterable[float | None]) -> Range | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return Range(min=min(present), max=max(present))


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------


class InMemoryCatalogSource:
    """Catalog source backed by a list of anime records held in memory.

    Args:
        items: The catalog. Ids must be unique.

    Raises:
        ValueError: If two items share an id.
    """

    def __init__(self, items: Iterable[AnimeSummary]) -> None:
        self._items = tuple(items)
        if len({a.anime_id for a in self._items}) != len(self._items):
            raise ValueError("Anime ids must be unique")

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> InMemoryCatalogSource:
        return cls(AnimeSummary.from_dict(r) for r in records)

    @classmethod
    def from_json_file(cls, path: str | Path) -> InMemoryCatalogSource:
        """Load a JSON file holding a list of anime records."""
        with open(path, encoding="utf-8") as fh:
            source = cls.from_records(json.load(fh))
        logger.info("Anime catalog loaded: %d items from %s.", len(source), path)
        return source

    def __len__(self) -> int:
        return len(self._items)

    # ------------------------------------------------------------------
    # CatalogSource interface
    # ------------------------------------------------------------------

    async def search(
        self, query: SearchQuery, cursor: str | None, num_items: int
    ) -> CatalogPage:
        return self.search_sync(query, cursor, num_items)

    async def filter_options(self) -> FilterOptions:
        return self.filter_options_sync()

    # ------------------------------------------------------------------
    # Synchronous implementation
    # ------------------------------------------------------------------

    def search_sync(
        self, query: SearchQuery, cursor: str | None, num_items: int
    ) -> CatalogPage:
        """Evaluate *query* and return the page starting at *cursor*.

        Raises:
            ValueError: If *num_items* is not positive or *cursor* is malformed.
        """
        if num_items <= 0:
            raise ValueError(f"num_items must be positive, got {num_items!r}")
        offset = decode_cursor(cursor)

        matching = [
            a for a in self._items
            if matches_filters(a, query.filters)
            and (not query.free_text or keyword_match_score(query.free_text, a) > 0.0)
        ]
        ordered = order_results(matching, query)

        end = offset + num_items
        is_done = end >= len(ordered)
        return CatalogPage(
            items=tuple(ordered[offset:end]),
            continue_cursor=None if is_done else encode_cursor(end),
            is_done=is_done,
        )

    def filter_options_sync(self) -> FilterOptions:
        """Return the distinct facet values and observed ranges of the catalog."""
        genres: set[str] = set()
        studios: set[str] = set()
        themes: set[str] = set()
        emotional_tags: set[str] = set()
        for anime in self._items:
            genres.update(anime.genres)
            studios.update(anime.studios)
            themes.update(anime.themes)
            emotional_tags.update(anime.emotional_tags)
        return FilterOptions(
            genres=tuple(sorted(genres)),
            studios=tuple(sorted(studios)),
            themes=tuple(sorted(themes)),
            emotional_tags=tuple(sorted(emotional_tags)),
            year_range=_observed_range(a.year for a in self._items),
            rating_range=_observed_range(a.rating for a in self._items),
            user_rating_range=_observed_range(a.average_user_rating for a in self._items),
        )


# ---------------------------------------------------------------------------
# gRPC wire codec
# ---------------------------------------------------------------------------


def encode_message(message: Any) -> bytes:
    """Serialise a JSON-compatible message for the wire."""
    return json.dumps(message, separators=(",", ":")).encode("utf-8")


def decode_message(data: bytes) -> Any:
    return json.loads(data.decode("utf-8"))


def page_to_wire(page: CatalogPage) -> dict[str, Any]:
    return {
        "items": [a.to_dict() for a in page.items],
        "continue_cursor": page.continue_cursor,
        "is_done": page.is_done,
    }


def page_from_wire(message: dict[str, Any]) -> CatalogPage:
    return CatalogPage(
        items=tuple(AnimeSummary.from_dict(i) for i in message.get("items", [])),
        continue_cursor=message.get("continue_cursor"),
        is_done=bool(message.get("is_done", False)),
    )


# ---------------------------------------------------------------------------
# gRPC client source
# ---------------------------------------------------------------------------


class GrpcCatalogSource:
    """Catalog source that calls a remote ``discovery.CatalogService``.

    Messages are JSON documents carried in gRPC unary calls, so no generated
    stubs are required on either side.

    Args:
        channel: An open :class:`grpc.aio.Channel` to the catalog service.
        timeout_seconds: Deadline applied to every call.
    """

    def __init__(
        self,
        channel: grpc.aio.Channel,
        timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS,
    ) -> None:
        self._channel = channel
        self._timeout = timeout_seconds
        self._search = channel.unary_unary(
            SEARCH_METHOD,
            request_serializer=encode_message,
            response_deserializer=decode_message,
        )
        self._filter_options = channel.unary_unary(
            FILTER_OPTIONS_METHOD,
            request_serializer=encode_message,
            response_deserializer=decode_message,
        )

    @classmethod
    def connect(
        cls, address: str, timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS
    ) -> GrpcCatalogSource:
        """Open an insecure channel to *address* (``host:port``)."""
        logger.info("Connecting to catalog service at %s", address)
        return cls(grpc.aio.insecure_channel(address), timeout_seconds=timeout_seconds)

    async def close(self) -> None:
        await self._channel.close()

    async def search(
        self, query: SearchQuery, cursor: str | None, num_items: int
    ) -> CatalogPage:
        """Fetch one page from the remote catalog.

        Raises:
            CatalogSourceError: If the call fails or times out.
        """
        request = {"query": query.to_dict(), "cursor": cursor, "num_items": num_items}
        try:
            response = await self._search(request, timeout=self._timeout)
        except grpc.aio.AioRpcError as exc:
            raise CatalogSourceError(
                f"Search failed: {exc.code().name}: {exc.details()}"
            ) from exc
        return page_from_wire(response)

    async def filter_options(self) -> FilterOptions:
        """Fetch the facet values offered by the remote catalog.

        Raises:
            CatalogSourceError: If the call fails or times out.
        """
        try:
            response = await self._filter_options({}, timeout=self._timeout)
        except grpc.aio.AioRpcError as exc:
            raise CatalogSourceError(
                f"GetFilterOptions failed: {exc.code().name}: {exc.details()}"
            ) from exc
        return FilterOptions.from_dict(response)
