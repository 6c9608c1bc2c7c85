"""
mock_server.py: self-contained mock catalog backend.

Ports
-----
50052  gRPC  discovery.CatalogService  (this server acts as the anime backend)

Methods
-------
Search            {query, cursor, num_items} -> {items, continue_cursor, is_done}
GetFilterOptions  {}                         -> {genres, studios, ..., year_range, ...}

Messages are JSON documents, so no generated stubs are needed.

Startup order
-------------
1. python mock_server.py                                # catalog on 50052
2. CATALOG_GRPC_ADDRESS=localhost:50052 python main.py  # discovery pass

The catalog served is ``SAMPLE_ANIME`` below, or the file named by
``CATALOG_JSON_PATH`` when set.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

import grpc

import config
from discovery.models import SearchQuery
from discovery.sources import (
    SERVICE_NAME,
    InMemoryCatalogSource,
    decode_message,
    encode_message,
    page_to_wire,
)

logger = logging.getLogger("mock_server")

# ---------------------------------------------------------------------------
# Static anime catalogue, 16 titles
# ---------------------------------------------------------------------------

SAMPLE_ANIME: list[dict[str, Any]] = [
    {
        "anime_id": "a001",
        "title": "Lanterns Over Kyoto",
        "genres": ["Slice of Life", "Drama"],
        "studios": ["Kyoto Animation"],
        "themes": ["Seasons", "Family"],
        "emotional_tags": ["Nostalgic", "Heartwarming", "Chill Vibes"],
        "year": 2019, "rating": 8.4, "average_user_rating": 4.5, "review_count": 42,
        "created_at": 1_700_000_100,
    },
    {
        "anime_id": "a002",
        "title": "Skybreaker Saga",
        "genres": ["Action", "Adventure", "Fantasy"],
        "studios": ["MAPPA"],
        "themes": ["Friendship", "Coming of Age"],
        "emotional_tags": ["Epic Adventure", "Action Packed", "Strong Friendships"],
        "year": 2021, "rating": 8.1, "average_user_rating": 4.2, "review_count": 87,
        "created_at": 1_700_000_200,
    },
    {
        "anime_id": "a003",
        "title": "The Glass Labyrinth",
        "genres": ["Mystery", "Psychological", "Thriller"],
        "studios": ["Madhouse"],
        "themes": ["Identity", "Memory"],
        "emotional_tags": ["Mind-Bending", "Dark & Gritty", "Complex Characters"],
        "year": 2016, "rating": 8.7, "average_user_rating": 4.6, "review_count": 120,
        "created_at": 1_700_000_300,
    },
    {
        "anime_id": "a004",
        "title": "Rain on the Tin Roof",
        "genres": ["Slice of Life", "Romance"],
        "studios": ["P.A. Works"],
        "themes": ["Small Town"],
        "emotional_tags": ["Chill Vibes", "Melancholic", "Heartwarming"],
        "year": 2014, "rating": 7.6, "average_user_rating": 3.9, "review_count": 15,
        "created_at": 1_700_000_400,
    },
    {
        "anime_id": "a005",
        "title": "Brushstroke Kingdom",
        "genres": ["Fantasy", "Drama"],
        "studios": ["Science SARU"],
        "themes": ["Art", "Mythology"],
        "emotional_tags": ["Stunning Visuals", "Unique Art Style", "Thought-Provoking"],
        "year": 2022, "rating": 8.0, "average_user_rating": None, "review_count": 0,
        "created_at": 1_700_000_500,
    },
    {
        "anime_id": "a006",
        "title": "Pocket Full of Stars",
        "genres": ["Comedy", "Family"],
        "studios": ["Toei Animation"],
        "themes": ["Family", "Friendship"],
        "emotional_tags": ["Heartwarming", "Inspiring", "Comedic"],
        "year": 2010, "rating": 7.2, "average_user_rating": 4.0, "review_count": 33,
        "created_at": 1_700_000_600,
    },
    {
        "anime_id": "a007",
        "title": "Iron Tide",
        "genres": ["Action", "Sci-Fi"],
        "studios": ["Production I.G"],
        "themes": ["War", "Mecha"],
        "emotional_tags": ["Action Packed", "Dark & Gritty", "Edge of Seat"],
        "year": 2018, "rating": 7.9, "average_user_rating": 3.8, "review_count": 58,
        "created_at": 1_700_000_700,
    },
    {
        "anime_id": "a008",
        "title": "Autumn Letters",
        "genres": ["Drama", "Romance"],
        "studios": ["Kyoto Animation"],
        "themes": ["Seasons", "Memory"],
        "emotional_tags": ["Nostalgic", "Slow Burn", "Melancholic"],
        "year": 2020, "rating": 8.9, "average_user_rating": 4.8, "review_count": 140,
        "created_at": 1_700_000_800,
    },
    {
        "anime_id": "a009",
        "title": "Summer Circuit",
        "genres": ["Sports", "Comedy"],
        "studios": ["Bones"],
        "themes": ["Friendship", "Competition"],
        "emotional_tags": ["Inspiring", "Strong Friendships", "Comedic"],
        "year": 2023, "rating": 7.5, "average_user_rating": None, "review_count": None,
        "created_at": 1_700_000_900,
    },
    {
        "anime_id": "a010",
        "title": "Midnight Switchboard",
        "genres": ["Mystery", "Supernatural"],
        "studios": ["Shaft"],
        "themes": ["Urban Legend"],
        "emotional_tags": ["Mind-Bending", "Edge of Seat"],
        "year": 2012, "rating": 7.8, "average_user_rating": 4.1, "review_count": 27,
        "created_at": 1_700_001_000,
    },
    {
        "anime_id": "a011",
        "title": "Harbor Light Bakery",
        "genres": ["Slice of Life", "Comedy"],
        "studios": ["Doga Kobo"],
        "themes": ["Food", "Small Town"],
        "emotional_tags": ["Chill Vibes", "Heartwarming", "Comedic"],
        "year": 2017, "rating": 7.4, "average_user_rating": 4.3, "review_count": 19,
        "created_at": 1_700_001_100,
    },
    {
        "anime_id": "a012",
        "title": "Ashen Crown",
        "genres": ["Action", "Fantasy", "Drama"],
        "studios": ["ufotable"],
        "themes": ["Revenge", "Mythology"],
        "emotional_tags": ["Epic Adventure", "Stunning Visuals", "Dark & Gritty"],
        "year": 2019, "rating": 8.5, "average_user_rating": 4.4, "review_count": 96,
        "created_at": 1_700_001_200,
    },
    {
        "anime_id": "a013",
        "title": "Little Lighthouse",
        "genres": ["Family", "Adventure"],
        "studios": ["Ghibli Heritage"],
        "themes": ["Family", "Sea"],
        "emotional_tags": ["Heartwarming", "Inspiring", "Fantasy & Magical"],
        "year": 2008, "rating": 8.2, "average_user_rating": 4.7, "review_count": 64,
        "created_at": 1_700_001_300,
    },
    {
        "anime_id": "a014",
        "title": "Static Dreams",
        "genres": ["Sci-Fi", "Psychological"],
        "studios": ["Madhouse"],
        "themes": ["Virtual Reality", "Identity"],
        "emotional_tags": ["Mind-Bending", "Thought-Provoking", "Unique Art Style"],
        "year": 2015, "rating": 8.3, "average_user_rating": 4.2, "review_count": 71,
        "created_at": 1_700_001_400,
    },
    {
        "anime_id": "a015",
        "title": "Tea House at the Edge of Winter",
        "genres": ["Slice of Life", "Fantasy"],
        "studios": ["P.A. Works"],
        "themes": ["Seasons", "Food"],
        "emotional_tags": ["Chill Vibes", "Nostalgic", "Slow Burn"],
        "year": 2021, "rating": 7.7, "average_user_rating": 4.1, "review_count": 9,
        "created_at": 1_700_001_500,
    },
    {
        "anime_id": "a016",
        "title": "Overclocked",
        "genres": ["Action", "Comedy", "Sci-Fi"],
        "studios": ["Trigger"],
        "themes": ["Mecha", "Competition"],
        "emotional_tags": ["Action Packed", "Comedic", "Unique Art Style"],
        "year": 2024, "rating": None, "average_user_rating": None, "review_count": 0,
        "created_at": 1_700_001_600,
    },
]


# ---------------------------------------------------------------------------
# CatalogService servicer
# ---------------------------------------------------------------------------


class MockCatalogServicer:
    """Serves an :class:`InMemoryCatalogSource` as ``discovery.CatalogService``."""

    def __init__(self, source: InMemoryCatalogSource) -> None:
        self._source = source

    async def Search(self, request: dict[str, Any], context: grpc.aio.ServicerContext) -> dict:
        try:
            query = SearchQuery.from_dict(request["query"])
            page = self._source.search_sync(
                query, request.get("cursor"), int(request.get("num_items", config.PAGE_SIZE))
            )
            return page_to_wire(page)
        except (KeyError, TypeError, ValueError) as exc:
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, f"Bad search request: {exc}")
        except Exception:
            logger.exception("Unexpected error searching catalog for request %r", request)
            await context.abort(grpc.StatusCode.INTERNAL, "Internal error searching catalog.")

    async def GetFilterOptions(
        self, request: dict[str, Any], context: grpc.aio.ServicerContext
    ) -> dict:
        return self._source.filter_options_sync().to_dict()


def build_server(source: InMemoryCatalogSource, address: str) -> tuple[grpc.aio.Server, int]:
    """Construct the gRPC server with the catalog service registered.

    Must be called from a running event loop.

    Args:
        source: Catalog to serve.
        address: ``host:port`` to bind; port ``0`` picks a free port.

    Returns:
        The not-yet-started server and the port it is bound to.
    """
    servicer = MockCatalogServicer(source)
    handler = grpc.method_handlers_generic_handler(
        SERVICE_NAME,
        {
            "Search": grpc.unary_unary_rpc_method_handler(
                servicer.Search,
                request_deserializer=decode_message,
                response_serializer=encode_message,
            ),
            "GetFilterOptions": grpc.unary_unary_rpc_method_handler(
                servicer.GetFilterOptions,
                request_deserializer=decode_message,
                response_serializer=encode_message,
            ),
        },
    )
    server = grpc.aio.server()
    server.add_generic_rpc_handlers((handler,))
    port = server.add_insecure_port(address)
    return server, port


def load_sample_source() -> InMemoryCatalogSource:
    if config.CATALOG_JSON_PATH:
        return InMemoryCatalogSource.from_json_file(config.CATALOG_JSON_PATH)
    return InMemoryCatalogSource.from_records(SAMPLE_ANIME)


async def serve() -> None:
    source = load_sample_source()
    server, port = build_server(source, f"{config.MOCK_GRPC_HOST}:{config.MOCK_GRPC_PORT}")
    await server.start()
    logger.info("Mock CatalogService listening on %s:%d (%d titles)",
                config.MOCK_GRPC_HOST, port, len(source))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_stop, stop_event, sig)

    await run_until_stopped(server, stop_event)


def _request_stop(stop_event: asyncio.Event, sig: signal.Signals) -> None:
    logger.info("Received %s, shutting down.", sig.name)
    stop_event.set()


async def run_until_stopped(
    server: grpc.aio.Server, stop_event: asyncio.Event, grace: float = 5
) -> None:
    """Serve until *stop_event* is set, then stop with *grace* seconds."""
    await stop_event.wait()
    await server.stop(grace=grace)
    logger.info("Mock CatalogService stopped.")


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(serve())


if __name__ == "__main__":
    main()
