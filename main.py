"""Entry point: wires all components and runs one discovery pass."""

from __future__ import annotations

import asyncio
import logging
import sys

import config
from discovery.context import ContextDetector, StaticEnvironmentProbe
from discovery.engine import DiscoveryEngine
from discovery.models import FetchFailure
from discovery.presets import PresetCatalogue
from discovery.sources import CatalogSource, GrpcCatalogSource, InMemoryCatalogSource

logger = logging.getLogger(__name__)


def build_source() -> CatalogSource:
    """Return the configured catalog source.

    Priority: remote gRPC catalog, then a local JSON catalog, then the
    sample catalog bundled with the mock server.
    """
    if config.CATALOG_GRPC_ADDRESS:
        return GrpcCatalogSource.connect(
            config.CATALOG_GRPC_ADDRESS,
            timeout_seconds=config.CATALOG_RPC_TIMEOUT_SECONDS,
        )
    if config.CATALOG_JSON_PATH:
        return InMemoryCatalogSource.from_json_file(config.CATALOG_JSON_PATH)

    from mock_server import SAMPLE_ANIME

    return InMemoryCatalogSource.from_records(SAMPLE_ANIME)


def build_engine(source: CatalogSource) -> DiscoveryEngine:
    """Construct the engine with all dependencies wired from :mod:`config`.

    Args:
        source: The catalog source to search.

    Returns:
        A configured but not-yet-started :class:`DiscoveryEngine`.
    """
    presets = (
        PresetCatalogue.from_json_file(config.PRESETS_PATH)
        if config.PRESETS_PATH
        else PresetCatalogue.builtin()
    )
    detector = ContextDetector(
        probe=StaticEnvironmentProbe(
            width=config.VIEWPORT_WIDTH,
            effective_type=config.NETWORK_EFFECTIVE_TYPE,
            battery=config.BATTERY_LEVEL,
        ),
        refresh_interval_seconds=config.CONTEXT_REFRESH_INTERVAL_SECONDS,
        mobile_max_width=config.MOBILE_MAX_WIDTH,
        tablet_max_width=config.TABLET_MAX_WIDTH,
    )

    def report_failure(failure: FetchFailure) -> None:
        logger.error("Could not load results: %s", failure.error)

    return DiscoveryEngine(
        detector=detector,
        presets=presets,
        source=source,
        page_size=config.PAGE_SIZE,
        debounce_seconds=config.DEBOUNCE_SECONDS,
        on_error=report_failure,
    )


async def run(search_text: str = "") -> int:
    """Run one discovery pass and log what the user would see.

    Startup sequence:
    1. Build the catalog source (gRPC, JSON file or sample data).
    2. Sample the user context and pick a mood preset.
    3. Pre-fill filters from the preset, apply any search text.
    4. Load the first result page.

    Returns:
        Process exit code: 0 on success, 1 if the fetch failed.
    """
    source = build_source()
    engine = build_engine(source)
    try:
        await engine.start()
        logger.info("Context: %s", engine.context)

        preset = engine.suggested_preset
        if preset is not None:
            logger.info("Suggested mood: %s %s", preset.emoji, preset.display_name)
            engine.apply_preset(preset)
        else:
            logger.info("No mood preset fits the current context.")

        if search_text:
            engine.search_text.set_text(search_text)
            engine.search_text.flush()

        page = await engine.settle()
        if engine.last_error is not None:
            return 1

        logger.info(
            "%d results (%s), %d filters active, sort=%s",
            len(page.items),
            page.status.value,
            engine.active_filter_count,
            engine.search_text.sort_mode.value,
        )
        for anime in page.items:
            logger.info("  %s  %s (%s)", anime.anime_id, anime.title, anime.year or "?")
        return 0
    finally:
        await engine.close()
        if isinstance(source, GrpcCatalogSource):
            await source.close()


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run(" ".join(sys.argv[1:]))))


if __name__ == "__main__":
    main()
