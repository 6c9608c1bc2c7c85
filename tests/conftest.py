"""Shared pytest fixtures for all discovery tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from discovery.models import (
    AnimeSummary,
    DeviceType,
    NetworkSpeed,
    Season,
    TimeOfDay,
    UserContext,
)
from discovery.presets import PresetCatalogue


# Wednesday 15 October 2025, 19:30 local time: an autumn weekday evening.
AUTUMN_EVENING = datetime(2025, 10, 15, 19, 30)


# ---------------------------------------------------------------------------
# Context fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def evening_fall_context() -> UserContext:
    """Desktop on a fast network, weekday evening in autumn."""
    return UserContext(
        time_of_day=TimeOfDay.EVENING,
        day_of_week="Wednesday",
        season=Season.FALL,
        is_weekend=False,
        device_type=DeviceType.DESKTOP,
        network_speed=NetworkSpeed.FAST,
    )


@pytest.fixture
def unknown_device_context() -> UserContext:
    """Weekend morning in spring with no device signals at all."""
    return UserContext(
        time_of_day=TimeOfDay.MORNING,
        day_of_week="Saturday",
        season=Season.SPRING,
        is_weekend=True,
    )


# ---------------------------------------------------------------------------
# Preset fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def builtin_presets() -> PresetCatalogue:
    return PresetCatalogue.builtin()


@pytest.fixture
def preset_record():
    """Factory for minimal valid preset records with field overrides."""

    def make(preset_id: str, **overrides) -> dict:
        record = {
            "id": preset_id,
            "name": preset_id.replace("_", " ").title(),
            "cues": [{"label": "Heartwarming", "intensity": 3, "weight": 0.5}],
            "tags": ["test"],
            "category": "atmospheric",
            "target_audience": "all",
            "estimated_results": 5,
            "complexity": 2,
        }
        record.update(overrides)
        return record

    return make


# ---------------------------------------------------------------------------
# Catalog fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anime_catalog() -> list[AnimeSummary]:
    """Eight titles spanning every facet, with a few missing fields."""
    return [
        AnimeSummary(
            "x1", "Blade of Dawn", ("Action", "Fantasy"), ("MAPPA",), ("War",),
            ("Epic Adventure",), 2016, 8.2, 4.1, 20, 10.0,
        ),
        AnimeSummary(
            "x2", "Quiet Harbor", ("Slice of Life",), ("P.A. Works",), ("Sea",),
            ("Chill Vibes", "Heartwarming"), 2012, 7.4, 4.4, 5, 20.0,
        ),
        AnimeSummary(
            "x3", "Neon Detective", ("Mystery", "Action"), ("Madhouse",), ("City",),
            ("Mind-Bending",), 2019, 8.8, None, 0, 30.0,
        ),
        AnimeSummary(
            "x4", "Autumn Letters", ("Drama", "Romance"), ("Kyoto Animation",), ("Seasons",),
            ("Nostalgic", "Heartwarming"), 2020, 8.9, 4.8, 140, 40.0,
        ),
        AnimeSummary(
            "x5", "Blade of Dusk", ("Action", "Fantasy"), ("MAPPA",), ("Revenge",),
            ("Dark & Gritty",), 2016, 8.2, 3.9, 20, 50.0,
        ),
        AnimeSummary(
            "x6", "Starlit Bakery", ("Comedy", "Slice of Life"), ("Doga Kobo",), ("Food",),
            ("Comedic", "Heartwarming"), None, None, None, None, 60.0,
        ),
        AnimeSummary(
            "x7", "Iron Tide", ("Action", "Sci-Fi"), ("Production I.G",), ("Mecha", "War"),
            ("Action Packed",), 2018, 7.9, 3.8, 58, 70.0,
        ),
        AnimeSummary(
            "x8", "Static Dreams", ("Sci-Fi", "Psychological"), ("Madhouse",), ("Identity",),
            ("Mind-Bending", "Thought-Provoking"), 2015, 8.3, 4.2, 71, 80.0,
        ),
    ]
