"""Mood preset catalogue: validated, read-only set of viewing moods."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator

from discovery.models import (
    MoodCue,
    MoodPreset,
    PresetCategory,
    Season,
    TargetAudience,
    TimeOfDay,
)

logger = logging.getLogger(__name__)

CATALOGUE_VERSION = "2024.1"

# Built-in presets. Field names follow the on-disk preset file format.
BUILTIN_PRESET_RECORDS: list[dict[str, Any]] = [
    {
        "id": "cozy_autumn_evening",
        "name": "Cozy Autumn Evening",
        "emoji": "\U0001F342",
        "description": "Perfect for crisp fall nights with warm drinks and soft lighting",
        "cues": [
            {"label": "Nostalgic", "intensity": 4, "weight": 0.9},
            {"label": "Heartwarming", "intensity": 3, "weight": 0.8},
            {"label": "Slow Burn", "intensity": 4, "weight": 0.7},
            {"label": "Chill Vibes", "intensity": 3, "weight": 0.6},
        ],
        "tags": ["cozy", "seasonal", "relaxing", "introspective"],
        "category": "atmospheric",
        "target_audience": "all",
        "seasonal_relevance": "fall",
        "time_relevance": "evening",
        "estimated_results": 8,
        "complexity": 2,
    },
    {
        "id": "summer_adventure_marathon",
        "name": "Summer Adventure Marathon",
        "emoji": "\U0001F305",
        "description": "High-energy adventures perfect for long summer days",
        "cues": [
            {"label": "Epic Adventure", "intensity": 5, "weight": 1.0},
            {"label": "Strong Friendships", "intensity": 4, "weight": 0.8},
            {"label": "Action Packed", "intensity": 4, "weight": 0.7},
            {"label": "Inspiring", "intensity": 3, "weight": 0.6},
        ],
        "tags": ["energetic", "friendship", "adventure", "marathon"],
        "category": "experiential",
        "target_audience": "all",
        "seasonal_relevance": "summer",
        "time_relevance": "afternoon",
        "estimated_results": 12,
        "complexity": 3,
    },
    {
        "id": "midnight_psychological_thriller",
        "name": "Midnight Psychological Thriller",
        "emoji": "\U0001F319",
        "description": "Dark, complex narratives for late-night viewing",
        "cues": [
            {"label": "Dark & Gritty", "intensity": 4, "weight": 0.9},
            {"label": "Mind-Bending", "intensity": 5, "weight": 0.8},
            {"label": "Complex Characters", "intensity": 4, "weight": 0.8},
            {"label": "Edge of Seat", "intensity": 3, "weight": 0.6},
        ],
        "tags": ["psychological", "mature", "complex", "thriller"],
        "category": "thematic",
        "target_audience": "advanced",
        "time_relevance": "night",
        "estimated_results": 6,
        "complexity": 5,
    },
    {
        "id": "rainy_day_comfort",
        "name": "Rainy Day Comfort",
        "emoji": "☔",
        "description": "Gentle, comforting anime for staying indoors",
        "cues": [
            {"label": "Heartwarming", "intensity": 4, "weight": 0.9},
            {"label": "Chill Vibes", "intensity": 5, "weight": 0.8},
            {"label": "Melancholic", "intensity": 2, "weight": 0.5},
            {"label": "Stunning Visuals", "intensity": 3, "weight": 0.7},
        ],
        "tags": ["comfort", "indoor", "gentle", "peaceful"],
        "category": "emotional",
        "target_audience": "all",
        "estimated_results": 10,
        "complexity": 2,
    },
    {
        "id": "artistic_masterpiece_dive",
        "name": "Artistic Masterpiece Dive",
        "emoji": "\U0001F3A8",
        "description": "Visually stunning anime that push artistic boundaries",
        "cues": [
            {"label": "Stunning Visuals", "intensity": 5, "weight": 1.0},
            {"label": "Unique Art Style", "intensity": 5, "weight": 0.9},
            {"label": "Thought-Provoking", "intensity": 4, "weight": 0.7},
            {"label": "Fantasy & Magical", "intensity": 3, "weight": 0.6},
        ],
        "tags": ["artistic", "visual", "masterpiece", "boundary-pushing"],
        "category": "experiential",
        "target_audience": "intermediate",
        "estimated_results": 5,
        "complexity": 4,
    },
    {
        "id": "wholesome_family_time",
        "name": "Wholesome Family Time",
        "emoji": "\U0001F46A",
        "description": "Family-friendly anime with positive messages",
        "cues": [
            {"label": "Heartwarming", "intensity": 5, "weight": 0.9},
            {"label": "Inspiring", "intensity": 4, "weight": 0.8},
            {"label": "Strong Friendships", "intensity": 4, "weight": 0.7},
            {"label": "Comedic", "intensity": 3, "weight": 0.6},
        ],
        "tags": ["family", "wholesome", "positive", "uplifting"],
        "category": "emotional",
        "target_audience": "beginner",
        "estimated_results": 15,
        "complexity": 1,
    },
]


class PresetCatalogue:
    """Immutable, ordered collection of :class:`~discovery.models.MoodPreset`.

    Catalogue order is significant: the scorer breaks ties in favour of the
    preset that appears first.

    Args:
        presets: Presets in catalogue order. Preset ids must be unique.
        version: Free-form version label of the preset set.

    Raises:
        ValueError: If two presets share an id.
    """

    def __init__(self, presets: Iterable[MoodPreset], version: str = CATALOGUE_VERSION) -> None:
        self._presets = tuple(presets)
        self._by_id = {p.preset_id: p for p in self._presets}
        if len(self._by_id) != len(self._presets):
            raise ValueError("Preset ids must be unique")
        self.version = version

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def builtin(cls) -> PresetCatalogue:
        """Return the catalogue of presets that ship with the package."""
        return cls.from_records(BUILTIN_PRESET_RECORDS)

    @classmethod
    def from_records(
        cls, records: Iterable[dict[str, Any]], version: str = CATALOGUE_VERSION
    ) -> PresetCatalogue:
        """Validate plain preset records and build a catalogue.

        Args:
            records: Dicts in the preset file format.
            version: Version label for the resulting catalogue.

        Raises:
            ValueError: If any record is malformed (see :func:`parse_preset`).
        """
        return cls((parse_preset(r) for r in records), version=version)

    @classmethod
    def from_json_file(cls, path: str | Path) -> PresetCatalogue:
        """Load a preset file.

        The file holds either a list of preset records or an object
        ``{"version": ..., "presets": [...]}``.
        """
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if isinstance(data, dict):
            catalogue = cls.from_records(
                data.get("presets", []), version=str(data.get("version", CATALOGUE_VERSION))
            )
        else:
            catalogue = cls.from_records(data)
        logger.info(
            "Loaded %d mood presets (version %s) from %s.",
            len(catalogue),
            catalogue.version,
            path,
        )
        return catalogue

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def presets(self) -> tuple[MoodPreset, ...]:
        return self._presets

    def get(self, preset_id: str) -> MoodPreset | None:
        return self._by_id.get(preset_id)

    def __len__(self) -> int:
        return len(self._presets)

    def __iter__(self) -> Iterator[MoodPreset]:
        return iter(self._presets)


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------


def parse_preset(record: dict[str, Any]) -> MoodPreset:
    """Convert one plain record into a :class:`~discovery.models.MoodPreset`.

    Args:
        record: Preset dict (``id``, ``name``, ``cues``, ``tags``,
            ``category``, ``target_audience``, ``estimated_results``,
            ``complexity`` and optional ``seasonal_relevance``,
            ``time_relevance``, ``emoji``, ``description``).

    Returns:
        The validated preset.

    Raises:
        ValueError: On a missing field, an unknown enum value, an empty cue
            list, a cue weight outside [0, 1], a cue intensity or complexity
            outside [1, 5], or a negative result estimate.
    """
    try:
        preset_id = str(record["id"])
        display_name = str(record["name"])
        raw_cues = record["cues"]
        category = _parse_enum(PresetCategory, record["category"], "category")
        audience = _parse_enum(TargetAudience, record["target_audience"], "target_audience")
        estimated = int(record["estimated_results"])
        complexity = int(record["complexity"])
    except KeyError as exc:
        raise ValueError(f"Preset record is missing field {exc.args[0]!r}: {record!r}") from None

    if not raw_cues:
        raise ValueError(f"Preset {preset_id!r} must have at least one cue")
    cues = tuple(_parse_cue(preset_id, c) for c in raw_cues)

    if not 1 <= complexity <= 5:
        raise ValueError(f"Preset {preset_id!r} complexity must be 1-5, got {complexity!r}")
    if estimated < 0:
        raise ValueError(
            f"Preset {preset_id!r} estimated_results must be >= 0, got {estimated!r}"
        )

    season = record.get("seasonal_relevance")
    time_of_day = record.get("time_relevance")

    return MoodPreset(
        preset_id=preset_id,
        display_name=display_name,
        cues=cues,
        tags=frozenset(record.get("tags", ())),
        category=category,
        target_audience=audience,
        estimated_result_count=estimated,
        complexity=complexity,
        seasonal_relevance=(
            _parse_enum(Season, season, "seasonal_relevance") if season is not None else None
        ),
        time_relevance=(
            _parse_enum(TimeOfDay, time_of_day, "time_relevance")
            if time_of_day is not None
            else None
        ),
        emoji=str(record.get("emoji", "")),
        description=str(record.get("description", "")),
    )


def _parse_cue(preset_id: str, raw: dict[str, Any]) -> MoodCue:
    try:
        cue = MoodCue(
            label=str(raw["label"]),
            intensity=int(raw["intensity"]),
            weight=float(raw["weight"]),
        )
    except KeyError as exc:
        raise ValueError(
            f"Cue in preset {preset_id!r} is missing field {exc.args[0]!r}"
        ) from None
    if not 1 <= cue.intensity <= 5:
        raise ValueError(
            f"Cue {cue.label!r} in preset {preset_id!r} intensity must be 1-5, "
            f"got {cue.intensity!r}"
        )
    if not 0.0 <= cue.weight <= 1.0:
        raise ValueError(
            f"Cue {cue.label!r} in preset {preset_id!r} weight must be 0-1, got {cue.weight!r}"
        )
    return cue


def _parse_enum(enum_cls: type, value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(
            f"Unknown {field_name} {value!r}; expected one of: {allowed}"
        ) from None
