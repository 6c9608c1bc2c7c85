"""Core domain dataclasses and enums shared across all discovery modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TimeOfDay(str, Enum):
    """Coarse part of the day derived from the local wall-clock hour."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


class DeviceType(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class NetworkSpeed(str, Enum):
    SLOW = "slow"
    FAST = "fast"


class BatteryLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PresetCategory(str, Enum):
    EMOTIONAL = "emotional"
    ATMOSPHERIC = "atmospheric"
    THEMATIC = "thematic"
    EXPERIENTIAL = "experiential"


class TargetAudience(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ALL = "all"


class SortMode(str, Enum):
    """Result orderings understood by every catalog source.

    ``RELEVANCE`` only makes sense while free text is present; the
    remaining twelve are the browse orderings of the discover page.
    """

    RELEVANCE = "relevance"
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    YEAR_DESC = "year_desc"
    YEAR_ASC = "year_asc"
    RATING_DESC = "rating_desc"
    RATING_ASC = "rating_asc"
    USER_RATING_DESC = "user_rating_desc"
    USER_RATING_ASC = "user_rating_asc"
    MOST_REVIEWED = "most_reviewed"
    LEAST_REVIEWED = "least_reviewed"


class PageStatus(str, Enum):
    """States of the paginated result state machine."""

    LOADING_FIRST_PAGE = "LoadingFirstPage"
    LOADING_MORE = "LoadingMore"
    CAN_LOAD_MORE = "CanLoadMore"
    EXHAUSTED = "Exhausted"


class SetFacet(str, Enum):
    """Multi-select facets; the value is the :class:`FilterState` attribute."""

    GENRES = "genres"
    STUDIOS = "studios"
    THEMES = "themes"
    EMOTIONAL_TAGS = "emotional_tags"


class RangeFacet(str, Enum):
    """Numeric range facets; the value is the :class:`FilterState` attribute."""

    YEAR = "year_range"
    RATING = "rating_range"
    USER_RATING = "user_rating_range"


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserContext:
    """Snapshot of the user's situational state.

    Replaced wholesale on every refresh. Signals that could not be read are
    ``None`` and must be treated as *unknown*, never as a specific level.

    Attributes:
        time_of_day: Part of the day from the local hour.
        day_of_week: English weekday name (``"Monday"`` ... ``"Sunday"``).
        season: Season from the local month.
        is_weekend: ``True`` on Saturday and Sunday.
        device_type: From the viewport width; ``None`` if unavailable.
        network_speed: From the connection type hint; ``None`` if unavailable.
        battery_level: From the battery charge; ``None`` if unavailable.
    """

    time_of_day: TimeOfDay
    day_of_week: str
    season: Season
    is_weekend: bool
    device_type: DeviceType | None = None
    network_speed: NetworkSpeed | None = None
    battery_level: BatteryLevel | None = None


# ---------------------------------------------------------------------------
# Mood presets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoodCue:
    """A single weighted descriptor inside a mood preset.

    Attributes:
        label: Human-readable cue, also used as an emotional tag.
        intensity: How strongly the cue applies, 1-5.
        weight: How important the cue is to the preset, 0-1.
    """

    label: str
    intensity: int
    weight: float


@dataclass(frozen=True)
class MoodPreset:
    """A named viewing mood used to pre-seed recommendations.

    Instances are only built by :mod:`discovery.presets`, which enforces
    that every preset has at least one cue and that all enum fields are
    known values.
    """

    preset_id: str
    display_name: str
    cues: tuple[MoodCue, ...]
    tags: frozenset[str]
    category: PresetCategory
    target_audience: TargetAudience
    estimated_result_count: int
    complexity: int
    seasonal_relevance: Season | None = None
    time_relevance: TimeOfDay | None = None
    emoji: str = ""
    description: str = ""


# ---------------------------------------------------------------------------
# Filters and queries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Range:
    """Inclusive numeric range; ``None`` on either side means unbounded."""

    min: float | None = None
    max: float | None = None

    @property
    def bound_count(self) -> int:
        """Number of defined bounds (0, 1 or 2)."""
        return (self.min is not None) + (self.max is not None)

    @property
    def is_inverted(self) -> bool:
        return self.min is not None and self.max is not None and self.min > self.max

    def contains(self, value: float | None) -> bool:
        """Return ``True`` if *value* satisfies every defined bound.

        A missing value fails any defined bound and passes an unbounded range.
        """
        if self.bound_count == 0:
            return True
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def to_dict(self) -> dict[str, float]:
        out: dict[str, float] = {}
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Range:
        data = data or {}
        return cls(min=data.get("min"), max=data.get("max"))


@dataclass(frozen=True)
class FilterState:
    """All facet selections of a discovery query.

    Immutable: :class:`~discovery.filters.FilterComposer` replaces the whole
    value on each operation, so two states compare equal exactly when they
    select the same things.
    """

    genres: frozenset[str] = frozenset()
    studios: frozenset[str] = frozenset()
    themes: frozenset[str] = frozenset()
    emotional_tags: frozenset[str] = frozenset()
    year_range: Range = field(default_factory=Range)
    rating_range: Range = field(default_factory=Range)
    user_rating_range: Range = field(default_factory=Range)
    min_reviews: int | None = None

    @property
    def active_count(self) -> int:
        """Number of active constraints, as shown on the filter badge.

        Each selected set member counts once, each defined range bound
        counts once, and a defined ``min_reviews`` counts once.
        """
        count = sum(len(getattr(self, facet.value)) for facet in SetFacet)
        count += sum(getattr(self, facet.value).bound_count for facet in RangeFacet)
        if self.min_reviews is not None:
            count += 1
        return count

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dict with sorted set members."""
        return {
            "genres": sorted(self.genres),
            "studios": sorted(self.studios),
            "themes": sorted(self.themes),
            "emotional_tags": sorted(self.emotional_tags),
            "year_range": self.year_range.to_dict(),
            "rating_range": self.rating_range.to_dict(),
            "user_rating_range": self.user_rating_range.to_dict(),
            "min_reviews": self.min_reviews,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FilterState:
        data = data or {}
        return cls(
            genres=frozenset(data.get("genres", ())),
            studios=frozenset(data.get("studios", ())),
            themes=frozenset(data.get("themes", ())),
            emotional_tags=frozenset(data.get("emotional_tags", ())),
            year_range=Range.from_dict(data.get("year_range")),
            rating_range=Range.from_dict(data.get("rating_range")),
            user_rating_range=Range.from_dict(data.get("user_rating_range")),
            min_reviews=data.get("min_reviews"),
        )


@dataclass(frozen=True)
class SearchQuery:
    """Canonical, comparable snapshot of everything a fetch depends on.

    Never mutated; recomputed whenever an input changes. Equality is
    structural and is what the fetcher uses to skip no-op fetches.
    """

    free_text: str = ""
    filters: FilterState = field(default_factory=FilterState)
    sort_mode: SortMode = SortMode.NEWEST

    def to_dict(self) -> dict[str, Any]:
        return {
            "free_text": self.free_text,
            "filters": self.filters.to_dict(),
            "sort_mode": self.sort_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchQuery:
        return cls(
            free_text=data.get("free_text", ""),
            filters=FilterState.from_dict(data.get("filters")),
            sort_mode=SortMode(data.get("sort_mode", SortMode.NEWEST.value)),
        )


# ---------------------------------------------------------------------------
# Catalog items and pages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnimeSummary:
    """The subset of an anime record needed to filter, sort and list it.

    Attributes:
        anime_id: Unique, stable identifier; the secondary sort key.
        title: Display title.
        genres: Genre labels.
        studios: Producing studios.
        themes: Thematic labels.
        emotional_tags: Mood labels (shared vocabulary with preset cues).
        year: Release year, if known.
        rating: External rating, if known.
        average_user_rating: Mean rating from this app's users, if any.
        review_count: Number of reviews from this app's users, if known.
        created_at: When the record was added (epoch seconds); drives the
            ``newest`` / ``oldest`` orderings.
    """

    anime_id: str
    title: str
    genres: tuple[str, ...] = ()
    studios: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    emotional_tags: tuple[str, ...] = ()
    year: int | None = None
    rating: float | None = None
    average_user_rating: float | None = None
    review_count: int | None = None
    created_at: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "anime_id": self.anime_id,
            "title": self.title,
            "genres": list(self.genres),
            "studios": list(self.studios),
            "themes": list(self.themes),
            "emotional_tags": list(self.emotional_tags),
            "year": self.year,
            "rating": self.rating,
            "average_user_rating": self.average_user_rating,
            "review_count": self.review_count,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnimeSummary:
        """Build from a plain record.

        Raises:
            ValueError: If ``anime_id`` or ``title`` is missing or empty.
        """
        anime_id = data.get("anime_id")
        title = data.get("title")
        if not anime_id or not title:
            raise ValueError(f"Anime record needs anime_id and title, got {data!r}")
        return cls(
            anime_id=str(anime_id),
            title=str(title),
            genres=tuple(data.get("genres") or ()),
            studios=tuple(data.get("studios") or ()),
            themes=tuple(data.get("themes") or ()),
            emotional_tags=tuple(data.get("emotional_tags") or ()),
            year=data.get("year"),
            rating=data.get("rating"),
            average_user_rating=data.get("average_user_rating"),
            review_count=data.get("review_count"),
            created_at=float(data.get("created_at") or 0.0),
        )


@dataclass(frozen=True)
class CatalogPage:
    """One raw response from a catalog source.

    Attributes:
        items: Items of this page, in the source's order.
        continue_cursor: Opaque token for the next page; ``None`` at the end.
        is_done: ``True`` when the source has no further items.
    """

    items: tuple[AnimeSummary, ...]
    continue_cursor: str | None
    is_done: bool


@dataclass(frozen=True)
class ResultPage:
    """What the view shows: all items loaded so far plus pagination state.

    ``LoadingFirstPage`` with no items is also the state after the very
    first load fails; the fetcher's ``last_error`` distinguishes the two.
    """

    items: tuple[AnimeSummary, ...] = ()
    cursor: str | None = None
    status: PageStatus = PageStatus.LOADING_FIRST_PAGE


@dataclass(frozen=True)
class FetchFailure:
    """A fetch error surfaced to the view.

    Attributes:
        query: The query whose fetch failed.
        generation: Generation id the request was issued under.
        error: The exception raised by the catalog source.
        phase: :attr:`PageStatus.LOADING_FIRST_PAGE` or
            :attr:`PageStatus.LOADING_MORE`.
    """

    query: SearchQuery
    generation: int
    error: Exception
    phase: PageStatus


@dataclass(frozen=True)
class FilterOptions:
    """Values the view can offer in the facet panel.

    Range attributes are ``None`` when no catalog item carries that field.
    """

    genres: tuple[str, ...] = ()
    studios: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    emotional_tags: tuple[str, ...] = ()
    year_range: Range | None = None
    rating_range: Range | None = None
    user_rating_range: Range | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "genres": list(self.genres),
            "studios": list(self.studios),
            "themes": list(self.themes),
            "emotional_tags": list(self.emotional_tags),
            "year_range": self.year_range.to_dict() if self.year_range else None,
            "rating_range": self.rating_range.to_dict() if self.rating_range else None,
            "user_rating_range": (
                self.user_rating_range.to_dict() if self.user_rating_range else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterOptions:
        def _range(key: str) -> Range | None:
            value = data.get(key)
            return Range.from_dict(value) if value is not None else None

        return cls(
            genres=tuple(data.get("genres", ())),
            studios=tuple(data.get("studios", ())),
            themes=tuple(data.get("themes", ())),
            emotional_tags=tuple(data.get("emotional_tags", ())),
            year_range=_range("year_range"),
            rating_range=_range("rating_range"),
            user_rating_range=_range("user_rating_range"),
        )
