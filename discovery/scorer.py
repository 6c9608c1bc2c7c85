"""Mood preset scorer: hard eligibility filter followed by a weighted score."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

import numpy as np

from discovery.models import (
    DeviceType,
    MoodPreset,
    NetworkSpeed,
    PresetCategory,
    UserContext,
)

logger = logging.getLogger(__name__)

TIME_MATCH_WEIGHT = 3
SEASON_MATCH_WEIGHT = 2
WEEKEND_EMOTIONAL_WEIGHT = 1
WEEKDAY_EXPERIENTIAL_WEIGHT = 1

# Presets at or above this complexity are not offered on mobile.
MOBILE_COMPLEXITY_CEILING = 4
# Presets expecting more results than this are not offered on slow networks.
SLOW_NETWORK_RESULT_CEILING = 10


@dataclass(frozen=True)
class ScoredPreset:
    preset: MoodPreset
    score: int


# ---------------------------------------------------------------------------
# Hard filter rules: each returns True when the preset must be dropped.
# ---------------------------------------------------------------------------


def _wrong_time(context: UserContext, preset: MoodPreset) -> bool:
    return preset.time_relevance is not None and preset.time_relevance != context.time_of_day


def _wrong_season(context: UserContext, preset: MoodPreset) -> bool:
    return (
        preset.seasonal_relevance is not None
        and preset.seasonal_relevance != context.season
    )


def _too_complex_for_device(context: UserContext, preset: MoodPreset) -> bool:
    return (
        context.device_type == DeviceType.MOBILE
        and preset.complexity >= MOBILE_COMPLEXITY_CEILING
    )


def _too_heavy_for_network(context: UserContext, preset: MoodPreset) -> bool:
    return (
        context.network_speed == NetworkSpeed.SLOW
        and preset.estimated_result_count > SLOW_NETWORK_RESULT_CEILING
    )


_HARD_FILTERS: tuple[Callable[[UserContext, MoodPreset], bool], ...] = (
    _wrong_time,
    _wrong_season,
    _too_complex_for_device,
    _too_heavy_for_network,
)


class MoodPresetScorer:
    """Selects the mood preset that best fits a :class:`UserContext`.

    Scoring runs in two phases:

    1. **Hard filter** removes presets that cannot apply: a set time or
       season relevance that differs from the context, complex presets
       (complexity >= 4) on mobile, and large presets (more than 10
       expected results) on slow networks.
    2. **Soft score** ranks the survivors:

       ===================================================  ======
       Condition                                            Points
       ===================================================  ======
       ``time_relevance == context.time_of_day``            3
       ``seasonal_relevance == context.season``             2
       weekend and category ``emotional``                   1
       weekday and category ``experiential``                1
       ===================================================  ======

    Ties go to the preset that comes first in catalogue order. The scorer
    holds no state beyond its weights; every method is a pure function of
    its arguments. Context fields that are ``None`` never match.

    Args:
        time_weight: Points for a time-of-day match.
        season_weight: Points for a season match.
        weekend_weight: Points for an emotional preset on a weekend.
        weekday_weight: Points for an experiential preset on a weekday.
    """

    def __init__(
        self,
        time_weight: int = TIME_MATCH_WEIGHT,
        season_weight: int = SEASON_MATCH_WEIGHT,
        weekend_weight: int = WEEKEND_EMOTIONAL_WEIGHT,
        weekday_weight: int = WEEKDAY_EXPERIENTIAL_WEIGHT,
    ) -> None:
        self._time_weight = time_weight
        self._season_weight = season_weight
        self._weekend_weight = weekend_weight
        self._weekday_weight = weekday_weight

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def eligible(
        self, context: UserContext, catalogue: Iterable[MoodPreset]
    ) -> list[MoodPreset]:
        """Return the presets that survive the hard filter, in catalogue order."""
        return [
            preset for preset in catalogue
            if not any(rule(context, preset) for rule in _HARD_FILTERS)
        ]

    def score(self, context: UserContext, preset: MoodPreset) -> int:
        """Return the soft score of a single preset (hard filter not applied)."""
        points = 0
        if preset.time_relevance is not None and preset.time_relevance == context.time_of_day:
            points += self._time_weight
        if preset.seasonal_relevance is not None and preset.seasonal_relevance == context.season:
            points += self._season_weight
        if context.is_weekend and preset.category == PresetCategory.EMOTIONAL:
            points += self._weekend_weight
        if not context.is_weekend and preset.category == PresetCategory.EXPERIENTIAL:
            points += self._weekday_weight
        return points

    def rank(
        self, context: UserContext, catalogue: Iterable[MoodPreset]
    ) -> list[ScoredPreset]:
        """Return eligible presets ordered by descending score.

        The sort is stable, so equal scores keep catalogue order.
        """
        survivors = self.eligible(context, catalogue)
        if not survivors:
            return []
        scores = np.array([self.score(context, p) for p in survivors], dtype=np.int64)
        order = np.argsort(-scores, kind="stable")
        return [ScoredPreset(survivors[i], int(scores[i])) for i in order]

    def select(
        self, context: UserContext, catalogue: Iterable[MoodPreset]
    ) -> MoodPreset | None:
        """Return the best preset for *context*, or ``None`` if none is eligible.

        ``None`` is a normal outcome meaning "no suggestion right now".
        """
        ranked = self.rank(context, catalogue)
        if not ranked:
            logger.debug("No mood preset eligible for context %s.", context)
            return None
        best = ranked[0]
        logger.debug(
            "Selected preset %r (score=%d) out of %d eligible.",
            best.preset.preset_id,
            best.score,
            len(ranked),
        )
        return best.preset
