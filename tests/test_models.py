"""Tests for discovery.models dataclasses."""

from dataclasses import FrozenInstanceError

import pytest

from discovery.models import (
    AnimeSummary,
    FilterOptions,
    FilterState,
    Range,
    SearchQuery,
    SortMode,
    TimeOfDay,
    UserContext,
    Season,
)


class TestRange:
    def test_unbounded_contains_anything(self) -> None:
        assert Range().contains(None)
        assert Range().contains(1999)

    def test_bounds_are_inclusive(self) -> None:
        r = Range(min=2015, max=2020)
        assert r.contains(2015)
        assert r.contains(2020)
        assert not r.contains(2014)
        assert not r.contains(2021)

    def test_missing_value_fails_defined_bound(self) -> None:
        assert not Range(min=7.0).contains(None)

    def test_bound_count(self) -> None:
        assert Range().bound_count == 0
        assert Range(min=1).bound_count == 1
        assert Range(min=1, max=2).bound_count == 2

    def test_inverted(self) -> None:
        assert Range(min=5, max=1).is_inverted
        assert not Range(min=1, max=5).is_inverted
        assert not Range(min=5).is_inverted


class TestFilterState:
    def test_empty_has_no_active_filters(self) -> None:
        assert FilterState().active_count == 0

    def test_active_count_scenario(self) -> None:
        state = FilterState(genres=frozenset({"Action"}), year_range=Range(min=2015))
        assert state.active_count == 2

    def test_active_count_sums_every_facet(self) -> None:
        state = FilterState(
            genres=frozenset({"Action", "Drama"}),
            studios=frozenset({"MAPPA"}),
            themes=frozenset({"War"}),
            emotional_tags=frozenset({"Nostalgic", "Heartwarming"}),
            year_range=Range(min=2000, max=2020),
            rating_range=Range(max=9.0),
            user_rating_range=Range(),
            min_reviews=0,
        )
        # 2 + 1 + 1 + 2 set members, 3 bounds, 1 min_reviews
        assert state.active_count == 10

    def test_structural_equality(self) -> None:
        a = FilterState(genres=frozenset({"Action", "Drama"}))
        b = FilterState(genres=frozenset({"Drama", "Action"}))
        assert a == b
        assert hash(a) == hash(b)

    def test_is_frozen(self) -> None:
        with pytest.raises(FrozenInstanceError):
            FilterState().min_reviews = 3

    def test_dict_round_trip(self) -> None:
        state = FilterState(
            genres=frozenset({"Action"}),
            rating_range=Range(min=7.5),
            min_reviews=10,
        )
        assert FilterState.from_dict(state.to_dict()) == state


class TestSearchQuery:
    def test_defaults(self) -> None:
        query = SearchQuery()
        assert query.free_text == ""
        assert query.sort_mode == SortMode.NEWEST
        assert query.filters == FilterState()

    def test_equal_queries_compare_equal(self) -> None:
        a = SearchQuery("naruto", FilterState(genres=frozenset({"Action"})), SortMode.RELEVANCE)
        b = SearchQuery("naruto", FilterState(genres=frozenset({"Action"})), SortMode.RELEVANCE)
        assert a == b

    def test_sort_change_breaks_equality(self) -> None:
        assert SearchQuery(sort_mode=SortMode.NEWEST) != SearchQuery(sort_mode=SortMode.OLDEST)

    def test_dict_round_trip(self) -> None:
        query = SearchQuery("mecha", FilterState(themes=frozenset({"War"})), SortMode.TITLE_ASC)
        assert SearchQuery.from_dict(query.to_dict()) == query

    def test_unknown_sort_mode_rejected(self) -> None:
        with pytest.raises(ValueError):
            SearchQuery.from_dict({"sort_mode": "popularity"})


class TestAnimeSummary:
    def test_from_dict_requires_id_and_title(self) -> None:
        with pytest.raises(ValueError):
            AnimeSummary.from_dict({"title": "No Id"})
        with pytest.raises(ValueError):
            AnimeSummary.from_dict({"anime_id": "a1"})

    def test_from_dict_fills_defaults(self) -> None:
        anime = AnimeSummary.from_dict({"anime_id": "a1", "title": "Solo"})
        assert anime.genres == ()
        assert anime.year is None
        assert anime.created_at == 0.0

    def test_dict_round_trip(self) -> None:
        anime = AnimeSummary("a1", "Solo", ("Action",), year=2020, review_count=3)
        assert AnimeSummary.from_dict(anime.to_dict()) == anime


class TestUserContext:
    def test_optional_signals_default_to_none(self) -> None:
        ctx = UserContext(TimeOfDay.NIGHT, "Sunday", Season.WINTER, True)
        assert ctx.device_type is None
        assert ctx.network_speed is None
        assert ctx.battery_level is None

    def test_is_frozen(self) -> None:
        ctx = UserContext(TimeOfDay.NIGHT, "Sunday", Season.WINTER, True)
        with pytest.raises(FrozenInstanceError):
            ctx.is_weekend = False


class TestFilterOptions:
    def test_missing_ranges_survive_round_trip(self) -> None:
        options = FilterOptions(genres=("Action",), year_range=Range(min=2000, max=2024))
        restored = FilterOptions.from_dict(options.to_dict())
        assert restored == options
        assert restored.rating_range is None
