"""Tests for discovery.presets.PresetCatalogue and record parsing."""

from __future__ import annotations

import json

import pytest

from discovery.models import PresetCategory, Season, TargetAudience, TimeOfDay
from discovery.presets import PresetCatalogue, parse_preset


class TestBuiltin:
    def test_loads_six_presets(self, builtin_presets: PresetCatalogue) -> None:
        assert len(builtin_presets) == 6

    def test_catalogue_order_is_preserved(self, builtin_presets: PresetCatalogue) -> None:
        ids = [p.preset_id for p in builtin_presets]
        assert ids[:2] == ["cozy_autumn_evening", "summer_adventure_marathon"]

    def test_every_preset_has_cues_with_valid_weights(
        self, builtin_presets: PresetCatalogue
    ) -> None:
        for preset in builtin_presets:
            assert preset.cues
            assert all(0.0 <= c.weight <= 1.0 for c in preset.cues)

    def test_cozy_autumn_evening_fields(self, builtin_presets: PresetCatalogue) -> None:
        preset = builtin_presets.get("cozy_autumn_evening")
        assert preset is not None
        assert preset.display_name == "Cozy Autumn Evening"
        assert preset.category == PresetCategory.ATMOSPHERIC
        assert preset.target_audience == TargetAudience.ALL
        assert preset.seasonal_relevance == Season.FALL
        assert preset.time_relevance == TimeOfDay.EVENING
        assert preset.estimated_result_count == 8
        assert "cozy" in preset.tags

    def test_get_unknown_returns_none(self, builtin_presets: PresetCatalogue) -> None:
        assert builtin_presets.get("nope") is None


class TestParsePreset:
    def test_optional_relevance_absent(self, preset_record) -> None:
        preset = parse_preset(preset_record("plain"))
        assert preset.seasonal_relevance is None
        assert preset.time_relevance is None

    def test_unknown_category_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError, match="category"):
            parse_preset(preset_record("bad", category="nostalgic"))

    def test_unknown_time_relevance_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError, match="time_relevance"):
            parse_preset(preset_record("bad", time_relevance="dusk"))

    def test_unknown_audience_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError):
            parse_preset(preset_record("bad", target_audience="experts"))

    def test_empty_cues_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError, match="at least one cue"):
            parse_preset(preset_record("bad", cues=[]))

    def test_cue_weight_out_of_range_rejected(self, preset_record) -> None:
        cues = [{"label": "Heavy", "intensity": 3, "weight": 1.5}]
        with pytest.raises(ValueError, match="weight"):
            parse_preset(preset_record("bad", cues=cues))

    def test_cue_intensity_out_of_range_rejected(self, preset_record) -> None:
        cues = [{"label": "Loud", "intensity": 6, "weight": 0.5}]
        with pytest.raises(ValueError, match="intensity"):
            parse_preset(preset_record("bad", cues=cues))

    def test_complexity_out_of_range_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError, match="complexity"):
            parse_preset(preset_record("bad", complexity=0))

    def test_missing_field_rejected(self, preset_record) -> None:
        record = preset_record("bad")
        del record["category"]
        with pytest.raises(ValueError, match="category"):
            parse_preset(record)


class TestCatalogue:
    def test_duplicate_ids_rejected(self, preset_record) -> None:
        with pytest.raises(ValueError, match="unique"):
            PresetCatalogue.from_records([preset_record("dup"), preset_record("dup")])

    def test_from_json_list(self, tmp_path, preset_record) -> None:
        path = tmp_path / "presets.json"
        path.write_text(json.dumps([preset_record("a"), preset_record("b")]))
        catalogue = PresetCatalogue.from_json_file(path)
        assert [p.preset_id for p in catalogue] == ["a", "b"]

    def test_from_json_versioned_object(self, tmp_path, preset_record) -> None:
        path = tmp_path / "presets.json"
        path.write_text(json.dumps({"version": "7", "presets": [preset_record("a")]}))
        catalogue = PresetCatalogue.from_json_file(path)
        assert catalogue.version == "7"
        assert len(catalogue) == 1

    def test_bad_file_rejected_as_a_whole(self, tmp_path, preset_record) -> None:
        path = tmp_path / "presets.json"
        path.write_text(json.dumps([preset_record("a"), preset_record("b", season="x", category="?")]))
        with pytest.raises(ValueError):
            PresetCatalogue.from_json_file(path)
