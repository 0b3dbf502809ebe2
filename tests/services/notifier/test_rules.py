"""
Tests for audio rule merging and the rule engine.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from garden_notifier.services.notifier import (
    RULES_KEY,
    AudioRule,
    JsonFileStore,
    RuleEngine,
    build_trigger_overrides,
    merge_rule,
    resolve_playback_mode,
)


class TestMergeRule:
    """Tests for merge-with-deletion patch semantics."""

    def test_set_sound(self):
        assert merge_rule(None, {"sound": "Bell"}) == AudioRule(sound="Bell")

    def test_null_removes_field(self):
        """A field present with an invalid value is removed, not left alone."""
        previous = AudioRule(sound="Bell", playback_mode="loop")
        assert merge_rule(previous, {"sound": None}) == AudioRule(playback_mode="loop")

    def test_absent_field_untouched(self):
        previous = AudioRule(sound="Bell")
        assert merge_rule(previous, {"playbackMode": "loop"}) == AudioRule(
            sound="Bell", playback_mode="loop"
        )

    def test_empty_result_is_none(self):
        assert merge_rule(AudioRule(sound="Bell"), {"sound": "   "}) is None

    def test_sound_trimmed(self):
        assert merge_rule(None, {"sound": "  Chime "}).sound == "Chime"

    def test_invalid_playback_mode_removed(self):
        previous = AudioRule(sound="Bell", playback_mode="loop")
        assert merge_rule(previous, {"playbackMode": "repeat"}) == AudioRule(sound="Bell")

    def test_stop_mode_only_purchase_stored(self):
        assert merge_rule(None, {"stopMode": "purchase"}) == AudioRule(stop_mode="purchase")
        previous = AudioRule(sound="Bell", stop_mode="purchase")
        assert merge_rule(previous, {"stopMode": "manual"}) == AudioRule(sound="Bell")

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(20, 150), (1000.7, 1000), ("2500", 2500), ("abc", None), (True, None), (float("inf"), None)],
    )
    def test_loop_interval(self, value, expected):
        rule = merge_rule(AudioRule(sound="Bell"), {"loopIntervalMs": value})
        assert rule.loop_interval_ms == expected

    def test_snake_case_keys_accepted(self):
        assert merge_rule(None, {"playback_mode": "oneshot", "loop_interval_ms": 300}) == AudioRule(
            playback_mode="oneshot", loop_interval_ms=300
        )

    def test_legacy_repeat_count_ignored(self):
        assert merge_rule(None, {"stopRepeats": 3}) is None


class TestTriggerOverrides:
    """Tests for rule -> audio override translation."""

    def test_full_rule(self):
        rule = AudioRule(sound="Bell", playback_mode="loop", stop_mode="purchase", loop_interval_ms=500)
        assert build_trigger_overrides(rule) == {
            "sound": "Bell",
            "mode": "loop",
            "stop": {"mode": "purchase"},
            "loopIntervalMs": 500,
        }

    def test_empty(self):
        assert build_trigger_overrides(None) is None
        assert build_trigger_overrides(AudioRule()) is None

    def test_resolve_playback_mode(self):
        assert resolve_playback_mode(None, "oneshot") == "oneshot"
        assert resolve_playback_mode(AudioRule(sound="Bell"), "loop") == "loop"
        assert resolve_playback_mode(AudioRule(playback_mode="oneshot"), "loop") == "oneshot"


class TestRuleEngine:
    """Tests for RuleEngine persistence and change broadcasting."""

    def test_set_persists_camel_case(self, rules: RuleEngine, store: JsonFileStore):
        assert rules.set("Seed:Carrot", {"sound": "Bell", "stopMode": "purchase"}) is True
        assert store.load(RULES_KEY) == {"Seed:Carrot": {"sound": "Bell", "stopMode": "purchase"}}

    def test_reload_from_store(self, rules: RuleEngine, store: JsonFileStore):
        rules.set("Seed:Carrot", {"sound": "Bell"})
        assert RuleEngine(store).get("Seed:Carrot") == AudioRule(sound="Bell")

    def test_unchanged_patch_does_not_emit(self, rules: RuleEngine):
        listener = MagicMock()
        rules.changes.subscribe(listener)

        rules.set("Seed:Carrot", {"sound": "Bell"})
        rules.set("Seed:Carrot", {"sound": "Bell"})

        listener.assert_called_once_with({"Seed:Carrot": AudioRule(sound="Bell")})

    def test_clearing_last_field_drops_rule(self, rules: RuleEngine, store: JsonFileStore):
        rules.set("Seed:Carrot", {"sound": "Bell"})
        rules.set("Seed:Carrot", {"sound": None})

        assert rules.get("Seed:Carrot") is None
        assert store.load(RULES_KEY) == {}

    def test_clear_emits_only_when_present(self, rules: RuleEngine):
        listener = MagicMock()
        rules.changes.subscribe(listener)

        assert rules.clear("Seed:Carrot") is False
        listener.assert_not_called()

        rules.set("Seed:Carrot", {"sound": "Bell"})
        assert rules.clear("Seed:Carrot") is True
        assert listener.call_args_list[-1].args == ({},)

    def test_audio_rule_patch(self, rules: RuleEngine, store: JsonFileStore):
        assert rules.set("Seed:Carrot", AudioRule(sound="Bell")) is True
        assert rules.get("Seed:Carrot") == AudioRule(sound="Bell")
        assert store.load(RULES_KEY) == {"Seed:Carrot": {"sound": "Bell"}}

    def test_audio_rule_patch_keeps_unset_fields(self, rules: RuleEngine):
        rules.set("Seed:Carrot", {"playbackMode": "loop", "loopIntervalMs": 800})
        rules.set("Seed:Carrot", AudioRule(sound="Chime"))

        assert rules.get("Seed:Carrot") == AudioRule(
            sound="Chime", playback_mode="loop", loop_interval_ms=800
        )

    def test_empty_id_is_noop(self, rules: RuleEngine):
        assert rules.set("", {"sound": "Bell"}) is False
        assert rules.get("") is None

    def test_malformed_store_resets(self, data_dir: Path, store: JsonFileStore):
        data_dir.mkdir(parents=True)
        (data_dir / f"{RULES_KEY}.json").write_text("{not json", encoding="utf-8")

        assert RuleEngine(store).snapshot() == {}

    def test_invalid_persisted_values_normalized(self, store: JsonFileStore):
        store.save(
            RULES_KEY,
            {
                "Seed:Carrot": {"sound": "Bell", "playbackMode": "repeat", "stopRepeats": 4},
                "Seed:Empty": {"stopMode": "manual"},
                "Seed:Bad": "nope",
            },
        )
        assert RuleEngine(store).snapshot() == {"Seed:Carrot": AudioRule(sound="Bell")}
