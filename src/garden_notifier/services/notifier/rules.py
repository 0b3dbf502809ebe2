"""
Audio Rule Engine.

Per-id audio rules (sound, playback mode, stop mode, loop interval) with
merge-with-deletion patch semantics: a field present in a patch is set if
its sanitized value is valid and removed otherwise. Rules that end up
empty are dropped from the map entirely.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, replace
from typing import Any

from ...core.logging import get_logger
from .channels import RULES, Channel
from .persistence import RULES_KEY, load_object, save_object
from .protocols import KeyValueStore
from .types import MIN_LOOP_INTERVAL_MS, AudioRule, PlaybackMode, StopMode

logger = get_logger(__name__)

# Accepted patch keys -> AudioRule field
_PATCH_FIELDS: dict[str, str] = {
    "sound": "sound",
    "playbackMode": "playback_mode",
    "playback_mode": "playback_mode",
    "stopMode": "stop_mode",
    "stop_mode": "stop_mode",
    "loopIntervalMs": "loop_interval_ms",
    "loop_interval_ms": "loop_interval_ms",
}

# Older stores carried a repeat count; it is no longer honoured.
_LEGACY_KEYS = ("stopRepeats", "stop_repeats")


def sanitize_sound(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def sanitize_playback_mode(value: Any) -> PlaybackMode | None:
    if value in ("oneshot", "loop"):
        return value
    return None


def sanitize_stop_mode(value: Any) -> StopMode | None:
    # "manual" is the fallback, so only "purchase" is worth storing
    return "purchase" if value == "purchase" else None


def sanitize_loop_interval(value: Any, minimum: int = MIN_LOOP_INTERVAL_MS) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return max(minimum, math.floor(num))


_SANITIZERS = {
    "sound": sanitize_sound,
    "playback_mode": sanitize_playback_mode,
    "stop_mode": sanitize_stop_mode,
    "loop_interval_ms": sanitize_loop_interval,
}


def merge_rule(previous: AudioRule | None, patch: Mapping[str, Any]) -> AudioRule | None:
    """
    Merge a patch over an existing rule.

    Args:
        previous: Stored rule, or None
        patch: Mapping of camelCase or snake_case field names to new values

    Returns:
        The merged rule, or None if no field remains set
    """
    merged = previous or AudioRule()
    for key, value in patch.items():
        field_name = _PATCH_FIELDS.get(key)
        if field_name is None:
            if key not in _LEGACY_KEYS:
                logger.debug("Ignoring unknown rule field '%s'", key)
            continue
        merged = replace(merged, **{field_name: _SANITIZERS[field_name](value)})
    return None if merged.is_empty else merged


def rule_from_dict(raw: Any) -> AudioRule | None:
    """Normalize a persisted rule document."""
    if not isinstance(raw, Mapping):
        return None
    return merge_rule(None, raw)


def build_trigger_overrides(rule: AudioRule | None) -> dict[str, Any] | None:
    """
    Translate a rule into audio trigger overrides.

    Returns:
        Overrides mapping, or None when the rule sets nothing
    """
    if rule is None:
        return None
    overrides: dict[str, Any] = {}
    if rule.sound:
        overrides["sound"] = rule.sound
    if rule.playback_mode:
        overrides["mode"] = rule.playback_mode
    if rule.stop_mode:
        overrides["stop"] = {"mode": rule.stop_mode}
    if rule.loop_interval_ms is not None:
        overrides["loopIntervalMs"] = max(MIN_LOOP_INTERVAL_MS, rule.loop_interval_ms)
    return overrides or None


def resolve_playback_mode(rule: AudioRule | None, base_mode: PlaybackMode) -> PlaybackMode:
    """Rule's explicit playback mode, else the context's base mode."""
    if rule is None:
        return base_mode
    if rule.playback_mode is not None:
        return rule.playback_mode
    return base_mode


class RuleEngine:
    """
    Owns the persisted rule map.

    The map is loaded on first use and held in memory; every effective
    change is written back and broadcast as a full snapshot.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._rules: dict[str, AudioRule] = {}
        self._loaded = False
        self.changes: Channel[dict[str, AudioRule]] = Channel(RULES, self.snapshot)

    def ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        self._rules = {}
        for item_id, raw in load_object(self._store, RULES_KEY).items():
            rule = rule_from_dict(raw)
            if item_id and rule is not None:
                self._rules[str(item_id)] = rule
        logger.debug("Loaded %d audio rules", len(self._rules))

    def _save(self) -> None:
        save_object(self._store, RULES_KEY, {k: r.to_dict() for k, r in self._rules.items()})

    def get(self, item_id: str) -> AudioRule | None:
        if not item_id:
            return None
        self.ensure_loaded()
        return self._rules.get(item_id)

    def snapshot(self) -> dict[str, AudioRule]:
        """Copy of the full rule map."""
        self.ensure_loaded()
        return dict(self._rules)

    def set(self, item_id: str, patch: Mapping[str, Any] | AudioRule) -> bool:
        """
        Merge a patch into the rule for an id.

        An AudioRule patch sets its non-None fields and leaves the rest.

        Returns:
            True if the stored rule changed
        """
        if isinstance(patch, AudioRule):
            patch = {k: v for k, v in asdict(patch).items() if v is not None}
        if not item_id or not isinstance(patch, Mapping):
            return False
        self.ensure_loaded()

        previous = self._rules.get(item_id)
        merged = merge_rule(previous, patch)
        if merged == previous:
            return False

        if merged is None:
            del self._rules[item_id]
        else:
            self._rules[item_id] = merged
        self._save()
        self.changes.publish(self.snapshot())
        return True

    def clear(self, item_id: str) -> bool:
        """Remove the rule for an id; emits only if one existed."""
        if not item_id:
            return False
        self.ensure_loaded()
        if self._rules.pop(item_id, None) is None:
            return False
        self._save()
        self.changes.publish(self.snapshot())
        return True
