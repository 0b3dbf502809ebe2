"""
Notifier Preference Store.

Holds the three persisted preference maps, each loaded lazily on first
use and written back on every mutation:

- popup flags per catalog item id
- notify flag and last sighting per weather id
- stop mode and loop interval per audio context
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ...core.logging import get_logger
from .persistence import (
    CONTEXT_DEFAULTS_KEY,
    PREFS_KEY,
    WEATHER_PREFS_KEY,
    load_object,
    save_object,
)
from .protocols import AudioPlayer, KeyValueStore
from .types import (
    KNOWN_PREF_FLAGS,
    MIN_LOOP_INTERVAL_MS,
    ContextStopDefaults,
    NotifierContext,
    PrefFlag,
    StopMode,
)

logger = get_logger(__name__)


@dataclass
class WeatherPref:
    notify: bool = False
    last_seen: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.notify and self.last_seen is None


def _finite(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _context(value: Any) -> NotifierContext | None:
    try:
        return NotifierContext(value)
    except ValueError:
        return None


class PreferenceStore:
    """Resident, persistence-backed preference maps."""

    def __init__(
        self,
        store: KeyValueStore,
        audio: AudioPlayer | None = None,
        min_loop_interval_ms: int = MIN_LOOP_INTERVAL_MS,
    ) -> None:
        self._store = store
        self._audio = audio
        self._min_loop = min_loop_interval_ms

        self._flags: dict[str, PrefFlag] = {}
        self._flags_loaded = False
        self._weather: dict[str, WeatherPref] = {}
        self._weather_loaded = False
        self._context_defaults: dict[NotifierContext, ContextStopDefaults] = {}
        self._context_loaded = False

    # =========================================================================
    # Popup Flags
    # =========================================================================

    def _ensure_flags_loaded(self) -> None:
        if self._flags_loaded:
            return
        self._flags_loaded = True
        self._flags = {}
        for item_id, raw in load_object(self._store, PREFS_KEY).items():
            bits = _finite(raw)
            if not item_id or bits is None:
                continue
            flags = PrefFlag(int(bits) & KNOWN_PREF_FLAGS.value)
            if flags:
                self._flags[str(item_id)] = flags

    def _save_flags(self) -> None:
        save_object(self._store, PREFS_KEY, {k: v.value for k, v in self._flags.items()})

    def get_flags(self, item_id: str) -> PrefFlag:
        self._ensure_flags_loaded()
        return self._flags.get(item_id, PrefFlag.NONE)

    def set_flags(self, item_id: str, flags: PrefFlag) -> None:
        """Store flags for an id; an empty flag set deletes the entry."""
        if not item_id:
            return
        self._ensure_flags_loaded()
        flags &= KNOWN_PREF_FLAGS
        if flags:
            self._flags[item_id] = flags
        else:
            self._flags.pop(item_id, None)
        self._save_flags()

    def enabled_ids(self) -> list[str]:
        """Ids with at least one flag set, sorted."""
        self._ensure_flags_loaded()
        return sorted(self._flags)

    # =========================================================================
    # Weather Preferences
    # =========================================================================

    def _ensure_weather_loaded(self) -> None:
        if self._weather_loaded:
            return
        self._weather_loaded = True
        self._weather = {}
        for weather_id, raw in load_object(self._store, WEATHER_PREFS_KEY).items():
            if not weather_id or not isinstance(raw, dict):
                continue
            pref = WeatherPref()
            if isinstance(raw.get("notify"), bool):
                pref.notify = raw["notify"]
            last_seen = _finite(raw.get("lastSeen"))
            if last_seen is not None:
                pref.last_seen = int(last_seen)
            self._weather[str(weather_id)] = pref

    def save_weather(self) -> None:
        """Write weather prefs, omitting entries with nothing set."""
        self._ensure_weather_loaded()
        data: dict[str, Any] = {}
        for weather_id, pref in self._weather.items():
            entry: dict[str, Any] = {}
            if pref.notify:
                entry["notify"] = True
            if pref.last_seen is not None:
                entry["lastSeen"] = pref.last_seen
            if entry:
                data[weather_id] = entry
        save_object(self._store, WEATHER_PREFS_KEY, data)

    def get_weather_pref(self, weather_id: str) -> WeatherPref:
        """Weather pref for an id (a blank one if none is stored)."""
        self._ensure_weather_loaded()
        return self._weather.get(weather_id) or WeatherPref()

    def set_weather_notify(self, weather_id: str, enabled: bool) -> bool:
        """
        Set the notify flag for a weather id.

        Returns:
            True if the flag changed (and was persisted)
        """
        if not weather_id:
            return False
        self._ensure_weather_loaded()
        pref = self._weather.setdefault(weather_id, WeatherPref())
        if pref.notify == bool(enabled):
            return False
        pref.notify = bool(enabled)
        self.save_weather()
        return True

    def record_weather_seen(self, weather_id: str, timestamp_ms: int) -> None:
        """Record a sighting and persist immediately."""
        self._ensure_weather_loaded()
        pref = self._weather.setdefault(weather_id, WeatherPref())
        pref.last_seen = int(timestamp_ms)
        self.save_weather()

    # =========================================================================
    # Context Stop Defaults
    # =========================================================================

    def _playback_settings(self, context: NotifierContext) -> Mapping[str, Any]:
        if self._audio is None:
            return {}
        try:
            settings = self._audio.get_playback_settings(context.value)
        except Exception as e:
            logger.warning("Audio playback settings unavailable for %s: %s", context.value, e)
            return {}
        return settings if isinstance(settings, Mapping) else {}

    def _ensure_context_loaded(self) -> None:
        if self._context_loaded:
            return
        self._context_loaded = True
        self._context_defaults = {}
        for raw_context, raw in load_object(self._store, CONTEXT_DEFAULTS_KEY).items():
            context = _context(raw_context)
            if context is None or not isinstance(raw, dict):
                continue
            interval = _finite(raw.get("loopIntervalMs"))
            if interval is None:
                interval = _finite(self._playback_settings(context).get("loopIntervalMs")) or 0
            self._context_defaults[context] = ContextStopDefaults(
                stop_mode="purchase" if raw.get("stopMode") == "purchase" else "manual",
                loop_interval_ms=max(self._min_loop, math.floor(interval)),
            )

    def _save_context_defaults(self) -> None:
        save_object(
            self._store,
            CONTEXT_DEFAULTS_KEY,
            {ctx.value: value.to_dict() for ctx, value in self._context_defaults.items()},
        )

    def get_context_stop_defaults(self, context: NotifierContext | str) -> ContextStopDefaults:
        """
        Effective stop/loop defaults for a context.

        Each field falls back stored value -> audio subsystem default ->
        hardcoded default. Weather alerts always stop manually.
        """
        ctx = _context(context) or NotifierContext.SHOPS
        self._ensure_context_loaded()
        stored = self._context_defaults.get(ctx)
        playback = self._playback_settings(ctx)

        if stored is not None:
            loop_interval = stored.loop_interval_ms
        else:
            loop_interval = _finite(playback.get("loopIntervalMs")) or 0
        loop_interval = max(self._min_loop, math.floor(loop_interval))

        if ctx is NotifierContext.WEATHER:
            return ContextStopDefaults(stop_mode="manual", loop_interval_ms=loop_interval)

        stop_mode: StopMode
        if stored is not None:
            stop_mode = stored.stop_mode
        else:
            stop = playback.get("stop")
            audio_mode = stop.get("mode") if isinstance(stop, Mapping) else None
            stop_mode = audio_mode if audio_mode in ("manual", "purchase") else "purchase"
        return ContextStopDefaults(stop_mode=stop_mode, loop_interval_ms=loop_interval)

    def set_context_stop_defaults(
        self,
        context: NotifierContext | str,
        conf: ContextStopDefaults | Mapping[str, Any],
    ) -> ContextStopDefaults | None:
        """
        Store stop/loop defaults for a context.

        Returns:
            The normalized defaults, or None for an unknown context
        """
        ctx = _context(context)
        if ctx is None:
            return None
        self._ensure_context_loaded()
        current = self.get_context_stop_defaults(ctx)

        if isinstance(conf, ContextStopDefaults):
            raw_mode, raw_interval = conf.stop_mode, conf.loop_interval_ms
        else:
            raw_mode = conf.get("stopMode", conf.get("stop_mode"))
            raw_interval = conf.get("loopIntervalMs", conf.get("loop_interval_ms"))

        interval = _finite(raw_interval)
        normalized = ContextStopDefaults(
            stop_mode="purchase"
            if raw_mode == "purchase" and ctx is not NotifierContext.WEATHER
            else "manual",
            loop_interval_ms=max(self._min_loop, math.floor(interval))
            if interval is not None
            else current.loop_interval_ms,
        )
        self._context_defaults[ctx] = normalized
        self._save_context_defaults()
        return normalized
