"""
Notifier display formatting.

Small text helpers shared by the probability estimator, the CLI and any
host UI that renders notifier state.
"""

from __future__ import annotations

import json
import math
import time
from collections.abc import Iterable
from datetime import datetime, timezone

from ...catalog.weather import WeatherMutation
from .types import AudioRule, WeatherRow


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def get_utc_timestamp() -> str:
    """
    Get current UTC timestamp string.

    Returns:
        ISO format timestamp like "2026-01-15T12:30:00Z"
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_percent(value: float) -> str:
    """
    Format a 0..1 value as a percentage.

    >= 99.5% shows as 100%, >= 10% as a whole number, below that with one
    decimal.
    """
    pct = clamp(value, 0.0, 1.0) * 100
    if pct >= 99.5:
        return "100%"
    if pct >= 10:
        return f"{math.floor(pct + 0.5)}%"
    return f"{pct:.1f}%"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def describe_minutes(minutes: float) -> str:
    """Human-readable duration for a minute count."""
    if not math.isfinite(minutes):
        return "unknown"
    if minutes < 1:
        return "less than a minute"
    if minutes < 60:
        return _plural(round(minutes), "minute")
    if minutes < 24 * 60:
        return _plural(round(minutes / 60), "hour")
    return _plural(round(minutes / (24 * 60)), "day")


def _iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat(
        timespec="seconds"
    )


def format_last_seen(
    timestamp_ms: int | None, is_current: bool, now: int | None = None
) -> tuple[str, str]:
    """
    Relative "last seen" label.

    Returns:
        (label, title) where title is the absolute UTC time when known
    """
    if is_current:
        return "Now", _iso(timestamp_ms) if timestamp_ms else "Currently active"
    if not timestamp_ms:
        return "Never", "Never seen"

    diff = max(0, (now if now is not None else now_ms()) - timestamp_ms)
    if diff < 45_000:
        label = "Just now"
    elif diff < 90_000:
        label = "1 min ago"
    elif diff < 60 * 60 * 1000:
        mins = round(diff / 60_000)
        label = f"{mins} min{'s' if mins > 1 else ''} ago"
    elif diff < 36 * 60 * 60 * 1000:
        hours = round(diff / 3_600_000)
        label = f"{hours} hour{'s' if hours > 1 else ''} ago"
    else:
        days = round(diff / 86_400_000)
        label = f"{days} day{'s' if days > 1 else ''} ago"

    return label, _iso(timestamp_ms)


def _format_interval(ms: int) -> str:
    ms = max(1, round(ms))
    seconds = ms / 1000
    if seconds >= 10:
        return f"{round(seconds)} s"
    if seconds >= 1:
        return f"{round(seconds, 1):.1f} s"
    return f"{ms} ms"


def format_rule_summary(rule: AudioRule | None, known_sounds: Iterable[str] = ()) -> str:
    """One-line summary of an audio rule ("Sound: Bell • Mode: Loop")."""
    if rule is None:
        return ""
    parts: list[str] = []
    if rule.sound:
        label = rule.sound
        if label not in set(known_sounds) and len(label) > 32:
            label = f"{label[:29]}…"
        parts.append(f"Sound: {label}")
    if rule.playback_mode == "oneshot":
        parts.append("Mode: One-shot")
    elif rule.playback_mode == "loop":
        parts.append("Mode: Loop")
    if rule.stop_mode == "purchase":
        parts.append("Stop: Until purchase")
    elif rule.stop_mode == "manual":
        parts.append("Stop: Manual")
    if rule.loop_interval_ms is not None:
        parts.append(f"Interval: {_format_interval(rule.loop_interval_ms)}")
    return " • ".join(parts)


def format_weather_mutation(mutation: WeatherMutation) -> str:
    """Mutation name with its multiplier ("Wet ×2", "Frozen ×1.5")."""
    if mutation.multiplier is None:
        return mutation.name
    raw = mutation.multiplier
    if abs(raw - round(raw)) < 0.01:
        shown = str(round(raw))
    else:
        shown = f"{round(raw, 2):g}"
    return f"{mutation.name} ×{shown}"


def weather_state_signature(rows: Iterable[WeatherRow]) -> str:
    """Signature over (id, notify, last seen, current) of every weather row."""
    return json.dumps(
        [
            [row.id, 1 if row.notify else 0, row.last_seen or 0, 1 if row.is_current else 0]
            for row in rows
        ]
    )
