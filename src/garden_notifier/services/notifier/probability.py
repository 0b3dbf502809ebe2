"""
Weather Probability Estimator.

Estimates how likely a weather condition is to show up next, from its last
sighting and the cycle metadata of its definition. Pure and read-only.
"""

from __future__ import annotations

import math

from ...catalog.weather import BaseCycle, LunarCycle, UnknownCycle, WeatherCycle
from .formatting import clamp, describe_minutes, format_percent, now_ms
from .types import WeatherProbabilityDisplay, WeatherRow

NO_DATA_LABEL = "—"


def _weight(row: WeatherRow) -> float | None:
    weight = row.weight_in_cycle
    if weight is None or not math.isfinite(weight):
        return None
    return max(0.0, weight)


def _from_weight(weight: float | None, title: str, empty_title: str) -> WeatherProbabilityDisplay:
    if weight is None:
        return WeatherProbabilityDisplay(label=NO_DATA_LABEL, title=empty_title, value=None)
    return WeatherProbabilityDisplay(
        label=f"~{format_percent(weight)}",
        title=title,
        value=clamp(weight, 0.0, 1.0),
    )


def compute_weather_probability_display(
    row: WeatherRow, now: int | None = None
) -> WeatherProbabilityDisplay:
    """
    Estimate the chance of a weather appearing.

    Args:
        row: Weather row (definition + sighting state)
        now: Reference time in epoch ms (defaults to current time)

    Returns:
        WeatherProbabilityDisplay with label, explanation and value in [0, 1]
        (value is None when there is nothing to estimate from)
    """
    if row.is_current:
        return WeatherProbabilityDisplay(label="Active", title="Weather currently active", value=1)

    weight = _weight(row)

    if not row.last_seen:
        pct = format_percent(weight) if weight is not None else ""
        return _from_weight(
            weight,
            f"Estimated from cycle weight ({pct}). No sightings yet.",
            "No sightings yet",
        )

    current = now if now is not None else now_ms()
    elapsed = max(0.0, (current - row.last_seen) / 60_000)
    details: list[str] = []

    match row.cycle:
        case None:
            pct = format_percent(weight) if weight is not None else ""
            return _from_weight(weight, f"Estimated from cycle weight ({pct}).", "No cycle data")

        case BaseCycle():
            return WeatherProbabilityDisplay(
                label="Default", title="Base weather state", value=None
            )

        case WeatherCycle(start_window_min=low, start_window_max=high):
            low = low if low is not None else 0.0
            high = high if high is not None else low
            readiness = clamp((elapsed - low) / max(1.0, high - low), 0.0, 1.0)
            details.append(f"Cycle window: {round(low)}-{round(high)} min")

        case LunarCycle(period_minutes=period):
            if period is not None and period > 0:
                readiness = clamp(elapsed / period, 0.0, 1.0)
                details.append(f"Cycle period: {round(period)} min")
            else:
                readiness = 0.0

        case UnknownCycle(raw_kind=raw_kind):
            title = f"Cycle kind: {raw_kind or 'unknown'}."
            return _from_weight(weight, title, title)

    details.insert(0, f"Last seen {describe_minutes(elapsed)} ago")
    if weight is not None:
        details.append(f"Cycle weight: {format_percent(weight)}")

    chance = clamp(weight * readiness if weight is not None else readiness, 0.0, 1.0)
    return WeatherProbabilityDisplay(
        label=f"~{format_percent(chance)}",
        title="\n".join(details),
        value=chance,
    )
