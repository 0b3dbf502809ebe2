"""
Tests for the weather probability estimator.
"""

from __future__ import annotations

from garden_notifier.catalog import BaseCycle, LunarCycle, UnknownCycle, WeatherCycle
from garden_notifier.services.notifier import (
    NO_DATA_LABEL,
    WeatherRow,
    compute_weather_probability_display,
)

NOW = 1_700_000_000_000
MINUTE = 60_000


def _row(**overrides) -> WeatherRow:
    values = dict(
        id="Weather:Rain",
        name="Rain",
        type="rain",
        atom_value="rain",
        notify=False,
        last_seen=None,
        is_current=False,
    )
    values.update(overrides)
    return WeatherRow(**values)


class TestProbabilityDisplay:
    """Tests for compute_weather_probability_display."""

    def test_current_weather(self):
        display = compute_weather_probability_display(_row(is_current=True, weight_in_cycle=0.2), NOW)
        assert display.label == "Active"
        assert display.value == 1

    def test_never_seen_uses_weight(self):
        display = compute_weather_probability_display(_row(weight_in_cycle=0.2), NOW)
        assert display.label == "~20%"
        assert display.value == 0.2
        assert "No sightings yet" in display.title

    def test_never_seen_without_weight(self):
        display = compute_weather_probability_display(_row(), NOW)
        assert display.label == NO_DATA_LABEL
        assert display.value is None

    def test_no_cycle_data(self):
        display = compute_weather_probability_display(
            _row(last_seen=NOW - 10 * MINUTE, weight_in_cycle=0.35), NOW
        )
        assert display.label == "~35%"
        assert display.value == 0.35

    def test_no_cycle_no_weight(self):
        display = compute_weather_probability_display(_row(last_seen=NOW - MINUTE), NOW)
        assert display.label == NO_DATA_LABEL
        assert display.title == "No cycle data"

    def test_base_cycle(self):
        display = compute_weather_probability_display(
            _row(last_seen=NOW - MINUTE, cycle=BaseCycle(raw_kind="base")), NOW
        )
        assert display.label == "Default"
        assert display.value is None

    def test_weather_window_not_reached(self):
        row = _row(
            last_seen=NOW - 10 * MINUTE,
            weight_in_cycle=0.2,
            cycle=WeatherCycle(start_window_min=20, start_window_max=35),
        )
        display = compute_weather_probability_display(row, NOW)
        assert display.value == 0
        assert display.label == "~0.0%"

    def test_weather_window_elapsed(self):
        row = _row(
            last_seen=NOW - 40 * MINUTE,
            weight_in_cycle=0.2,
            cycle=WeatherCycle(start_window_min=20, start_window_max=35),
        )
        display = compute_weather_probability_display(row, NOW)
        assert display.label == "~20%"
        assert "Cycle window: 20-35 min" in display.title
        assert display.title.startswith("Last seen 40 minutes ago")

    def test_lunar_half_period(self):
        row = _row(
            last_seen=NOW - 120 * MINUTE,
            weight_in_cycle=0.5,
            cycle=LunarCycle(period_minutes=240),
        )
        display = compute_weather_probability_display(row, NOW)
        assert display.value == 0.25
        assert display.label == "~25%"

    def test_lunar_without_weight(self):
        row = _row(last_seen=NOW - 240 * MINUTE, cycle=LunarCycle(period_minutes=240))
        display = compute_weather_probability_display(row, NOW)
        assert display.value == 1
        assert display.label == "~100%"

    def test_unknown_cycle_kind(self):
        row = _row(
            last_seen=NOW - MINUTE,
            weight_in_cycle=0.1,
            cycle=UnknownCycle(raw_kind="Blizzardy"),
        )
        display = compute_weather_probability_display(row, NOW)
        assert display.label == "~10%"
        assert display.title == "Cycle kind: Blizzardy."

    def test_value_always_in_range(self):
        row = _row(
            last_seen=NOW - 1000 * MINUTE,
            weight_in_cycle=5.0,
            cycle=WeatherCycle(start_window_min=1, start_window_max=2),
        )
        display = compute_weather_probability_display(row, NOW)
        assert 0 <= display.value <= 1
