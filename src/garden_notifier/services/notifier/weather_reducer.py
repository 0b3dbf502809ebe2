"""
Weather Reducer.

Resolves the host's current-weather value against the weather catalog,
records sightings, drives weather alerts, and maintains the weather rows
emitted to subscribers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ...catalog.weather import WeatherCatalog, WeatherDefinition
from ...core.logging import get_logger
from .alerts import AlertDispatcher
from .formatting import now_ms, weather_state_signature
from .prefs import PreferenceStore
from .protocols import StatsSink
from .rules import RuleEngine, build_trigger_overrides
from .types import NotifierContext, WeatherRow, WeatherState

logger = get_logger(__name__)


def _normalize(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


class WeatherReducer:
    """
    Tracks the current weather and the derived weather rows.

    At most one row is current: the one matching the last resolved value.
    """

    def __init__(
        self,
        catalog: WeatherCatalog,
        prefs: PreferenceStore,
        rules: RuleEngine,
        alerts: AlertDispatcher,
        stats: StatsSink | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._catalog = catalog
        self._prefs = prefs
        self._rules = rules
        self._alerts = alerts
        self._stats = stats
        self._clock = clock

        self.current_id: str | None = None
        self._current_value: str | None = None
        self._signature: str | None = None
        self.state: WeatherState | None = None

    def handle(self, raw: Any, force: bool = False) -> bool:
        """
        Apply a new current-weather value.

        Args:
            raw: Value from the weather source
            force: Re-apply even if the raw value is unchanged

        Returns:
            True if weather rows changed and subscribers should be notified
        """
        value = _normalize(raw)
        if not force and value == self._current_value:
            return False

        definition = self._catalog.resolve(value)
        previous_id = self.current_id

        if definition is not None:
            self._prefs.record_weather_seen(definition.id, self._clock())
        elif value:
            logger.info("Unrecognized weather value: %r", value)

        self.current_id = definition.id if definition else None
        self._current_value = value

        if previous_id and previous_id != self.current_id:
            self._alerts.stop_loop(previous_id)

        if definition is not None:
            if self._prefs.get_weather_pref(definition.id).notify:
                self.trigger_alert(definition)
            self._increment_stat(definition)

        return self.recompute()

    def _increment_stat(self, definition: WeatherDefinition) -> None:
        if self._stats is None:
            return
        try:
            self._stats.increment_weather_stat(definition.raw_id)
        except Exception as e:
            logger.warning("Weather stat increment failed for %s: %s", definition.id, e)

    def trigger_alert(self, definition: WeatherDefinition) -> None:
        """
        One-shot alert for a weather, applying the rule's overrides.

        Weather alerts always stop manually, so a stored stop mode is dropped.
        """
        overrides: dict[str, Any] = build_trigger_overrides(self._rules.get(definition.id)) or {}
        overrides.pop("stop", None)
        overrides["mode"] = "oneshot"
        self._alerts.trigger(definition.id, overrides, NotifierContext.WEATHER)

    def set_notify(self, weather_id: str, enabled: bool) -> bool:
        """
        Toggle alerts for a weather id.

        Disabling stops its loop; enabling the weather that is currently
        active alerts right away.

        Returns:
            True if weather rows changed and subscribers should be notified
        """
        if not self._prefs.set_weather_notify(weather_id, enabled):
            return False
        if not enabled:
            self._alerts.stop_loop(weather_id)
        elif weather_id == self.current_id:
            definition = self._catalog.get(weather_id)
            if definition is not None:
                self.trigger_alert(definition)
        return self.recompute()

    def build_rows(self) -> list[WeatherRow]:
        rows = []
        for definition in self._catalog.definitions:
            pref = self._prefs.get_weather_pref(definition.id)
            rows.append(
                WeatherRow(
                    id=definition.id,
                    name=definition.name,
                    type=definition.type,
                    atom_value=definition.atom_value,
                    notify=pref.notify,
                    last_seen=pref.last_seen,
                    is_current=definition.id == self.current_id,
                    description=definition.description,
                    cycle=definition.cycle,
                    weight_in_cycle=definition.weight_in_cycle,
                    mutations=definition.mutations,
                )
            )
        return rows

    def _rebuild(self) -> tuple[WeatherState, bool]:
        rows = self.build_rows()
        signature = weather_state_signature(rows)
        changed = signature != self._signature
        self._signature = signature
        state = WeatherState(updated_at=self._clock(), current_id=self.current_id, rows=rows)
        self.state = state
        return state, changed

    def recompute(self) -> bool:
        """
        Rebuild weather rows.

        Returns:
            True if the row signature changed
        """
        return self._rebuild()[1]

    def current_state(self) -> WeatherState:
        """Cached weather state, built on first use."""
        if self.state is not None:
            return self.state
        return self._rebuild()[0]

    def reset(self) -> None:
        """Stop the active weather loop and forget the current weather."""
        if self.current_id:
            self._alerts.stop_loop(self.current_id)
        self.current_id = None
        self._current_value = None
        self._signature = None
