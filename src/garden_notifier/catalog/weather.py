"""
Weather Catalog Resolver.

Builds the immutable list of weather definitions from static game data and
resolves free-form weather values (ids, display names, atom values) against
it, case-insensitively.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Literal, Union

from ..core.logging import get_logger

logger = get_logger(__name__)

WEATHER_ID_PREFIX = "Weather:"

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Cycle Metadata
# =============================================================================


@dataclass(frozen=True)
class WeatherCycle:
    """Bounded start window, in minutes since the last occurrence."""

    start_window_min: float | None = None
    start_window_max: float | None = None
    duration_minutes: float | None = None
    raw_kind: str | None = None
    kind: Literal["weather"] = "weather"


@dataclass(frozen=True)
class LunarCycle:
    """Periodic orbit with a fixed period."""

    period_minutes: float | None = None
    duration_minutes: float | None = None
    raw_kind: str | None = None
    kind: Literal["lunar"] = "lunar"


@dataclass(frozen=True)
class BaseCycle:
    """Permanent fallback weather state."""

    raw_kind: str | None = None
    kind: Literal["base"] = "base"


@dataclass(frozen=True)
class UnknownCycle:
    """Cycle metadata of an unrecognized kind."""

    raw_kind: str | None = None
    kind: Literal["unknown"] = "unknown"


CycleMeta = Union[WeatherCycle, LunarCycle, BaseCycle, UnknownCycle]


def _number(value: Any) -> float | None:
    """Coerce to a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def parse_cycle(raw: Any) -> CycleMeta | None:
    """
    Normalize raw cycle metadata into a CycleMeta.

    Returns:
        CycleMeta, or None when no cycle mapping is present
    """
    if not isinstance(raw, dict):
        return None

    raw_kind = raw.get("kind").strip() if isinstance(raw.get("kind"), str) else ""
    kind = raw_kind.lower()
    duration = _number(raw.get("durationMinutes"))

    if kind == "weather":
        return WeatherCycle(
            start_window_min=_number(raw.get("startWindowMin")),
            start_window_max=_number(raw.get("startWindowMax")),
            duration_minutes=duration,
            raw_kind=raw_kind,
        )
    if kind == "lunar":
        return LunarCycle(
            period_minutes=_number(raw.get("periodMinutes")),
            duration_minutes=duration,
            raw_kind=raw_kind,
        )
    if kind == "base":
        return BaseCycle(raw_kind=raw_kind)
    return UnknownCycle(raw_kind=raw_kind or None)


def cycle_to_dict(cycle: CycleMeta | None) -> dict[str, Any] | None:
    """Serialize cycle metadata using the host's camelCase field names."""
    if cycle is None:
        return None
    data: dict[str, Any] = {"kind": cycle.kind}
    if cycle.raw_kind:
        data["rawKind"] = cycle.raw_kind
    if isinstance(cycle, WeatherCycle):
        if cycle.start_window_min is not None:
            data["startWindowMin"] = cycle.start_window_min
        if cycle.start_window_max is not None:
            data["startWindowMax"] = cycle.start_window_max
    if isinstance(cycle, LunarCycle) and cycle.period_minutes is not None:
        data["periodMinutes"] = cycle.period_minutes
    if isinstance(cycle, (WeatherCycle, LunarCycle)) and cycle.duration_minutes is not None:
        data["durationMinutes"] = cycle.duration_minutes
    return data


# =============================================================================
# Definitions
# =============================================================================


@dataclass(frozen=True)
class WeatherMutation:
    """Crop mutation a weather can apply."""

    name: str
    multiplier: float | None = None
    conditional: str | None = None


def parse_mutations(raw: Any) -> tuple[WeatherMutation, ...]:
    """Normalize a raw mutation list, skipping unnamed entries."""
    if not isinstance(raw, list):
        return ()
    mutations = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name").strip() if isinstance(entry.get("name"), str) else ""
        if not name:
            continue
        conditional = entry.get("conditional")
        conditional = conditional.strip() if isinstance(conditional, str) else ""
        mutations.append(
            WeatherMutation(
                name=name,
                multiplier=_number(entry.get("multiplier")),
                conditional=conditional or None,
            )
        )
    return tuple(mutations)


@dataclass(frozen=True)
class WeatherDefinition:
    """One weather condition from the static catalog."""

    id: str
    name: str
    atom_value: str
    type: str
    description: str | None = None
    cycle: CycleMeta | None = None
    weight_in_cycle: float | None = None
    mutations: tuple[WeatherMutation, ...] = ()

    @property
    def raw_id(self) -> str:
        """Catalog key without the Weather: prefix."""
        return self.id[len(WEATHER_ID_PREFIX):]


def _display_name(name: str) -> str:
    name = _CAMEL_BOUNDARY.sub(r"\1 \2", name).replace("_", " ")
    return _WHITESPACE.sub(" ", name).strip()


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class WeatherCatalog:
    """
    Immutable weather definitions with case-insensitive lookup indices.

    Indices: by id ("weather:rain"), by display name or id suffix
    ("amber moon", "ambermoon"), and by raw atom value.
    """

    def __init__(self, definitions: list[WeatherDefinition] | None = None) -> None:
        self._definitions: tuple[WeatherDefinition, ...] = tuple(definitions or ())
        self._by_id: dict[str, WeatherDefinition] = {}
        self._by_name: dict[str, WeatherDefinition] = {}
        self._by_atom: dict[str, WeatherDefinition] = {}

        for definition in self._definitions:
            self._by_id[definition.id.lower()] = definition
            self._by_name[definition.name.lower()] = definition
            self._by_name[definition.raw_id.lower()] = definition
            if definition.atom_value:
                self._by_atom[definition.atom_value.lower()] = definition

    @classmethod
    def build(cls, raw_catalog: dict[str, Any]) -> WeatherCatalog:
        """
        Build definitions from the static weather map.

        Args:
            raw_catalog: Mapping of weather key to catalog entry

        Returns:
            WeatherCatalog instance
        """
        definitions: list[WeatherDefinition] = []
        for raw_name, raw_value in (raw_catalog or {}).items():
            safe_name = str(raw_name or "").strip()
            if not safe_name:
                continue
            entry = raw_value if isinstance(raw_value, dict) else {}
            raw_display = _text(entry.get("displayName"))
            display_name = _display_name(raw_display or safe_name) or safe_name
            atom_value = _text(entry.get("atomValue"))
            weight = _number(entry.get("weightInCycle"))
            definitions.append(
                WeatherDefinition(
                    id=f"{WEATHER_ID_PREFIX}{safe_name}",
                    name=display_name,
                    atom_value=atom_value,
                    type=atom_value or display_name,
                    description=_text(entry.get("description")) or None,
                    cycle=parse_cycle(entry.get("cycle")),
                    weight_in_cycle=weight,
                    mutations=parse_mutations(entry.get("mutations")),
                )
            )

        logger.debug("Built %d weather definitions", len(definitions))
        return cls(definitions)

    @property
    def definitions(self) -> tuple[WeatherDefinition, ...]:
        return self._definitions

    def get(self, weather_id: str) -> WeatherDefinition | None:
        """Look up a definition by its full id."""
        if not weather_id:
            return None
        return self._by_id.get(str(weather_id).lower())

    def resolve(self, value: str) -> WeatherDefinition | None:
        """
        Resolve a free-form weather value.

        Tries atom value, display name / id suffix, then full id; finally
        retries the name index with all whitespace removed.

        Returns:
            Matching definition, or None if unresolved
        """
        key = str(value or "").strip().lower()
        if not key:
            return None

        definition = self._by_atom.get(key) or self._by_name.get(key) or self._by_id.get(key)
        if definition is None:
            definition = self._by_name.get(_WHITESPACE.sub("", key))
        return definition

    def __len__(self) -> int:
        return len(self._definitions)
