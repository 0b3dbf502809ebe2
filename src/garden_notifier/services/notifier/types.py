"""
Notifier Types.

Shared value types for rows, snapshots, rules and per-context defaults.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Any, Literal

from ...catalog.items import SHOP_SECTIONS, SectionType
from ...catalog.weather import CycleMeta, WeatherMutation, cycle_to_dict

# Floor for loop repetition intervals
MIN_LOOP_INTERVAL_MS = 150

PlaybackMode = Literal["oneshot", "loop"]
StopMode = Literal["manual", "purchase"]


class NotifierContext(str, Enum):
    """Audio contexts the notifier triggers alerts in."""

    SHOPS = "shops"
    WEATHER = "weather"


class PrefFlag(Flag):
    """Per-item preference flags, persisted as an int."""

    NONE = 0
    POPUP = 1


# Bits this version understands; unknown bits are dropped on load.
KNOWN_PREF_FLAGS = PrefFlag.POPUP


# =============================================================================
# Shop Rows
# =============================================================================


@dataclass
class NotifierRow:
    """One item currently offered in a shop section."""

    id: str
    type: SectionType
    name: str
    rarity: str | None
    popup: bool

    @property
    def followed(self) -> bool:
        """Alias of popup kept for consumers of the older field name."""
        return self.popup

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "rarity": self.rarity,
            "popup": self.popup,
            "followed": self.followed,
        }


@dataclass(frozen=True)
class NotifierCounts:
    items: int = 0
    followed: int = 0


@dataclass
class NotifierState:
    """Row set emitted to subscribers."""

    updated_at: int
    rows: list[NotifierRow] = field(default_factory=list)
    counts: NotifierCounts = field(default_factory=NotifierCounts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updatedAt": self.updated_at,
            "rows": [row.to_dict() for row in self.rows],
            "counts": {"items": self.counts.items, "followed": self.counts.followed},
        }


@dataclass(frozen=True)
class NotifierFilters:
    """Row filter; "all" disables a criterion."""

    type: str = "all"
    rarity: str = "all"


def filter_rows(rows: list[NotifierRow], filters: NotifierFilters) -> list[NotifierRow]:
    """
    Filter rows by section type and rarity (case-insensitive).

    Pure helper; the input list is not modified.
    """
    result = list(rows)

    wanted_type = (filters.type or "all").lower()
    if wanted_type != "all":
        result = [row for row in result if row.type.value.lower() == wanted_type]

    wanted_rarity = (filters.rarity or "all").lower()
    if wanted_rarity != "all":
        result = [row for row in result if (row.rarity or "").lower() == wanted_rarity]

    return result


# =============================================================================
# Raw Snapshots
# =============================================================================


def _float(value: Any) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


@dataclass(frozen=True)
class ShopSection:
    inventory: tuple[dict[str, Any], ...] = ()
    seconds_until_restock: float = 0.0


@dataclass(frozen=True)
class ShopsSnapshot:
    """Coerced shop snapshot; missing sections become empty."""

    seed: ShopSection = field(default_factory=ShopSection)
    egg: ShopSection = field(default_factory=ShopSection)
    tool: ShopSection = field(default_factory=ShopSection)
    decor: ShopSection = field(default_factory=ShopSection)

    @classmethod
    def coerce(cls, raw: Any) -> ShopsSnapshot:
        """Build from a raw host value, tolerating any shape."""
        raw = raw if isinstance(raw, dict) else {}
        sections = {}
        for spec in SHOP_SECTIONS:
            section = raw.get(spec.key)
            section = section if isinstance(section, dict) else {}
            inventory = section.get("inventory")
            items = tuple(i for i in inventory if isinstance(i, dict)) if isinstance(inventory, list) else ()
            sections[spec.key] = ShopSection(
                inventory=items,
                seconds_until_restock=_float(section.get("secondsUntilRestock")),
            )
        return cls(**sections)

    def section(self, key: str) -> ShopSection:
        return getattr(self, key)


@dataclass(frozen=True)
class PurchaseSection:
    created_at: float = 0.0
    purchases: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PurchasesSnapshot:
    """Coerced purchase counters per shop section."""

    seed: PurchaseSection = field(default_factory=PurchaseSection)
    egg: PurchaseSection = field(default_factory=PurchaseSection)
    tool: PurchaseSection = field(default_factory=PurchaseSection)
    decor: PurchaseSection = field(default_factory=PurchaseSection)

    @classmethod
    def coerce(cls, raw: Any) -> PurchasesSnapshot:
        raw = raw if isinstance(raw, dict) else {}
        sections = {}
        for spec in SHOP_SECTIONS:
            section = raw.get(spec.key)
            section = section if isinstance(section, dict) else {}
            purchases = section.get("purchases")
            sections[spec.key] = PurchaseSection(
                created_at=_float(section.get("createdAt")),
                purchases=dict(purchases) if isinstance(purchases, dict) else {},
            )
        return cls(**sections)

    def section(self, key: str) -> PurchaseSection:
        return getattr(self, key)


# =============================================================================
# Weather Rows
# =============================================================================


@dataclass
class WeatherRow:
    """Static weather definition joined with persisted preference state."""

    id: str
    name: str
    type: str
    atom_value: str
    notify: bool
    last_seen: int | None
    is_current: bool
    description: str | None = None
    cycle: CycleMeta | None = None
    weight_in_cycle: float | None = None
    mutations: tuple[WeatherMutation, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "atomValue": self.atom_value,
            "notify": self.notify,
            "lastSeen": self.last_seen,
            "isCurrent": self.is_current,
            "description": self.description,
            "cycle": cycle_to_dict(self.cycle),
            "weightInCycle": self.weight_in_cycle,
            "mutations": [
                {"name": m.name, "multiplier": m.multiplier, "conditional": m.conditional}
                for m in self.mutations
            ],
        }


@dataclass
class WeatherState:
    updated_at: int
    current_id: str | None
    rows: list[WeatherRow] = field(default_factory=list)


@dataclass(frozen=True)
class WeatherProbabilityDisplay:
    """Probability estimate with its display label and explanation."""

    label: str
    title: str
    value: float | None


# =============================================================================
# Audio Rules
# =============================================================================


@dataclass(frozen=True)
class AudioRule:
    """
    Per-id override of how an alert is played.

    Every field is optional; an absent field falls back to the context
    default.
    """

    sound: str | None = None
    playback_mode: PlaybackMode | None = None
    stop_mode: StopMode | None = None
    loop_interval_ms: int | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.sound is None
            and self.playback_mode is None
            and self.stop_mode is None
            and self.loop_interval_ms is None
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting absent fields."""
        data: dict[str, Any] = {}
        if self.sound:
            data["sound"] = self.sound
        if self.playback_mode:
            data["playbackMode"] = self.playback_mode
        if self.stop_mode:
            data["stopMode"] = self.stop_mode
        if self.loop_interval_ms is not None:
            data["loopIntervalMs"] = self.loop_interval_ms
        return data


@dataclass(frozen=True)
class ContextStopDefaults:
    stop_mode: StopMode
    loop_interval_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"stopMode": self.stop_mode, "loopIntervalMs": self.loop_interval_ms}
