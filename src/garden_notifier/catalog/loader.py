"""
Static Catalog Loader.

Loads the read-only game catalogs (seeds, eggs, tools, decor, weather)
from a YAML document. The host normally ships this file under
reference/catalog.yaml; tests build StaticCatalog directly from dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..core.logging import get_logger

logger = get_logger(__name__)

# Raw rarity value -> display label
DISPLAY_RARITY: dict[str, str] = {
    "Common": "Common",
    "Uncommon": "Uncommon",
    "Rare": "Rare",
    "Legendary": "Legendary",
    "Mythic": "Mythical",
    "Divine": "Divine",
    "Celestial": "Celestial",
}


def _mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    return {}


@dataclass(frozen=True)
class StaticCatalog:
    """
    Read-only static game data.

    Each section maps a raw id to an entry exposing at least ``name`` and
    ``rarity``. Seed entries may nest those fields under a ``seed`` key the
    way plant catalogs do. Weather entries carry display name, atom value,
    cycle metadata and mutations.
    """

    seeds: dict[str, Any] = field(default_factory=dict)
    eggs: dict[str, Any] = field(default_factory=dict)
    tools: dict[str, Any] = field(default_factory=dict)
    decor: dict[str, Any] = field(default_factory=dict)
    weather: dict[str, Any] = field(default_factory=dict)
    rarity_labels: dict[str, str] = field(default_factory=lambda: dict(DISPLAY_RARITY))

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> StaticCatalog:
        """Create from a parsed catalog document."""
        if not data:
            return cls()
        labels = dict(DISPLAY_RARITY)
        labels.update({str(k): str(v) for k, v in _mapping(data.get("rarity")).items()})
        return cls(
            seeds=_mapping(data.get("seeds")),
            eggs=_mapping(data.get("eggs")),
            tools=_mapping(data.get("tools")),
            decor=_mapping(data.get("decor")),
            weather=_mapping(data.get("weather")),
            rarity_labels=labels,
        )

    def display_rarity(self, raw: Any) -> str | None:
        """Map a raw rarity value to its display label."""
        if raw is None:
            return None
        text = str(raw)
        return self.rarity_labels.get(text, text)


def load_catalog(path: Path) -> StaticCatalog:
    """
    Load the static catalog from a YAML file.

    Args:
        path: Path to the catalog document

    Returns:
        StaticCatalog instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a valid YAML mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in catalog {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Catalog {path} must be a YAML mapping")

    catalog = StaticCatalog.from_dict(data)
    logger.debug(
        "Loaded catalog from %s: %d seeds, %d eggs, %d tools, %d decor, %d weather",
        path,
        len(catalog.seeds),
        len(catalog.eggs),
        len(catalog.tools),
        len(catalog.decor),
        len(catalog.weather),
    )
    return catalog
