"""
Catalog Index.

Read-only map from catalog item id ("Seed:Tulip", "Tool:Shovel", ...) to
static metadata (section type, display name, rarity).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .loader import StaticCatalog


class SectionType(str, Enum):
    """Shop sections an item can belong to."""

    SEED = "Seed"
    EGG = "Egg"
    TOOL = "Tool"
    DECOR = "Decor"


@dataclass(frozen=True)
class ShopSectionSpec:
    """How a raw shop section maps onto catalog ids."""

    key: str
    type: SectionType
    id_field: str


# Order matters: rows are emitted section by section in this order.
SHOP_SECTIONS: tuple[ShopSectionSpec, ...] = (
    ShopSectionSpec("seed", SectionType.SEED, "species"),
    ShopSectionSpec("egg", SectionType.EGG, "eggId"),
    ShopSectionSpec("tool", SectionType.TOOL, "toolId"),
    ShopSectionSpec("decor", SectionType.DECOR, "decorId"),
)


def make_catalog_id(section: SectionType, raw_id: Any) -> str:
    """Build the universal catalog key for a raw item id."""
    return f"{section.value}:{raw_id}"


def split_catalog_id(item_id: str) -> tuple[SectionType, str] | None:
    """
    Split a catalog id into its section and raw id.

    Returns:
        (section, raw_id), or None if the prefix is not a known section
    """
    prefix, sep, raw = str(item_id).partition(":")
    if not sep:
        return None
    try:
        return SectionType(prefix), raw
    except ValueError:
        return None


@dataclass(frozen=True)
class CatalogEntry:
    """Static metadata for one catalog item."""

    type: SectionType
    name: str
    rarity: str | None = None


class CatalogIndex:
    """Immutable lookup table across the four item kinds."""

    def __init__(self, entries: dict[str, CatalogEntry] | None = None) -> None:
        self._entries = MappingProxyType(dict(entries or {}))

    @classmethod
    def build(cls, catalog: StaticCatalog) -> CatalogIndex:
        """Build the index from static catalog data."""
        entries: dict[str, CatalogEntry] = {}

        for species, entry in catalog.seeds.items():
            # Plant catalogs nest the purchasable seed under "seed"
            seed = entry.get("seed") if isinstance(entry, dict) and "seed" in entry else entry
            if not isinstance(seed, dict):
                continue
            entries[make_catalog_id(SectionType.SEED, species)] = CatalogEntry(
                type=SectionType.SEED,
                name=str(seed.get("name") or species),
                rarity=catalog.display_rarity(seed.get("rarity")),
            )

        sections = (
            (SectionType.EGG, catalog.eggs),
            (SectionType.TOOL, catalog.tools),
            (SectionType.DECOR, catalog.decor),
        )
        for section, mapping in sections:
            for raw_id, entry in mapping.items():
                if not isinstance(entry, dict):
                    continue
                entries[make_catalog_id(section, raw_id)] = CatalogEntry(
                    type=section,
                    name=str(entry.get("name") or raw_id),
                    rarity=catalog.display_rarity(entry.get("rarity")),
                )

        return cls(entries)

    def get(self, item_id: str) -> CatalogEntry | None:
        return self._entries.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
