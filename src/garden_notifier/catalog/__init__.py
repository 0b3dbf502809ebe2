"""
Static catalog access.

Components:
- StaticCatalog / load_catalog: YAML-backed read-only game data
- CatalogIndex: catalog item id -> type, name, rarity
- WeatherCatalog: weather definitions and value resolution
"""

from .items import (
    SHOP_SECTIONS,
    CatalogEntry,
    CatalogIndex,
    SectionType,
    ShopSectionSpec,
    make_catalog_id,
    split_catalog_id,
)
from .loader import DISPLAY_RARITY, StaticCatalog, load_catalog
from .weather import (
    WEATHER_ID_PREFIX,
    BaseCycle,
    CycleMeta,
    LunarCycle,
    UnknownCycle,
    WeatherCatalog,
    WeatherCycle,
    WeatherDefinition,
    WeatherMutation,
    cycle_to_dict,
    parse_cycle,
    parse_mutations,
)

__all__ = [
    # Items
    "SHOP_SECTIONS",
    "CatalogEntry",
    "CatalogIndex",
    "SectionType",
    "ShopSectionSpec",
    "make_catalog_id",
    "split_catalog_id",
    # Loader
    "DISPLAY_RARITY",
    "StaticCatalog",
    "load_catalog",
    # Weather
    "WEATHER_ID_PREFIX",
    "BaseCycle",
    "CycleMeta",
    "LunarCycle",
    "UnknownCycle",
    "WeatherCatalog",
    "WeatherCycle",
    "WeatherDefinition",
    "WeatherMutation",
    "cycle_to_dict",
    "parse_cycle",
    "parse_mutations",
]
