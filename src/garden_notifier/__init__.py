"""
Garden Notifier - Shop & Weather Notification Engine

Watches a garden game's shop restocks and weather, and decides which items
and weather conditions deserve a popup or an audio alert.

Usage as library:
    from garden_notifier import NotifierService, load_catalog

    service = NotifierService(
        catalog=load_catalog(path),
        shops_source=shops,
        weather_source=weather,
        audio=audio,
    )
    stop = await service.start()

Usage as CLI:
    python -m garden_notifier weather
    python -m garden_notifier rules
    python -m garden_notifier prefs

Package structure:
    garden_notifier/
    ├── core/           # Configuration and logging
    ├── catalog/        # Static catalog index and weather resolver
    └── services/
        └── notifier/   # Reducers, stores, channels, service
"""

__version__ = "1.0.0"

from .catalog import CatalogIndex, StaticCatalog, WeatherCatalog, load_catalog
from .core import GardenSettings, get_logger, get_settings, reset_settings
from .services.notifier import (
    AudioRule,
    NotifierContext,
    NotifierFilters,
    NotifierService,
    NotifierState,
    WeatherState,
)

__all__ = [
    "__version__",
    # Catalog
    "CatalogIndex",
    "StaticCatalog",
    "WeatherCatalog",
    "load_catalog",
    # Core
    "GardenSettings",
    "get_logger",
    "get_settings",
    "reset_settings",
    # Notifier
    "AudioRule",
    "NotifierContext",
    "NotifierFilters",
    "NotifierService",
    "NotifierState",
    "WeatherState",
]
