"""
Notifier Persistence.

JSON-file key-value backend plus the guarded load/save helpers every
notifier store goes through. Storage failures are logged, never raised.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ...core.logging import get_logger
from .protocols import KeyValueStore

logger = get_logger(__name__)

# Store keys (one JSON document each)
PREFS_KEY = "shop-notifs.v1"
RULES_KEY = "shop-notifs-rules.v1"
WEATHER_PREFS_KEY = "weather-notifs.v1"
CONTEXT_DEFAULTS_KEY = "notifier-loop-defaults.v1"


class JsonFileStore:
    """
    Stores each key as {base_dir}/{key}.json.

    The directory is created lazily on first save.
    """

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def load(self, key: str) -> Any:
        """
        Load and parse a stored document.

        Returns:
            Parsed JSON value, or None if nothing is stored

        Raises:
            json.JSONDecodeError: If the stored document is malformed
            OSError: If the file cannot be read
        """
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def save(self, key: str, value: Any) -> None:
        """Serialize and write a document."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2, sort_keys=True)


def load_object(store: KeyValueStore, key: str) -> dict[str, Any]:
    """
    Load a JSON object from the store.

    Missing, malformed or non-object documents yield an empty dict.
    """
    try:
        data = store.load(key)
    except (json.JSONDecodeError, OSError, ValueError) as e:
        logger.warning("Could not load notifier store '%s', resetting: %s", key, e)
        return {}
    except Exception:
        logger.exception("Unexpected error loading notifier store '%s'", key)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Notifier store '%s' is not a JSON object, resetting", key)
        return {}
    return data


def save_object(store: KeyValueStore, key: str, data: dict[str, Any]) -> bool:
    """
    Write a JSON object to the store.

    Returns:
        True if the write succeeded
    """
    try:
        store.save(key, data)
        return True
    except Exception as e:
        logger.warning("Failed to persist notifier store '%s': %s", key, e)
        return False
