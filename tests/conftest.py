"""
Garden Notifier Test Suite - Shared Fixtures and Configuration

Provides a temporary notifier data directory, a small static catalog,
fake observable sources, and mocked audio/stats collaborators.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from garden_notifier.catalog import CatalogIndex, StaticCatalog, WeatherCatalog
from garden_notifier.core.config import reset_settings
from garden_notifier.core.logging import reset_logging
from garden_notifier.services.notifier import JsonFileStore, PreferenceStore, RuleEngine

FIXED_NOW_MS = 1_700_000_000_000

CATALOG_DATA: dict[str, Any] = {
    "seeds": {
        "Carrot": {"seed": {"name": "Carrot Seed", "rarity": "Common"}},
        "Starweaver": {"seed": {"name": "Starweaver Pod", "rarity": "Mythic"}},
    },
    "eggs": {
        "CommonEgg": {"name": "Common Egg", "rarity": "Common"},
    },
    "tools": {
        "Shovel": {"name": "Garden Shovel", "rarity": "Common"},
        "WateringCan": {"name": "Watering Can", "rarity": "Common"},
    },
    "decor": {
        "StoneLantern": {"name": "Stone Lantern", "rarity": "Rare"},
    },
    "weather": {
        "Rain": {
            "atomValue": "rain",
            "weightInCycle": 0.2,
            "description": "Crops get wet.",
            "cycle": {
                "kind": "weather",
                "startWindowMin": 20,
                "startWindowMax": 35,
                "durationMinutes": 5,
            },
            "mutations": [{"name": "Wet", "multiplier": 2}],
        },
        "AmberMoon": {
            "atomValue": "amber",
            "weightInCycle": 0.5,
            "cycle": {"kind": "lunar", "periodMinutes": 240, "durationMinutes": 30},
        },
        "Sunny": {
            "cycle": {"kind": "base"},
        },
        "Frost": {
            "atomValue": "frost",
            "weightInCycle": 0.1,
            "cycle": {"kind": "Blizzardy"},
        },
    },
}


def make_shops(
    seed: tuple[str, ...] = (),
    egg: tuple[str, ...] = (),
    tool: tuple[str, ...] = (),
    decor: tuple[str, ...] = (),
    restock: float = 300,
) -> dict[str, Any]:
    """Build a raw shop snapshot the way the host emits it."""
    return {
        "seed": {
            "inventory": [{"species": s, "initialStock": 5} for s in seed],
            "secondsUntilRestock": restock,
        },
        "egg": {"inventory": [{"eggId": e} for e in egg], "secondsUntilRestock": restock},
        "tool": {"inventory": [{"toolId": t} for t in tool], "secondsUntilRestock": restock},
        "decor": {"inventory": [{"decorId": d} for d in decor], "secondsUntilRestock": restock},
    }


class FakeSource:
    """Observable host value with manual emission."""

    def __init__(self, value: Any = None, error: Exception | None = None) -> None:
        self.value = value
        self.error = error
        self.get_calls = 0
        self.listeners: list[Callable[[Any], None]] = []

    async def get(self) -> Any:
        self.get_calls += 1
        if self.error is not None:
            raise self.error
        return self.value

    def on_change(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        self.listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    def emit(self, value: Any) -> None:
        self.value = value
        for listener in list(self.listeners):
            listener(value)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the data directory at tmp_path and reset cached settings/loggers."""
    monkeypatch.setenv("GARDEN_DATA_DIR", str(tmp_path / "default-notifier"))
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "notifier"


@pytest.fixture
def store(data_dir: Path) -> JsonFileStore:
    return JsonFileStore(data_dir)


@pytest.fixture
def catalog() -> StaticCatalog:
    return StaticCatalog.from_dict(CATALOG_DATA)


@pytest.fixture
def index(catalog: StaticCatalog) -> CatalogIndex:
    return CatalogIndex.build(catalog)


@pytest.fixture
def weather_catalog(catalog: StaticCatalog) -> WeatherCatalog:
    return WeatherCatalog.build(catalog.weather)


@pytest.fixture
def prefs(store: JsonFileStore) -> PreferenceStore:
    return PreferenceStore(store)


@pytest.fixture
def rules(store: JsonFileStore) -> RuleEngine:
    return RuleEngine(store)


@pytest.fixture
def audio() -> MagicMock:
    """Mock audio subsystem; trigger is a coroutine like the real one."""
    mock = MagicMock()
    mock.trigger = AsyncMock(return_value=None)
    mock.get_playback_settings.return_value = {}
    mock.list_sounds.return_value = ["Bell", "Chime"]
    return mock


@pytest.fixture
def stats() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fixed_clock() -> Callable[[], int]:
    return lambda: FIXED_NOW_MS


@pytest.fixture
def shops_factory() -> Callable[..., dict[str, Any]]:
    """
    Fixture providing make_shops for building raw shop snapshots.

    Usage:
        def test_something(shops_factory):
            raw = shops_factory(seed=("Carrot",), restock=120)
    """
    return make_shops


@pytest.fixture
def source_factory() -> type[FakeSource]:
    """Fixture providing the FakeSource class."""
    return FakeSource


@pytest.fixture
def catalog_yaml(tmp_path: Path) -> Path:
    """CATALOG_DATA written as a YAML file."""
    import yaml

    path = tmp_path / "catalog.yaml"
    path.write_text(yaml.safe_dump(CATALOG_DATA, sort_keys=False), encoding="utf-8")
    return path
