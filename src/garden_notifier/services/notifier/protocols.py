"""
Collaborator Protocols.

Interfaces the notifier consumes from its host: observable live values,
the audio playback engine, and the stats counter.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

Unsubscribe = Callable[[], None]


@runtime_checkable
class ObservableSource(Protocol):
    """
    A live host value (shop snapshot, weather, tool inventory, purchases).

    get() fetches the current value; on_change() registers a listener and
    returns a function that removes it.
    """

    async def get(self) -> Any:
        ...

    def on_change(self, callback: Callable[[Any], None]) -> Unsubscribe:
        ...


@runtime_checkable
class AudioPlayer(Protocol):
    """Trigger/stop/settings contract of the host audio subsystem."""

    async def trigger(self, item_id: str, overrides: Mapping[str, Any], context: str) -> None:
        ...

    def stop_loop(self, item_id: str) -> None:
        ...

    def get_playback_settings(self, context: str) -> Mapping[str, Any]:
        """
        Current playback settings for a context.

        Expected shape: {"stop": {"mode": "manual"|"purchase"}, "loopIntervalMs": int,
        "mode": "oneshot"|"loop"}.
        """
        ...

    def list_sounds(self) -> list[str]:
        ...


@runtime_checkable
class StatsSink(Protocol):
    """Host statistics collaborator."""

    def increment_weather_stat(self, raw_weather_id: str) -> None:
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Persistence backend for the notifier stores.

    load() returns the parsed JSON value for a key (None if absent);
    save() writes one. Errors may be raised; callers swallow them.
    """

    def load(self, key: str) -> Any:
        ...

    def save(self, key: str, value: Any) -> None:
        ...
