"""
Subscription Hub.

Independent pub/sub channels for notifier state. Each channel keeps its
own listener registry and an optional supplier for its current value, so
subscribe_now() can replay "now" and register for "next" without a gap.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Generic, TypeVar

from ...core.logging import get_logger
from .protocols import Unsubscribe

logger = get_logger(__name__)

T = TypeVar("T")

# Channel names
ROWS = "rows"
SHOPS = "shops"
PURCHASES = "purchases"
WEATHER = "weather"
RULES = "rules"

CHANNEL_NAMES = (ROWS, SHOPS, PURCHASES, WEATHER, RULES)


class Channel(Generic[T]):
    """
    A single pub/sub channel.

    Listeners are called in registration order. A listener that raises is
    logged and does not prevent delivery to the others.
    """

    def __init__(self, name: str, current: Callable[[], T | None] | None = None) -> None:
        self.name = name
        self._current = current
        self._listeners: dict[int, Callable[[T], None]] = {}
        self._tokens = itertools.count()

    def current(self) -> T | None:
        """Current value from the supplier, or None if there is none."""
        if self._current is None:
            return None
        return self._current()

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """
        Register for future values.

        Returns:
            Function that removes this registration (safe to call twice)
        """
        token = next(self._tokens)
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def subscribe_now(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Deliver the current value synchronously, then subscribe."""
        value = self.current()
        if value is not None:
            self._deliver(callback, value)
        return self.subscribe(callback)

    def publish(self, value: T) -> None:
        """Deliver a value to every listener."""
        for callback in list(self._listeners.values()):
            self._deliver(callback, value)

    def clear(self) -> None:
        self._listeners.clear()

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber on channel '%s' raised", self.name)

    def __len__(self) -> int:
        return len(self._listeners)


class SubscriptionHub:
    """Registry of named channels."""

    def __init__(self) -> None:
        self._channels: dict[str, Channel] = {}

    def register(self, name: str, current: Callable[[], object] | None = None) -> Channel:
        """Create a channel; registering an existing name is an error."""
        if name in self._channels:
            raise ValueError(f"Channel already registered: {name}")
        channel: Channel = Channel(name, current)
        self._channels[name] = channel
        return channel

    def attach(self, channel: Channel) -> Channel:
        """Register a channel owned by another component."""
        if channel.name in self._channels:
            raise ValueError(f"Channel already registered: {channel.name}")
        self._channels[channel.name] = channel
        return channel

    def channel(self, name: str) -> Channel:
        return self._channels[name]

    def listener_counts(self) -> dict[str, int]:
        return {name: len(channel) for name, channel in self._channels.items()}
