"""
Notifier Service.

Owns every piece of notifier state (resident caches, preference maps,
subscriber channels) behind one public surface, and wires the host's
observable sources into the reducers.

Flow:
1. start() primes each source once (shops, purchases, tool inventory,
   weather) and registers change listeners
2. Shop snapshots -> ShopReducer -> rows channel (on structural change)
3. Weather values -> WeatherReducer -> weather channel (on signature change)
4. Preference writes -> cached row recompute -> rows channel (always)
5. Rule writes -> RuleEngine -> rules channel (on effective change)
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ...catalog.items import CatalogIndex
from ...catalog.loader import StaticCatalog
from ...catalog.weather import WeatherCatalog
from ...core.config import get_settings
from ...core.logging import get_logger
from .alerts import AlertDispatcher
from .channels import PURCHASES, ROWS, SHOPS, WEATHER, Channel, SubscriptionHub
from .persistence import JsonFileStore
from .prefs import PreferenceStore
from .protocols import AudioPlayer, KeyValueStore, ObservableSource, StatsSink, Unsubscribe
from .rules import RuleEngine
from .shop_reducer import ShopReducer, detect_restock, purchased_count_for_id
from .tool_caps import ToolCapGuard
from .types import (
    AudioRule,
    ContextStopDefaults,
    NotifierContext,
    NotifierFilters,
    NotifierRow,
    NotifierState,
    PrefFlag,
    PurchasesSnapshot,
    ShopsSnapshot,
    WeatherState,
    filter_rows,
)
from .weather_reducer import WeatherReducer

logger = get_logger(__name__)


@dataclass(frozen=True)
class PrefView:
    """Effective popup preference for an id."""

    popup: bool

    @property
    def followed(self) -> bool:
        return self.popup

    def to_dict(self) -> dict[str, bool]:
        return {"popup": self.popup, "followed": self.followed}


@dataclass
class NotifierService:
    """
    Shop and weather notification engine.

    All collaborators are optional except the static catalog; a missing
    source simply never produces values.
    """

    catalog: StaticCatalog = field(default_factory=StaticCatalog)
    shops_source: ObservableSource | None = None
    purchases_source: ObservableSource | None = None
    tool_inventory_source: ObservableSource | None = None
    weather_source: ObservableSource | None = None
    audio: AudioPlayer | None = None
    stats: StatsSink | None = None
    store: KeyValueStore | None = None

    _started: bool = field(default=False, init=False, repr=False)
    _unsubscribers: list[Unsubscribe] = field(default_factory=list, init=False, repr=False)
    _last_shops: ShopsSnapshot | None = field(default=None, init=False, repr=False)
    _last_purchases: PurchasesSnapshot | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        """Build the catalog indices, stores, reducers and channels."""
        settings = get_settings()
        if self.store is None:
            self.store = JsonFileStore(settings.notifier_data_dir)

        self._index = CatalogIndex.build(self.catalog)
        self._weather_catalog = WeatherCatalog.build(self.catalog.weather)
        self._alerts = AlertDispatcher(self.audio)
        self._prefs = PreferenceStore(
            self.store, self.audio, min_loop_interval_ms=settings.min_loop_interval_ms
        )
        self._rules = RuleEngine(self.store)
        self._caps = ToolCapGuard()
        self._shop = ShopReducer(self._index, self._prefs, self._caps)
        self._weather = WeatherReducer(
            self._weather_catalog, self._prefs, self._rules, self._alerts, self.stats
        )

        self._hub = SubscriptionHub()
        self._rows_channel: Channel[NotifierState] = self._hub.register(
            ROWS, self._shop.snapshot_state
        )
        self._shops_channel: Channel[ShopsSnapshot] = self._hub.register(
            SHOPS, lambda: self._last_shops
        )
        self._purchases_channel: Channel[PurchasesSnapshot] = self._hub.register(
            PURCHASES, lambda: self._last_purchases
        )
        self._weather_channel: Channel[WeatherState] = self._hub.register(
            WEATHER, self._weather.current_state
        )
        self._hub.attach(self._rules.changes)

        logger.debug(
            "Notifier initialized: %d catalog items, %d weather definitions",
            len(self._index),
            len(self._weather_catalog),
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> Callable[[], None]:
        """
        Prime every cache and wire source listeners (idempotent).

        Returns:
            Disposer equivalent to stop()
        """
        await self._ensure_started()
        return self.stop

    async def _ensure_started(self) -> None:
        if self._started:
            return
        self._started = True
        self._alerts.bind_loop(asyncio.get_running_loop())
        self._rules.ensure_loaded()

        await self._prime(self.shops_source, "shops", self._handle_shops)
        await self._listen(self.shops_source, "shops", self._handle_shops)

        await self._prime(self.purchases_source, "purchases", self._handle_purchases)
        await self._listen(self.purchases_source, "purchases", self._handle_purchases)

        await self._prime(self.tool_inventory_source, "tool inventory", self._handle_tool_inventory)
        await self._listen(self.tool_inventory_source, "tool inventory", self._handle_tool_inventory)

        await self._prime(
            self.weather_source, "weather", lambda value: self._handle_weather(value, force=True)
        )
        await self._listen(self.weather_source, "weather", self._handle_weather)

        logger.info("Notifier started")

    async def _prime(
        self, source: ObservableSource | None, label: str, handler: Callable[[Any], None]
    ) -> None:
        if source is None:
            return
        try:
            value = await source.get()
        except Exception as e:
            logger.warning("Failed to fetch %s: %s", label, e)
            return
        try:
            handler(value)
        except Exception:
            logger.exception("Failed to apply initial %s value", label)

    async def _listen(
        self, source: ObservableSource | None, label: str, handler: Callable[[Any], None]
    ) -> None:
        if source is None:
            return

        def listener(value: Any) -> None:
            if not self._started:
                return
            try:
                handler(value)
            except Exception:
                logger.exception("Failed to apply %s update", label)

        try:
            unsubscribe = source.on_change(listener)
            if inspect.isawaitable(unsubscribe):
                unsubscribe = await unsubscribe
        except Exception as e:
            logger.warning("Failed to subscribe to %s: %s", label, e)
            return
        if callable(unsubscribe):
            self._unsubscribers.append(unsubscribe)

    def stop(self) -> None:
        """Remove source listeners, halt the weather loop, allow a fresh start."""
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception as e:
                logger.warning("Error removing source listener: %s", e)
        self._unsubscribers = []
        self._weather.reset()
        self._started = False
        logger.info("Notifier stopped")

    # =========================================================================
    # Source Handlers
    # =========================================================================

    def _handle_shops(self, raw: Any) -> None:
        snapshot = ShopsSnapshot.coerce(raw)
        restocked = detect_restock(self._last_shops, snapshot)
        if restocked:
            logger.info("Restocked: %s", ", ".join(restocked))
        self._last_shops = snapshot
        if self._shop.reduce(snapshot):
            self._publish_rows()
        self._shops_channel.publish(snapshot)

    def _handle_purchases(self, raw: Any) -> None:
        self._last_purchases = PurchasesSnapshot.coerce(raw)
        self._purchases_channel.publish(self._last_purchases)

    def _handle_tool_inventory(self, raw: Any) -> None:
        self._caps.update(raw)
        self._recompute_rows_and_notify()

    def _handle_weather(self, raw: Any, force: bool = False) -> None:
        if self._weather.handle(raw, force=force):
            self._publish_weather()

    def _publish_rows(self) -> None:
        state = self._shop.snapshot_state()
        if state is not None:
            self._rows_channel.publish(state)

    def _recompute_rows_and_notify(self) -> None:
        if self._shop.recompute_from_cache():
            self._publish_rows()

    def _publish_weather(self) -> None:
        if self._weather.state is not None:
            self._weather_channel.publish(self._weather.state)

    # =========================================================================
    # Shop Rows
    # =========================================================================

    async def get(self) -> NotifierState:
        """Current row state, starting the engine if needed."""
        await self._ensure_started()
        if self._shop.state is None and self.shops_source is not None:
            await self._prime(self.shops_source, "shops", self._handle_shops)
        return self._shop.snapshot_state() or NotifierState(updated_at=0)

    def purchased_count(self, item_id: str) -> int:
        """Units of an item bought since its section last restocked."""
        return purchased_count_for_id(item_id, self._last_purchases)

    def listener_counts(self) -> dict[str, int]:
        return self._hub.listener_counts()

    def on_change(self, callback: Callable[[NotifierState], None]) -> Unsubscribe:
        return self._rows_channel.subscribe(callback)

    async def on_change_now(self, callback: Callable[[NotifierState], None]) -> Unsubscribe:
        await self._ensure_started()
        return self._rows_channel.subscribe_now(callback)

    def on_shops_change(self, callback: Callable[[ShopsSnapshot], None]) -> Unsubscribe:
        return self._shops_channel.subscribe(callback)

    async def on_shops_change_now(self, callback: Callable[[ShopsSnapshot], None]) -> Unsubscribe:
        await self._ensure_started()
        return self._shops_channel.subscribe_now(callback)

    def on_purchases_change(self, callback: Callable[[PurchasesSnapshot], None]) -> Unsubscribe:
        return self._purchases_channel.subscribe(callback)

    async def on_purchases_change_now(
        self, callback: Callable[[PurchasesSnapshot], None]
    ) -> Unsubscribe:
        await self._ensure_started()
        return self._purchases_channel.subscribe_now(callback)

    @staticmethod
    def filter_rows(rows: list[NotifierRow], filters: NotifierFilters) -> list[NotifierRow]:
        return filter_rows(rows, filters)

    # =========================================================================
    # Popup Preferences
    # =========================================================================

    def get_pref(self, item_id: str) -> PrefView:
        """Effective popup preference (forced off for capped tools)."""
        if not item_id:
            return PrefView(popup=False)
        return PrefView(popup=self._shop.effective_popup(item_id))

    def set_popup(self, item_id: str, enabled: bool) -> None:
        """Toggle popup alerts; enabling a capped tool is ignored."""
        if not item_id:
            return
        if enabled and self._caps.is_id_capped(item_id):
            logger.debug("Ignoring popup enable for capped tool %s", item_id)
            return
        self._write_flags(item_id, PrefFlag.POPUP, bool(enabled))

    def set_prefs(self, item_id: str, prefs: Mapping[str, Any]) -> None:
        """Apply a preference patch ({"popup": bool})."""
        if not item_id:
            return
        popup = prefs.get("popup") if isinstance(prefs, Mapping) else None
        if popup is True and self._caps.is_id_capped(item_id):
            logger.debug("Ignoring popup enable for capped tool %s", item_id)
            return
        if isinstance(popup, bool):
            self._write_flags(item_id, PrefFlag.POPUP, popup)
        else:
            self._write_flags(item_id, PrefFlag.NONE, False)

    def clear_prefs(self, item_id: str) -> None:
        if not item_id:
            return
        self._prefs.set_flags(item_id, PrefFlag.NONE)
        self._recompute_rows_and_notify()

    def _write_flags(self, item_id: str, flag: PrefFlag, enabled: bool) -> None:
        flags = self._prefs.get_flags(item_id)
        flags = flags | flag if enabled else flags & ~flag
        self._prefs.set_flags(item_id, flags)
        self._recompute_rows_and_notify()

    def is_id_capped(self, item_id: str) -> bool:
        return self._caps.is_id_capped(item_id)

    # =========================================================================
    # Weather
    # =========================================================================

    async def get_weather_state(self) -> WeatherState:
        await self._ensure_started()
        return self._weather.current_state()

    def on_weather_change(self, callback: Callable[[WeatherState], None]) -> Unsubscribe:
        return self._weather_channel.subscribe(callback)

    async def on_weather_change_now(self, callback: Callable[[WeatherState], None]) -> Unsubscribe:
        await self._ensure_started()
        return self._weather_channel.subscribe_now(callback)

    def get_weather_notify(self, weather_id: str) -> bool:
        if not weather_id:
            return False
        return self._prefs.get_weather_pref(weather_id).notify

    def set_weather_notify(self, weather_id: str, enabled: bool) -> None:
        if not weather_id:
            return
        if self._weather.set_notify(weather_id, enabled):
            self._publish_weather()

    @property
    def weather_catalog(self) -> WeatherCatalog:
        return self._weather_catalog

    # =========================================================================
    # Context Defaults
    # =========================================================================

    def get_context_stop_defaults(self, context: NotifierContext | str) -> ContextStopDefaults:
        return self._prefs.get_context_stop_defaults(context)

    def set_context_stop_defaults(
        self,
        context: NotifierContext | str,
        conf: ContextStopDefaults | Mapping[str, Any],
    ) -> None:
        self._prefs.set_context_stop_defaults(context, conf)

    # =========================================================================
    # Audio Rules
    # =========================================================================

    def get_rule(self, item_id: str) -> AudioRule | None:
        return self._rules.get(item_id)

    def get_all_rules(self) -> dict[str, AudioRule]:
        return self._rules.snapshot()

    def set_rule(self, item_id: str, patch: Mapping[str, Any] | AudioRule) -> None:
        self._rules.set(item_id, patch)

    def clear_rule(self, item_id: str) -> None:
        self._rules.clear(item_id)

    def on_rules_change(self, callback: Callable[[dict[str, AudioRule]], None]) -> Unsubscribe:
        return self._rules.changes.subscribe(callback)

    def on_rules_change_now(self, callback: Callable[[dict[str, AudioRule]], None]) -> Unsubscribe:
        return self._rules.changes.subscribe_now(callback)
