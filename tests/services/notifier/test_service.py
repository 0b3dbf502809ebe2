"""
Tests for the notifier service lifecycle and public surface.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from garden_notifier.catalog import StaticCatalog
from garden_notifier.services.notifier import (
    AudioRule,
    ContextStopDefaults,
    JsonFileStore,
    NotifierFilters,
    NotifierService,
    NotifierState,
    PurchasesSnapshot,
    ShopsSnapshot,
    WeatherState,
)


@pytest.fixture
def sources(source_factory, shops_factory):
    return {
        "shops": source_factory(shops_factory(seed=("Carrot",), tool=("Shovel",))),
        "purchases": source_factory({"seed": {"purchases": {"Carrot": 2}}}),
        "tools": source_factory([]),
        "weather": source_factory("Sunny"),
    }


@pytest.fixture
def service(
    catalog: StaticCatalog,
    sources,
    audio: MagicMock,
    stats: MagicMock,
    store: JsonFileStore,
) -> NotifierService:
    return NotifierService(
        catalog=catalog,
        shops_source=sources["shops"],
        purchases_source=sources["purchases"],
        tool_inventory_source=sources["tools"],
        weather_source=sources["weather"],
        audio=audio,
        stats=stats,
        store=store,
    )


class TestLifecycle:
    """Tests for start/stop."""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, service: NotifierService, sources):
        await service.start()
        await service.start()

        assert service.is_started is True
        for source in sources.values():
            assert source.get_calls == 1
            assert len(source.listeners) == 1

    @pytest.mark.asyncio
    async def test_stop_detaches_listeners(self, service: NotifierService, sources):
        await service.start()
        service.stop()

        assert service.is_started is False
        for source in sources.values():
            assert source.listeners == []

    @pytest.mark.asyncio
    async def test_disposer_stops(self, service: NotifierService):
        dispose = await service.start()
        dispose()
        assert service.is_started is False

    @pytest.mark.asyncio
    async def test_restart_reprimes(self, service: NotifierService, sources):
        await service.start()
        service.stop()
        await service.start()

        assert sources["shops"].get_calls == 2
        assert len(sources["shops"].listeners) == 1

    @pytest.mark.asyncio
    async def test_failing_source_isolated(self, catalog, source_factory, store, audio):
        service = NotifierService(
            catalog=catalog,
            shops_source=source_factory(error=RuntimeError("shops offline")),
            weather_source=source_factory("rain"),
            audio=audio,
            store=store,
        )

        await service.start()

        state = await service.get_weather_state()
        assert state.current_id == "Weather:Rain"

    @pytest.mark.asyncio
    async def test_get_starts_engine(self, service: NotifierService):
        state = await service.get()

        assert service.is_started is True
        assert [row.id for row in state.rows] == ["Seed:Carrot", "Tool:Shovel"]

    @pytest.mark.asyncio
    async def test_get_without_shop_source(self, catalog, store):
        service = NotifierService(catalog=catalog, store=store)
        state = await service.get()
        assert state == NotifierState(updated_at=0)


class TestRowSubscriptions:
    """Tests for row change delivery."""

    @pytest.mark.asyncio
    async def test_on_change_now_delivers_current(self, service: NotifierService):
        listener = MagicMock()
        await service.on_change_now(listener)

        listener.assert_called_once()
        assert listener.call_args.args[0].counts.items == 2

    @pytest.mark.asyncio
    async def test_only_structural_changes_delivered(self, service: NotifierService, sources, shops_factory):
        await service.start()
        listener = MagicMock()
        service.on_change(listener)

        sources["shops"].emit(shops_factory(seed=("Carrot",), tool=("Shovel",), restock=120))
        listener.assert_not_called()

        sources["shops"].emit(shops_factory(seed=("Carrot", "Starweaver"), tool=("Shovel",)))
        listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_delivery_after_stop(self, service: NotifierService, sources, shops_factory):
        await service.start()
        listener = MagicMock()
        service.on_change(listener)
        service.stop()

        sources["shops"].emit(shops_factory(decor=("StoneLantern",)))

        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_shop_and_purchase_snapshots(self, service: NotifierService):
        shops = MagicMock()
        purchases = MagicMock()

        await service.on_shops_change_now(shops)
        await service.on_purchases_change_now(purchases)

        assert isinstance(shops.call_args.args[0], ShopsSnapshot)
        assert isinstance(purchases.call_args.args[0], PurchasesSnapshot)
        assert service.purchased_count("Seed:Carrot") == 2

    @pytest.mark.asyncio
    async def test_purchase_updates_forwarded(self, service: NotifierService, sources):
        await service.start()
        listener = MagicMock()
        service.on_purchases_change(listener)

        sources["purchases"].emit({"seed": {"purchases": {"Carrot": 5}}})

        listener.assert_called_once()
        assert service.purchased_count("Seed:Carrot") == 5


class TestPreferences:
    """Tests for popup preferences through the service."""

    @pytest.mark.asyncio
    async def test_set_popup_always_publishes(self, service: NotifierService):
        await service.start()
        listener = MagicMock()
        service.on_change(listener)

        service.set_popup("Seed:Carrot", True)
        service.set_popup("Seed:Carrot", True)

        assert listener.call_count == 2
        state = listener.call_args.args[0]
        carrot = next(row for row in state.rows if row.id == "Seed:Carrot")
        assert carrot.popup is True
        assert service.get_pref("Seed:Carrot").to_dict() == {"popup": True, "followed": True}

    @pytest.mark.asyncio
    async def test_set_prefs_and_clear(self, service: NotifierService):
        await service.start()

        service.set_prefs("Seed:Carrot", {"popup": True})
        assert service.get_pref("Seed:Carrot").popup is True

        service.clear_prefs("Seed:Carrot")
        assert service.get_pref("Seed:Carrot").popup is False

    @pytest.mark.asyncio
    async def test_capped_tool(self, service: NotifierService, sources):
        await service.start()
        service.set_popup("Tool:Shovel", True)
        listener = MagicMock()
        service.on_change(listener)

        sources["tools"].emit([{"toolId": "Shovel", "quantity": 1}])

        listener.assert_called_once()
        shovel = next(r for r in listener.call_args.args[0].rows if r.id == "Tool:Shovel")
        assert shovel.popup is False
        assert service.is_id_capped("Tool:Shovel") is True
        assert service.get_pref("Tool:Shovel").popup is False

        sources["tools"].emit([{"toolId": "Shovel", "quantity": 0}])

        shovel = next(r for r in listener.call_args.args[0].rows if r.id == "Tool:Shovel")
        assert shovel.popup is True
        assert service.is_id_capped("Tool:Shovel") is False
        assert service.get_pref("Tool:Shovel").popup is True

    @pytest.mark.asyncio
    async def test_enable_on_capped_tool_ignored(self, service: NotifierService, sources):
        await service.start()
        sources["tools"].emit([{"toolId": "Shovel", "quantity": 1}])

        service.set_popup("Tool:Shovel", True)
        sources["tools"].emit([])

        assert service.get_pref("Tool:Shovel").popup is False

    @pytest.mark.asyncio
    async def test_set_prefs_popup_on_capped_tool_ignored(self, service: NotifierService, sources):
        await service.start()
        sources["tools"].emit([{"toolId": "Shovel", "quantity": 1}])

        service.set_prefs("Tool:Shovel", {"popup": True})
        sources["tools"].emit([])

        assert service.get_pref("Tool:Shovel").popup is False

    def test_empty_id_noop(self, service: NotifierService):
        service.set_popup("", True)
        assert service.get_pref("").popup is False

    def test_filter_rows_is_static(self):
        assert NotifierService.filter_rows([], NotifierFilters(type="seed")) == []


class TestWeather:
    """Tests for weather through the service."""

    @pytest.mark.asyncio
    async def test_start_primes_weather_and_alerts(self, service: NotifierService, sources, audio, stats):
        sources["weather"].value = "rain"
        service.set_weather_notify("Weather:Rain", True)

        await service.start()
        await asyncio.sleep(0)

        audio.trigger.assert_awaited_once_with("Weather:Rain", {"mode": "oneshot"}, "weather")
        stats.increment_weather_stat.assert_called_once_with("Rain")

    @pytest.mark.asyncio
    async def test_weather_from_host_thread_alerts_on_loop(self, service: NotifierService, sources, audio):
        service.set_weather_notify("Weather:Frost", True)
        await service.start()

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, sources["weather"].emit, "frost")
        for _ in range(5):
            await asyncio.sleep(0)

        audio.trigger.assert_awaited_once_with("Weather:Frost", {"mode": "oneshot"}, "weather")

    @pytest.mark.asyncio
    async def test_on_weather_change_now(self, service: NotifierService, sources):
        listener = MagicMock()
        await service.on_weather_change_now(listener)

        state = listener.call_args.args[0]
        assert isinstance(state, WeatherState)
        assert state.current_id == "Weather:Sunny"

        sources["weather"].emit("amber")
        assert listener.call_args.args[0].current_id == "Weather:AmberMoon"

    @pytest.mark.asyncio
    async def test_notify_toggle_publishes(self, service: NotifierService):
        await service.start()
        listener = MagicMock()
        service.on_weather_change(listener)

        service.set_weather_notify("Weather:Frost", True)
        service.set_weather_notify("Weather:Frost", True)

        listener.assert_called_once()
        assert service.get_weather_notify("Weather:Frost") is True


class TestRulesAndDefaults:
    """Tests for audio rules and context defaults through the service."""

    def test_rules_subscription(self, service: NotifierService):
        listener = MagicMock()
        service.on_rules_change_now(listener)

        service.set_rule("Seed:Carrot", {"sound": "Bell"})
        service.set_rule("Seed:Carrot", {"sound": "Bell"})
        service.clear_rule("Seed:Carrot")

        assert [c.args[0] for c in listener.call_args_list] == [
            {},
            {"Seed:Carrot": AudioRule(sound="Bell")},
            {},
        ]

    def test_get_rules(self, service: NotifierService):
        service.set_rule("Seed:Carrot", {"playbackMode": "loop"})
        assert service.get_rule("Seed:Carrot") == AudioRule(playback_mode="loop")
        assert service.get_all_rules() == {"Seed:Carrot": AudioRule(playback_mode="loop")}

    def test_set_rule_with_audio_rule(self, service: NotifierService):
        service.set_rule("Seed:Carrot", {"playbackMode": "loop"})
        service.set_rule("Seed:Carrot", AudioRule(sound="Bell"))
        assert service.get_rule("Seed:Carrot") == AudioRule(sound="Bell", playback_mode="loop")

    def test_context_defaults(self, service: NotifierService):
        service.set_context_stop_defaults("shops", {"stopMode": "manual", "loopIntervalMs": 800})
        assert service.get_context_stop_defaults("shops") == ContextStopDefaults("manual", 800)

    def test_listener_counts(self, service: NotifierService):
        service.on_rules_change(MagicMock())
        service.on_change(MagicMock())

        counts = service.listener_counts()
        assert counts["rules"] == 1
        assert counts["rows"] == 1
        assert counts["weather"] == 0
