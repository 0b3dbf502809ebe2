"""
Shop & Weather Notifier Module.

Turns live shop snapshots and the current-weather value into per-item
notification rows, with persisted popup preferences, audio rules and
weather alerts.

Components:
- NotifierService: Lifecycle and public surface
- ShopReducer: Shop snapshot -> rows with structural-change detection
- WeatherReducer: Current weather -> rows, sightings and alerts
- RuleEngine: Per-id audio rules with merge-with-deletion patches
- PreferenceStore: Popup flags, weather prefs, per-context defaults
- ToolCapGuard: Suppresses popups for tools at their quantity cap
- SubscriptionHub / Channel: Pub/sub for derived state
- compute_weather_probability_display: Next-weather estimate

Usage:
    from garden_notifier.services.notifier import NotifierService

    service = NotifierService(catalog=catalog, shops_source=shops, audio=audio)
    stop = await service.start()
    unsubscribe = await service.on_change_now(render_rows)
"""

from .alerts import AlertDispatcher
from .channels import CHANNEL_NAMES, Channel, SubscriptionHub
from .formatting import (
    describe_minutes,
    format_last_seen,
    format_percent,
    format_rule_summary,
    format_weather_mutation,
    get_utc_timestamp,
    weather_state_signature,
)
from .persistence import (
    CONTEXT_DEFAULTS_KEY,
    PREFS_KEY,
    RULES_KEY,
    WEATHER_PREFS_KEY,
    JsonFileStore,
)
from .prefs import PreferenceStore, WeatherPref
from .probability import NO_DATA_LABEL, compute_weather_probability_display
from .protocols import AudioPlayer, KeyValueStore, ObservableSource, StatsSink, Unsubscribe
from .rules import RuleEngine, build_trigger_overrides, merge_rule, resolve_playback_mode
from .service import NotifierService, PrefView
from .shop_reducer import ShopReducer, compute_signature, detect_restock, purchased_count_for_id
from .tool_caps import TOOL_CAPS, ToolCapGuard
from .types import (
    MIN_LOOP_INTERVAL_MS,
    AudioRule,
    ContextStopDefaults,
    NotifierContext,
    NotifierCounts,
    NotifierFilters,
    NotifierRow,
    NotifierState,
    PrefFlag,
    PurchasesSnapshot,
    ShopsSnapshot,
    WeatherProbabilityDisplay,
    WeatherRow,
    WeatherState,
    filter_rows,
)
from .weather_reducer import WeatherReducer

__all__ = [
    # Service
    "NotifierService",
    "PrefView",
    # Reducers
    "ShopReducer",
    "WeatherReducer",
    "compute_signature",
    "detect_restock",
    "purchased_count_for_id",
    # Rules & prefs
    "RuleEngine",
    "merge_rule",
    "build_trigger_overrides",
    "resolve_playback_mode",
    "PreferenceStore",
    "WeatherPref",
    # Tool caps
    "TOOL_CAPS",
    "ToolCapGuard",
    # Channels
    "CHANNEL_NAMES",
    "Channel",
    "SubscriptionHub",
    # Alerts
    "AlertDispatcher",
    # Persistence
    "JsonFileStore",
    "PREFS_KEY",
    "RULES_KEY",
    "WEATHER_PREFS_KEY",
    "CONTEXT_DEFAULTS_KEY",
    # Protocols
    "AudioPlayer",
    "KeyValueStore",
    "ObservableSource",
    "StatsSink",
    "Unsubscribe",
    # Probability
    "NO_DATA_LABEL",
    "compute_weather_probability_display",
    # Formatting
    "describe_minutes",
    "format_last_seen",
    "format_percent",
    "format_rule_summary",
    "format_weather_mutation",
    "get_utc_timestamp",
    "weather_state_signature",
    # Types
    "MIN_LOOP_INTERVAL_MS",
    "AudioRule",
    "ContextStopDefaults",
    "NotifierContext",
    "NotifierCounts",
    "NotifierFilters",
    "NotifierRow",
    "NotifierState",
    "PrefFlag",
    "PurchasesSnapshot",
    "ShopsSnapshot",
    "WeatherProbabilityDisplay",
    "WeatherRow",
    "WeatherState",
    "filter_rows",
]
