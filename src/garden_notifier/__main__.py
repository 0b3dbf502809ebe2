#!/usr/bin/env python3
"""
Garden Notifier CLI Entry Point

Inspects the persisted notifier state from the command line.
Run with: python -m garden_notifier <command> [args]
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .catalog import WeatherCatalog, load_catalog
from .core import get_settings
from .services.notifier import (
    AlertDispatcher,
    JsonFileStore,
    PreferenceStore,
    RuleEngine,
    WeatherReducer,
    compute_weather_probability_display,
    format_last_seen,
    format_rule_summary,
    get_utc_timestamp,
)


def output_json(data: dict, indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent, ensure_ascii=False))


def output_error(message: str, exit_code: int = 1, **kwargs) -> None:
    """Print error JSON and exit."""
    error_data = {
        "error": kwargs.pop("error_type", "error"),
        "message": message,
        "query_timestamp": get_utc_timestamp(),
    }
    error_data.update(kwargs)
    output_json(error_data)
    sys.exit(exit_code)


def _store(args: argparse.Namespace) -> JsonFileStore:
    data_dir = getattr(args, "data_dir", None)
    return JsonFileStore(Path(data_dir) if data_dir else get_settings().notifier_data_dir)


# =============================================================================
# Commands
# =============================================================================


def cmd_weather(args: argparse.Namespace) -> dict[str, Any]:
    """
    List weather rows with notify state and probability estimates.

    Args:
        args: Parsed arguments with optional catalog path

    Returns:
        Result dict with one entry per weather definition
    """
    query_ts = get_utc_timestamp()
    path = Path(args.catalog) if args.catalog else get_settings().resolved_catalog_path

    try:
        catalog = load_catalog(path)
    except FileNotFoundError as e:
        return {"error": "catalog_not_found", "message": str(e), "query_timestamp": query_ts}
    except ValueError as e:
        return {"error": "invalid_catalog", "message": str(e), "query_timestamp": query_ts}

    store = _store(args)
    reducer = WeatherReducer(
        WeatherCatalog.build(catalog.weather),
        PreferenceStore(store),
        RuleEngine(store),
        AlertDispatcher(),
    )

    weather = []
    for row in reducer.current_state().rows:
        probability = compute_weather_probability_display(row)
        last_seen, _ = format_last_seen(row.last_seen, row.is_current)
        weather.append(
            {
                **row.to_dict(),
                "lastSeenLabel": last_seen,
                "probability": {
                    "label": probability.label,
                    "title": probability.title,
                    "value": probability.value,
                },
            }
        )

    return {
        "query_timestamp": query_ts,
        "status": "ok",
        "count": len(weather),
        "weather": weather,
    }


def cmd_rules(args: argparse.Namespace) -> dict[str, Any]:
    """Show the persisted audio rule map."""
    rules = RuleEngine(_store(args)).snapshot()
    return {
        "query_timestamp": get_utc_timestamp(),
        "status": "ok",
        "count": len(rules),
        "rules": {
            item_id: {**rule.to_dict(), "summary": format_rule_summary(rule)}
            for item_id, rule in sorted(rules.items())
        },
    }


def cmd_prefs(args: argparse.Namespace) -> dict[str, Any]:
    """Show ids with popup alerts enabled."""
    ids = PreferenceStore(_store(args)).enabled_ids()
    return {
        "query_timestamp": get_utc_timestamp(),
        "status": "ok",
        "count": len(ids),
        "popup": ids,
    }


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="garden-notifier",
        description="Inspect garden shop and weather notifier state",
    )
    parser.add_argument(
        "--data-dir",
        help="Notifier data directory (defaults to GARDEN_DATA_DIR or instance userdata)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    weather_parser = subparsers.add_parser("weather", help="Weather rows with probabilities")
    weather_parser.add_argument("--catalog", help="Static catalog YAML path")
    weather_parser.set_defaults(func=cmd_weather)

    rules_parser = subparsers.add_parser("rules", help="Persisted audio rules")
    rules_parser.set_defaults(func=cmd_rules)

    prefs_parser = subparsers.add_parser("prefs", help="Ids with popup alerts enabled")
    prefs_parser.set_defaults(func=cmd_prefs)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        result = args.func(args)

        if isinstance(result, dict) and result:
            output_json(result)

            if "error" in result:
                return 1

        return 0

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        output_error(str(e), error_type="command_error", command=args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
