"""shiprate CLI tool.

Usage:
    python -m cli quote order.json
    python -m cli quote order.json --rules rules.json --criteria cheapest
    python -m cli rules stats rules.json
    python -m cli rules validate rules.json
    python -m cli rules export rules.json
    python -m cli convert weight 2.5 lb kg
    python -m cli convert dimension 10 in cm
    python -m cli distance 34.0522 -118.2437 40.7128 -74.0060
    python -m cli serve --port 8000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from shiprate.config import get_settings
from shiprate.schemas import CalculationRequest
from shiprate.services.rule_store import RuleStore
from shiprate.services.shipping import (
    DimensionUnit,
    NoShippingOptionsError,
    ShippingEngine,
    ShippingOption,
    Weight,
    WeightUnit,
)
from shiprate.services.shipping.geo import haversine_km
from shiprate.services.shipping.units import convert_dimension, convert_weight


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="shiprate",
        description="Shipping rate engine CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", help="Top-level command")

    # ── Quote ────────────────────────────────────────────
    quote = sub.add_parser("quote", help="Quote shipping options for an order")
    quote.add_argument("order", help="Order JSON file (items, origin, destination, rules)")
    quote.add_argument("--rules", help="Rule document JSON file")
    quote.add_argument(
        "--criteria",
        choices=["cheapest", "fastest", "recommended"],
        help="Print only the best option by this criteria",
    )

    # ── Rules ────────────────────────────────────────────
    rules_parser = sub.add_parser("rules", help="Rule document tools")
    rules_sub = rules_parser.add_subparsers(dest="action")
    for action, help_text in (
        ("stats", "Rule counts"),
        ("validate", "Configuration warnings"),
        ("export", "Re-export normalized rule document"),
    ):
        p = rules_sub.add_parser(action, help=help_text)
        p.add_argument("file", help="Rule document JSON file")

    # ── Convert ──────────────────────────────────────────
    conv_parser = sub.add_parser("convert", help="Unit conversion")
    conv_sub = conv_parser.add_subparsers(dest="action")

    w = conv_sub.add_parser("weight", help="Convert a weight")
    w.add_argument("value", help="Weight value")
    w.add_argument("from_unit", choices=[u.value for u in WeightUnit])
    w.add_argument("to_unit", choices=[u.value for u in WeightUnit])

    d = conv_sub.add_parser("dimension", help="Convert a length")
    d.add_argument("value", help="Length value")
    d.add_argument("from_unit", choices=[u.value for u in DimensionUnit])
    d.add_argument("to_unit", choices=[u.value for u in DimensionUnit])

    # ── Distance ─────────────────────────────────────────
    dist = sub.add_parser("distance", help="Great-circle distance in km")
    for name in ("lat1", "lon1", "lat2", "lon2"):
        dist.add_argument(name, type=float)

    # ── Serve ────────────────────────────────────────────
    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    handlers = {
        "quote": handle_quote,
        "rules": handle_rules,
        "convert": handle_convert,
        "distance": handle_distance,
        "serve": handle_serve,
    }
    handler = handlers.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


# ── Helpers ─────────────────────────────────────────────

def _require(path_str: str) -> Path:
    path = Path(path_str)
    if not path.exists():
        print(f"File not found: {path_str}")
        sys.exit(1)
    return path


def _load_store(path_str: str) -> RuleStore:
    _require(path_str)
    store = RuleStore()
    try:
        store.load_file(path_str)
    except (ValidationError, ValueError) as e:
        print(f"Invalid rule document {path_str}: {e}")
        sys.exit(1)
    return store


def _print_options(options: list[ShippingOption]) -> None:
    print(f"{'Option':<28} {'Method':<10} {'Cost':<10} {'Days':<6} {'Tracking'}")
    print("-" * 64)
    for o in options:
        tracking = "✓" if o.tracking_included else "✗"
        print(f"{o.service_name[:27]:<28} {o.method.value:<10} ${str(o.cost):<9} {o.estimated_days:<6} {tracking}")


# ── Command Handlers ────────────────────────────────────

def handle_quote(args):
    try:
        request = CalculationRequest.model_validate_json(_require(args.order).read_text(encoding="utf-8"))
    except ValidationError as e:
        print(f"Invalid order {args.order}: {e}")
        sys.exit(1)

    rules = None
    if args.rules:
        rules = _load_store(args.rules).snapshot()
        request = request.model_copy(update={"use_stored_rules": True})

    engine = ShippingEngine(rules)
    inp = request.to_input(engine.rules)

    if args.criteria:
        try:
            best = engine.calculate_best_option(inp, args.criteria)
        except NoShippingOptionsError as e:
            print(f"❌ {e}")
            sys.exit(1)
        _print_options([best])
        return

    result = engine.calculate_shipping(inp)
    if not result.is_valid:
        print(f"❌ {result.error_message}")
        sys.exit(1)

    print(f"Zone: {result.zone.value}  Weight: {result.total_weight.value} kg  Value: ${result.total_value}")
    if result.distance is not None:
        print(f"Distance: {result.distance:.1f} km")
    if not result.options:
        print("No shipping options available.")
    else:
        _print_options(result.options)
        print()
        print(f"Cheapest:    {result.cheapest_option.service_name} (${result.cheapest_option.cost})")
        print(f"Fastest:     {result.fastest_option.service_name} ({result.fastest_option.estimated_days} days)")
        print(f"Recommended: {result.recommended_option.service_name}")
    for warning in result.warnings:
        print(f"⚠️  {warning}")


def handle_rules(args):
    if args.action not in ("stats", "validate", "export"):
        print("Usage: shiprate rules {stats|validate|export} rules.json")
        return

    store = _load_store(args.file)

    if args.action == "stats":
        for k, v in store.statistics().items():
            print(f"  {k}: {v}")

    elif args.action == "validate":
        warnings = store.validate_configuration()
        if warnings:
            print(f"⚠️  Found {len(warnings)} warning(s):")
            for w in warnings:
                print(f"  {w}")
        else:
            print("✅ Rule configuration looks consistent")

    else:
        doc = store.export_document()
        print(json.dumps(doc.model_dump(mode="json"), indent=2, ensure_ascii=False))


def handle_convert(args):
    if args.action not in ("weight", "dimension"):
        print("Usage: shiprate convert {weight|dimension} VALUE FROM TO")
        return

    try:
        value = Decimal(args.value)
    except InvalidOperation:
        print(f"Not a number: {args.value}")
        sys.exit(1)

    try:
        if args.action == "weight":
            converted = convert_weight(Weight(value, WeightUnit(args.from_unit)), WeightUnit(args.to_unit))
        else:
            converted = convert_dimension(value, DimensionUnit(args.from_unit), DimensionUnit(args.to_unit))
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)
    print(f"{args.value} {args.from_unit} = {converted} {args.to_unit}")


def handle_distance(args):
    km = haversine_km(args.lat1, args.lon1, args.lat2, args.lon2)
    print(f"{km:.2f} km")


def handle_serve(args):
    settings = get_settings()
    uvicorn.run(
        "shiprate.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
