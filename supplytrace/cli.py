#!/usr/bin/env python3
"""
SupplyTrace command line.

Usage:
    supplytrace products                       # List products
    supplytrace trace BATCH-001                # Events for one batch
    supplytrace events                         # Every product's events
    supplytrace dashboard                      # Totals and recent events
    supplytrace create-product --name ... --manufacturer ... --batch-number ...
    supplytrace add-event PRODUCT_ID --event-type Shipping --location ... --actor ...
    supplytrace serve --port 3002              # Run the HTTP API

Results are printed as JSON. Exit status is 1 on ledger or validation failure.
"""

import argparse
import json
import logging
import sys

from supplytrace.config import get_config, configure_logging
from supplytrace.services.ledger.errors import GatewayFailure, ValidationFailure
from supplytrace.services.supply_chain import create_trace_aggregator

logger = logging.getLogger(__name__)


def _print_json(payload):
    print(json.dumps(payload, indent=2))


def _split(raw):
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def cmd_products(aggregator, args):
    _print_json([product.to_dict() for product in aggregator.list_products()])
    return 0


def cmd_trace(aggregator, args):
    events = aggregator.trace(args.batch_number)
    if events is None:
        print(f"No product with batch number: {args.batch_number}", file=sys.stderr)
        return 1
    _print_json([event.to_dict() for event in events])
    return 0


def cmd_events(aggregator, args):
    events = sorted(aggregator.all_events(), key=lambda e: e.timestamp, reverse=True)
    _print_json([event.to_dict() for event in events])
    return 0


def cmd_dashboard(aggregator, args):
    _print_json(aggregator.dashboard_summary().to_dict())
    return 0


def cmd_create_product(aggregator, args):
    product_id = aggregator.create_product(
        name=args.name,
        description=args.description,
        manufacturer=args.manufacturer,
        batch_number=args.batch_number,
        ingredients=_split(args.ingredients),
        certifications=_split(args.certifications),
    )
    _print_json({"id": product_id})
    return 0


def cmd_add_event(aggregator, args):
    coordinates = None
    if args.lat is not None or args.lng is not None:
        coordinates = {"lat": args.lat, "lng": args.lng}

    event_id = aggregator.append_event(
        product_id=args.product_id,
        event_type=args.event_type,
        location=args.location,
        actor=args.actor,
        details=args.details,
        coordinates=coordinates,
        temperature=args.temperature,
        humidity=args.humidity,
    )
    _print_json({"id": event_id})
    return 0


def cmd_serve(aggregator, args):
    from supplytrace.app import create_app

    app = create_app(args.env, aggregator=aggregator)
    app.run(host=args.host, port=args.port, debug=app.config.get("DEBUG", False))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="supplytrace",
        description="Query and update the supply chain traceability ledger",
    )
    parser.add_argument("--env", default=None,
                        help="Configuration name (development, production, testing)")
    parser.add_argument("--network", default=None,
                        help="dfx network to call (default: local replica)")
    parser.add_argument("--canister", default=None, help="Ledger canister name")

    subparsers = parser.add_subparsers(dest="command", required=True)

    products = subparsers.add_parser("products", help="List all products")
    products.set_defaults(handler=cmd_products)

    trace = subparsers.add_parser("trace", help="Events recorded for a batch number")
    trace.add_argument("batch_number")
    trace.set_defaults(handler=cmd_trace)

    events = subparsers.add_parser("events", help="Events across all products, newest first")
    events.set_defaults(handler=cmd_events)

    dashboard = subparsers.add_parser("dashboard", help="Totals and recent events")
    dashboard.set_defaults(handler=cmd_dashboard)

    create = subparsers.add_parser("create-product", help="Register a product")
    create.add_argument("--name", required=True)
    create.add_argument("--description", default="")
    create.add_argument("--manufacturer", required=True)
    create.add_argument("--batch-number", required=True)
    create.add_argument("--ingredients", default="", help="Comma separated list")
    create.add_argument("--certifications", default="", help="Comma separated list")
    create.set_defaults(handler=cmd_create_product)

    add_event = subparsers.add_parser("add-event", help="Record a custody event")
    add_event.add_argument("product_id")
    add_event.add_argument("--event-type", required=True,
                           help="Production, Quality Check, Packaging, Shipping, Customs, Delivery or Retail")
    add_event.add_argument("--location", required=True)
    add_event.add_argument("--actor", required=True)
    add_event.add_argument("--details", default="")
    add_event.add_argument("--lat", type=float, default=None)
    add_event.add_argument("--lng", type=float, default=None)
    add_event.add_argument("--temperature", type=float, default=None)
    add_event.add_argument("--humidity", type=float, default=None)
    add_event.set_defaults(handler=cmd_add_event)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3002)
    serve.set_defaults(handler=cmd_serve)

    return parser


def main(argv=None, aggregator=None):
    """Entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_config(args.env)
    configure_logging(settings.LOG_LEVEL)

    if aggregator is None:
        overrides = {}
        if args.network:
            overrides["LEDGER_NETWORK"] = args.network
        if args.canister:
            overrides["LEDGER_CANISTER"] = args.canister
        if overrides:
            settings = type("CliConfig", (settings,), overrides)
        aggregator = create_trace_aggregator(settings)

    try:
        return args.handler(aggregator, args)
    except ValidationFailure as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1
    except GatewayFailure as e:
        logger.error(f"Ledger call failed: {e}")
        print(f"Ledger call failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
