"""Command-line front end.

Every command opens the store at ``AUTONOMIA_STORE_PATH`` (or
``--store``), runs one operation and exits. Errors raised by the library
are printed and turn into exit status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from autonomia.accounts import AccountService
from autonomia.config import AutonomiaConfig
from autonomia.cycles import CycleService
from autonomia.directions import DirectionsClient
from autonomia.exceptions import AutonomiaError
from autonomia.models.cycle import Cycle, CycleStatus
from autonomia.models.history import HistoryEvent, RefuelEvent, TripEvent
from autonomia.models.route import Route
from autonomia.state.store import AutonomiaStore

_logger = logging.getLogger(__name__)

_UNITS = {"start": "km", "checkpoint": "km", "finish": "km", "trip": "km", "refuel": "L", "consumption": "km/L"}


def _fmt(value: float) -> str:
    return f"{value:,.1f}"


def describe_event(event: HistoryEvent) -> str:
    """One-line human description of a history event."""
    amount = f"{_fmt(event.value)} {_UNITS[event.type]}"
    if isinstance(event, TripEvent):
        text = f"trip +{amount}"
        if event.origin or event.destination:
            text += f" ({event.origin or '?'} -> {event.destination or '?'})"
        return text
    if isinstance(event, RefuelEvent):
        text = f"refuel {amount}"
        if event.price_per_liter is not None:
            text += f" @ {event.price_per_liter:.2f}/L"
        if event.discount:
            text += f", discount {event.discount:.2f}"
        return text
    return f"{event.type} {amount}"


def _print_cycle(cycle: Cycle) -> None:
    autonomy = cycle.autonomy()
    print(f"{cycle.name} [{cycle.status}] id={cycle.id}")
    print(f"  started     : {cycle.start_date.isoformat()}")
    print(f"  mileage     : {_fmt(cycle.current_mileage)} km (initial {_fmt(cycle.initial_mileage)})")
    print(f"  fuel        : {_fmt(cycle.fuel_amount)} L")
    print(f"  consumption : {_fmt(cycle.consumption)} km/L")
    if autonomy.ready:
        print(f"  remaining   : {_fmt(autonomy.remaining_km)} km")
        print(f"  max reach   : {_fmt(autonomy.max_reachable_km)} km")
    else:
        print("  remaining   : needs a refuel and a consumption rate")
    print("  history:")
    for event in reversed(cycle.history):
        print(f"    {event.date.isoformat()}  {event.id}  {describe_event(event)}")


def _print_route(route: Route) -> None:
    print(f"{route.origin} -> {route.destination}: {route.distance_text or _fmt(route.distance_km) + ' km'}"
          f" ({route.duration_text or str(int(route.duration_s)) + ' s'})")
    for number, instruction in enumerate(route.instructions, start=1):
        print(f"  {number:>2}. {instruction}")


def _password(args: argparse.Namespace, prompt: str = "Password: ") -> str:
    if args.password is not None:
        return str(args.password)
    return getpass.getpass(prompt)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autonomia", description="Track vehicle fuel cycles and remaining range.")
    parser.add_argument("--store", help="Store file (default: AUTONOMIA_STORE_PATH or ~/.autonomia/store.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("--name", required=True, help="Full name")
    p.add_argument("--username", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="Password (prompted when omitted)")

    p = sub.add_parser("login", help="Log in")
    p.add_argument("username")
    p.add_argument("--password", help="Password (prompted when omitted)")

    sub.add_parser("logout", help="Log out")

    p = sub.add_parser("new", help="Start a new cycle")
    p.add_argument("name")
    p.add_argument("--mileage", type=float, required=True, help="Initial odometer reading (km)")
    p.add_argument("--start", help="Start date, ISO-8601 (default: now)")
    p.add_argument("--fuel", type=float, help="Fuel already in the tank (L)")

    p = sub.add_parser("list", help="List cycles")
    p.add_argument("--status", choices=[s.value for s in CycleStatus])
    p.add_argument("--all", action="store_true", help="Include cycles of every user")

    p = sub.add_parser("show", help="Show a cycle with its autonomy and history")
    p.add_argument("cycle_id")

    p = sub.add_parser("checkpoint", help="Record an odometer reading")
    p.add_argument("cycle_id")
    p.add_argument("mileage", type=float)
    p.add_argument("--date")

    p = sub.add_parser("trip", help="Record a driven distance")
    p.add_argument("cycle_id")
    p.add_argument("distance", type=float)
    p.add_argument("--date")
    p.add_argument("--origin")
    p.add_argument("--destination")

    p = sub.add_parser("refuel", help="Record fuel added")
    p.add_argument("cycle_id")
    p.add_argument("litres", type=float)
    p.add_argument("--price", type=float, help="Price per litre")
    p.add_argument("--discount", type=float, help="Total discount")
    p.add_argument("--date")

    p = sub.add_parser("consumption", help="Declare consumption (km/L)")
    p.add_argument("cycle_id")
    p.add_argument("km_per_liter", type=float)
    p.add_argument("--date")

    p = sub.add_parser("finish", help="Finish a cycle")
    p.add_argument("cycle_id")
    p.add_argument("--date")

    p = sub.add_parser("edit-event", help="Edit a history event and recompute")
    p.add_argument("cycle_id")
    p.add_argument("event_id")
    p.add_argument("--value", type=float)
    p.add_argument("--date")

    p = sub.add_parser("delete-event", help="Delete a history event and recompute")
    p.add_argument("cycle_id")
    p.add_argument("event_id")

    p = sub.add_parser("report", help="Summary figures for a cycle")
    p.add_argument("cycle_id")
    p.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")

    p = sub.add_parser("route", help="Look up a driving route")
    p.add_argument("origin", help="Address or 'lat,lng'")
    p.add_argument("destination")
    p.add_argument("--record", metavar="CYCLE_ID", help="Record the route distance as a trip on this cycle")

    return parser


async def _lookup_route(config: AutonomiaConfig, origin: str, destination: str) -> Route:
    async with DirectionsClient(config) as directions:
        return await directions.route(origin, destination)


def _run(args: argparse.Namespace, config: AutonomiaConfig) -> int:
    store = AutonomiaStore.open(config)
    accounts = AccountService(store, config)
    cycles = CycleService(store, config)
    command: str = args.command

    if command == "register":
        user = accounts.register(args.name, args.username, args.email, _password(args))
        print(f"registered {user.username} id={user.id}")
    elif command == "login":
        user = accounts.login(args.username, _password(args))
        print(f"logged in as {user.username}")
    elif command == "logout":
        accounts.logout()
        print("logged out")
    elif command == "new":
        cycle = cycles.create_cycle(args.name, args.start, args.mileage, initial_fuel=args.fuel)
        print(cycle.id)
    elif command == "list":
        status = CycleStatus(args.status) if args.status else None
        if args.all:
            listed = cycles.list_cycles(status=status)
        elif store.current_user_id is not None:
            listed = cycles.list_cycles(owner_id=store.current_user_id, status=status)
        else:
            # Logged out: only cycles created without an owner.
            everything = cycles.list_cycles(status=status)
            listed = [c for c in everything if c.owner_id is None]
            hidden = len(everything) - len(listed)
            if hidden:
                print(f"not logged in: {hidden} cycle(s) of other users hidden (log in or pass --all)", file=sys.stderr)
        for cycle in listed:
            print(f"{cycle.id}  {cycle.status:<8}  {_fmt(cycle.current_mileage):>10} km  {cycle.name}")
    elif command == "show":
        _print_cycle(cycles.get_cycle(args.cycle_id))
    elif command == "checkpoint":
        _print_cycle(cycles.add_checkpoint(args.cycle_id, args.mileage, args.date))
    elif command == "trip":
        _print_cycle(
            cycles.add_trip(args.cycle_id, args.distance, args.date, origin=args.origin, destination=args.destination)
        )
    elif command == "refuel":
        _print_cycle(
            cycles.refuel(args.cycle_id, args.litres, args.date, price_per_liter=args.price, discount=args.discount)
        )
    elif command == "consumption":
        _print_cycle(cycles.update_consumption(args.cycle_id, args.km_per_liter, args.date))
    elif command == "finish":
        _print_cycle(cycles.finish_cycle(args.cycle_id, args.date))
    elif command == "edit-event":
        _print_cycle(cycles.edit_event(args.cycle_id, args.event_id, value=args.value, date=args.date))
    elif command == "delete-event":
        _print_cycle(cycles.delete_event(args.cycle_id, args.event_id))
    elif command == "report":
        report = cycles.report(args.cycle_id)
        if args.json_mode:
            print(json.dumps(report.model_dump(mode="json"), indent=2, ensure_ascii=False))
        else:
            data: dict[str, Any] = report.model_dump(exclude={"event_counts"})
            for key, value in data.items():
                print(f"  {key:<24}: {value}")
            counts = ", ".join(f"{kind}={count}" for kind, count in report.event_counts.items())
            print(f"  {'events':<24}: {counts}")
    elif command == "route":
        route = asyncio.run(_lookup_route(config, args.origin, args.destination))
        _print_route(route)
        if args.record:
            cycles.add_route_trip(args.record, route)
            print(f"recorded {_fmt(route.distance_km)} km on cycle {args.record}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.store:
        overrides["store_path"] = args.store

    try:
        config = AutonomiaConfig.from_env(**overrides)
        return _run(args, config)
    except AutonomiaError as exc:
        _logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
