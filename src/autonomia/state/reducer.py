"""Cycle state reducer.

Re-derives a cycle's current mileage and fuel total from its initial
odometer reading and its full event history. This is the only sanctioned
way to restore those two fields after a history event is edited or
deleted.

Fold rules, applied in canonical order:

- ``start``: ignored; the cycle's ``initial_mileage`` is authoritative
- ``checkpoint``: mileage is set to the event value
- ``trip``: event value is added to the running mileage
- ``refuel``: event value is added to the fuel total
- ``consumption``: no effect
- ``finish``: no effect during the fold; afterwards mileage is raised to
  at least the finish reading
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from autonomia.models.history import (
    CheckpointEvent,
    ConsumptionEvent,
    EventKind,
    FinishEvent,
    HistoryEvent,
    RefuelEvent,
    TripEvent,
)

# Same-timestamp tie-break: start first, finish last, the rest by insertion.
_KIND_RANK: dict[EventKind, int] = {
    EventKind.START: 0,
    EventKind.CHECKPOINT: 1,
    EventKind.TRIP: 1,
    EventKind.REFUEL: 1,
    EventKind.CONSUMPTION: 1,
    EventKind.FINISH: 2,
}


@dataclass(frozen=True, slots=True)
class Recomputation:
    """Result of :func:`recompute`."""

    ordered_events: tuple[HistoryEvent, ...]
    current_mileage: float
    fuel_amount: float


def event_sort_key(event: HistoryEvent) -> tuple[datetime, int, int, str]:
    """Total order over events: timestamp, kind rank, insertion sequence, id."""
    seq = event.seq if event.seq is not None else -1
    return (event.date, _KIND_RANK[event.kind], seq, event.id)


def order_events(events: Iterable[HistoryEvent]) -> list[HistoryEvent]:
    return sorted(events, key=event_sort_key)


def fold_event(mileage: float, fuel: float, event: HistoryEvent) -> tuple[float, float]:
    """Apply one event's effect to a running ``(mileage, fuel)`` pair.

    ``finish`` is not handled here; see :func:`recompute`.
    """
    if isinstance(event, CheckpointEvent):
        return event.value, fuel
    if isinstance(event, TripEvent):
        return mileage + event.value, fuel
    if isinstance(event, RefuelEvent):
        return mileage, fuel + event.value
    return mileage, fuel


def recompute(initial_mileage: float, events: Iterable[HistoryEvent]) -> Recomputation:
    """Rebuild derived cycle state from scratch.

    Pure and idempotent: feeding ``ordered_events`` back in yields the same
    result. Never raises for well-formed events.
    """
    ordered = order_events(events)
    mileage = float(initial_mileage)
    fuel = 0.0
    finish: FinishEvent | None = None

    for event in ordered:
        if isinstance(event, FinishEvent):
            finish = event
            continue
        mileage, fuel = fold_event(mileage, fuel, event)

    if finish is not None:
        mileage = max(mileage, finish.value)

    return Recomputation(ordered_events=tuple(ordered), current_mileage=mileage, fuel_amount=fuel)


def last_consumption(ordered_events: Sequence[HistoryEvent]) -> float:
    """Last declared consumption rate, or ``0.0`` if none was declared."""
    for event in reversed(ordered_events):
        if isinstance(event, ConsumptionEvent):
            return event.value
    return 0.0
