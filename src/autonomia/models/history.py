"""History event models.

A cycle's history is a list of immutable, timestamped records. Each kind
has its own model and the union is discriminated on ``type``, so fields
belonging to one kind (``pricePerLiter`` on a refuel, ``origin`` on a
trip) are rejected on every other kind.

Records written before ids were introduced carry no ``id``; one is
generated on load. ``seq`` is the per-cycle insertion sequence and is
filled in by :class:`autonomia.models.cycle.Cycle` when missing.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from autonomia.models._base import AutonomiaBaseModel, Timestamp, new_id


class EventKind(StrEnum):
    START = "start"
    CHECKPOINT = "checkpoint"
    TRIP = "trip"
    REFUEL = "refuel"
    CONSUMPTION = "consumption"
    FINISH = "finish"


class _EventBase(AutonomiaBaseModel):
    id: str = Field(default_factory=new_id)
    value: float
    date: Timestamp
    seq: int | None = None

    @property
    def kind(self) -> EventKind:
        return EventKind(self.type)  # type: ignore[attr-defined]


class StartEvent(_EventBase):
    """Cycle creation. ``value`` is the odometer reading at creation."""

    type: Literal["start"] = "start"


class CheckpointEvent(_EventBase):
    """Absolute odometer reading."""

    type: Literal["checkpoint"] = "checkpoint"


class TripEvent(_EventBase):
    """Distance driven, added to the running mileage."""

    type: Literal["trip"] = "trip"
    origin: str | None = None
    destination: str | None = None


class RefuelEvent(_EventBase):
    """Fuel added, in litres.

    ``price_per_liter`` and ``discount`` (total, not per litre) are
    informational and never affect recomputation.
    """

    type: Literal["refuel"] = "refuel"
    price_per_liter: float | None = None
    discount: float | None = None

    @property
    def total_cost(self) -> float | None:
        if self.price_per_liter is None:
            return None
        return self.value * self.price_per_liter - (self.discount or 0.0)


class ConsumptionEvent(_EventBase):
    """Newly declared consumption rate in km per litre."""

    type: Literal["consumption"] = "consumption"


class FinishEvent(_EventBase):
    """Cycle finished. ``value`` is the odometer reading at finish time."""

    type: Literal["finish"] = "finish"


HistoryEvent = Annotated[
    StartEvent | CheckpointEvent | TripEvent | RefuelEvent | ConsumptionEvent | FinishEvent,
    Field(discriminator="type"),
]

EVENT_MODELS: dict[EventKind, type[_EventBase]] = {
    EventKind.START: StartEvent,
    EventKind.CHECKPOINT: CheckpointEvent,
    EventKind.TRIP: TripEvent,
    EventKind.REFUEL: RefuelEvent,
    EventKind.CONSUMPTION: ConsumptionEvent,
    EventKind.FINISH: FinishEvent,
}

_EVENT_ADAPTER: TypeAdapter[HistoryEvent] = TypeAdapter(HistoryEvent)


def parse_event(data: Any) -> HistoryEvent:
    """Validate a stored event dict (camelCase or snake_case) into its model."""
    return _EVENT_ADAPTER.validate_python(data)
