"""Data models for autonomia records."""

from autonomia.models._base import AutonomiaBaseModel, Timestamp, new_id, parse_timestamp
from autonomia.models.cycle import Autonomy, Cycle, CycleReport, CycleStatus
from autonomia.models.history import (
    CheckpointEvent,
    ConsumptionEvent,
    EventKind,
    FinishEvent,
    HistoryEvent,
    RefuelEvent,
    StartEvent,
    TripEvent,
    parse_event,
)
from autonomia.models.route import Route, RouteStep
from autonomia.models.user import User

__all__ = [
    "AutonomiaBaseModel",
    "Autonomy",
    "CheckpointEvent",
    "ConsumptionEvent",
    "Cycle",
    "CycleReport",
    "CycleStatus",
    "EventKind",
    "FinishEvent",
    "HistoryEvent",
    "RefuelEvent",
    "Route",
    "RouteStep",
    "StartEvent",
    "Timestamp",
    "TripEvent",
    "User",
    "new_id",
    "parse_event",
    "parse_timestamp",
]
