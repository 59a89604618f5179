"""Cycle model and the figures derived from it."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autonomia.models._base import AutonomiaBaseModel, Timestamp, new_id
from autonomia.models.history import EventKind, FinishEvent, HistoryEvent, RefuelEvent


class CycleStatus(StrEnum):
    ACTIVE = "active"
    FINISHED = "finished"


class Cycle(AutonomiaBaseModel):
    """A tracked vehicle-usage period.

    ``initial_mileage`` and ``name`` never change after creation.
    ``start_date`` follows the date of the ``start`` event, which always
    sorts first in the history. ``current_mileage`` and ``fuel_amount`` are derived from the
    history and must only be rewritten from a reducer result once an event
    has been edited or deleted. ``consumption`` is the last declared rate
    in km per litre (``0`` until one is declared).
    """

    id: str = Field(default_factory=new_id)
    owner_id: str | None = None
    name: str
    start_date: Timestamp
    initial_mileage: float = Field(ge=0)
    current_mileage: float
    fuel_amount: float = Field(default=0.0, ge=0)
    consumption: float = Field(default=0.0, ge=0)
    history: list[HistoryEvent] = Field(default_factory=list)
    status: CycleStatus = CycleStatus.ACTIVE

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, values: Any) -> Any:
        """Default ``current_mileage`` and number legacy events without ``seq``."""
        if not isinstance(values, dict):
            return values
        working = dict(values)
        if "currentMileage" not in working and "current_mileage" not in working:
            initial = working.get("initialMileage", working.get("initial_mileage"))
            if initial is not None:
                working["current_mileage"] = initial

        history = working.get("history")
        if isinstance(history, list):
            numbered: list[Any] = []
            for position, item in enumerate(history):
                if isinstance(item, dict) and item.get("seq") is None:
                    item = {**item, "seq": position}
                elif isinstance(item, AutonomiaBaseModel) and getattr(item, "seq", 0) is None:
                    item = item.model_copy(update={"seq": position})
                numbered.append(item)
            working["history"] = numbered
        return working

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name must be non-empty")
        return name

    @model_validator(mode="after")
    def _check_mileage(self) -> Cycle:
        if self.current_mileage < self.initial_mileage:
            raise ValueError(
                f"current mileage {self.current_mileage} is below initial mileage {self.initial_mileage}"
            )
        return self

    @property
    def is_finished(self) -> bool:
        return self.status == CycleStatus.FINISHED

    @property
    def driven_km(self) -> float:
        return self.current_mileage - self.initial_mileage

    @property
    def next_seq(self) -> int:
        return max((e.seq for e in self.history if e.seq is not None), default=-1) + 1

    def find_event(self, event_id: str) -> HistoryEvent | None:
        for event in self.history:
            if event.id == event_id:
                return event
        return None

    def autonomy(self) -> Autonomy:
        return Autonomy.for_cycle(self)


class Autonomy(BaseModel):
    """Remaining range estimate.

    Ready only once both fuel and a consumption rate are known. Total
    autonomy is ``fuel * consumption`` counted from the initial mileage.
    """

    model_config = ConfigDict(frozen=True)

    ready: bool
    remaining_km: float
    max_reachable_km: float
    total_autonomy_km: float

    @classmethod
    def for_cycle(cls, cycle: Cycle) -> Autonomy:
        if cycle.fuel_amount <= 0 or cycle.consumption <= 0:
            return cls(
                ready=False,
                remaining_km=0.0,
                max_reachable_km=cycle.current_mileage,
                total_autonomy_km=0.0,
            )
        total = cycle.fuel_amount * cycle.consumption
        return cls(
            ready=True,
            remaining_km=max(0.0, total - cycle.driven_km),
            max_reachable_km=cycle.initial_mileage + total,
            total_autonomy_km=total,
        )


class CycleReport(BaseModel):
    """Summary figures for a cycle, finished or not."""

    model_config = ConfigDict(frozen=True)

    cycle_id: str
    name: str
    status: CycleStatus
    start_date: datetime
    end_date: datetime | None
    duration: timedelta | None
    initial_mileage: float
    final_mileage: float
    distance_km: float
    fuel_litres: float
    total_cost: float
    average_price_per_liter: float | None
    average_km_per_liter: float | None
    declared_km_per_liter: float
    event_counts: dict[EventKind, int]

    @classmethod
    def for_cycle(cls, cycle: Cycle) -> CycleReport:
        priced = [e for e in cycle.history if isinstance(e, RefuelEvent) and e.price_per_liter is not None]
        total_cost = sum(e.total_cost or 0.0 for e in priced)
        priced_litres = sum(e.value for e in priced)

        finish = next((e for e in reversed(cycle.history) if isinstance(e, FinishEvent)), None)
        end_date = finish.date if finish is not None else None

        distance = cycle.driven_km
        return cls(
            cycle_id=cycle.id,
            name=cycle.name,
            status=cycle.status,
            start_date=cycle.start_date,
            end_date=end_date,
            duration=(end_date - cycle.start_date) if end_date is not None else None,
            initial_mileage=cycle.initial_mileage,
            final_mileage=cycle.current_mileage,
            distance_km=distance,
            fuel_litres=cycle.fuel_amount,
            total_cost=total_cost,
            average_price_per_liter=(total_cost / priced_litres) if priced_litres > 0 else None,
            average_km_per_liter=(distance / cycle.fuel_amount) if cycle.fuel_amount > 0 else None,
            declared_km_per_liter=cycle.consumption,
            event_counts=dict(Counter(e.kind for e in cycle.history)),
        )
