"""Cycle lifecycle operations.

Appends update derived fields incrementally with the reducer's fold step;
an append dated before existing events re-runs the full reducer instead.
Edits and deletions re-run the full reducer over the updated history.
Every accepted mutation is validated into a new frozen :class:`Cycle`
before it replaces the stored one, so a rejected operation commits
nothing.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from autonomia.config import AutonomiaConfig
from autonomia.exceptions import (
    AutonomiaValidationError,
    CheckpointRegressionError,
    CycleFinishedError,
    EventNotFoundError,
    InvalidAmountError,
    StorageError,
)
from autonomia.models._base import utcnow
from autonomia.models.cycle import Autonomy, Cycle, CycleReport, CycleStatus
from autonomia.models.history import (
    EVENT_MODELS,
    CheckpointEvent,
    ConsumptionEvent,
    EventKind,
    FinishEvent,
    HistoryEvent,
    RefuelEvent,
    StartEvent,
    TripEvent,
)
from autonomia.models.route import Route
from autonomia.state.reducer import event_sort_key, fold_event, last_consumption, recompute
from autonomia.state.store import AutonomiaStore

_logger = logging.getLogger(__name__)

DateInput = datetime | str | None


def _require_finite(value: float, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(f"{field} must be a number, got {value!r}", field=field) from exc
    if not math.isfinite(number):
        raise InvalidAmountError(f"{field} must be finite, got {value!r}", field=field)
    return number


def _require_positive(value: float, field: str) -> float:
    number = _require_finite(value, field)
    if number <= 0:
        raise InvalidAmountError(f"{field} must be greater than zero, got {number}", field=field)
    return number


def _require_non_negative(value: float, field: str) -> float:
    number = _require_finite(value, field)
    if number < 0:
        raise InvalidAmountError(f"{field} must not be negative, got {number}", field=field)
    return number


def _validate_event_value(kind: EventKind, value: float) -> float:
    if kind in (EventKind.TRIP, EventKind.REFUEL, EventKind.CONSUMPTION):
        return _require_positive(value, "value")
    return _require_non_negative(value, "value")


def _validate_refuel_extras(price_per_liter: float | None, discount: float | None) -> None:
    if price_per_liter is not None:
        _require_positive(price_per_liter, "price_per_liter")
    if discount is not None:
        _require_non_negative(discount, "discount")


class CycleService:
    """Orchestrates cycle mutations against an explicit store."""

    def __init__(self, store: AutonomiaStore, config: AutonomiaConfig | None = None) -> None:
        self._store = store
        self._config = config or AutonomiaConfig()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cycle(self, cycle_id: str) -> Cycle:
        return self._store.get_cycle(cycle_id)

    def list_cycles(self, *, owner_id: str | None = None, status: CycleStatus | None = None) -> list[Cycle]:
        cycles = self._store.cycles()
        if owner_id is not None:
            cycles = [c for c in cycles if c.owner_id == owner_id]
        if status is not None:
            cycles = [c for c in cycles if c.status == status]
        return cycles

    def active_cycles(self, *, owner_id: str | None = None) -> list[Cycle]:
        return self.list_cycles(owner_id=owner_id, status=CycleStatus.ACTIVE)

    def finished_cycles(self, *, owner_id: str | None = None) -> list[Cycle]:
        return self.list_cycles(owner_id=owner_id, status=CycleStatus.FINISHED)

    def autonomy(self, cycle_id: str) -> Autonomy:
        return self._store.get_cycle(cycle_id).autonomy()

    def report(self, cycle_id: str) -> CycleReport:
        return CycleReport.for_cycle(self._store.get_cycle(cycle_id))

    # ------------------------------------------------------------------
    # Creation / removal
    # ------------------------------------------------------------------

    def create_cycle(
        self,
        name: str,
        start_date: DateInput,
        initial_mileage: float,
        *,
        owner_id: str | None = None,
        initial_fuel: float | None = None,
    ) -> Cycle:
        """Create an active cycle with its single ``start`` event.

        ``owner_id`` defaults to the store's current user. A positive
        ``initial_fuel`` is recorded as an unpriced refuel at the start date.
        """
        if not name or not name.strip():
            raise AutonomiaValidationError("name must be non-empty", field="name")
        mileage = _require_non_negative(initial_mileage, "initial_mileage")
        fuel = _require_non_negative(initial_fuel, "initial_fuel") if initial_fuel is not None else 0.0
        when = start_date if start_date is not None else utcnow()

        history: list[dict[str, Any]] = [{"type": EventKind.START.value, "value": mileage, "date": when, "seq": 0}]
        if fuel > 0:
            history.append({"type": EventKind.REFUEL.value, "value": fuel, "date": when, "seq": 1})

        try:
            cycle = Cycle.model_validate(
                {
                    "owner_id": owner_id if owner_id is not None else self._store.current_user_id,
                    "name": name,
                    "start_date": when,
                    "initial_mileage": mileage,
                    "current_mileage": mileage,
                    "fuel_amount": fuel,
                    "history": history,
                    "status": CycleStatus.ACTIVE,
                }
            )
        except ValidationError as exc:
            raise AutonomiaValidationError(f"invalid cycle: {exc}") from exc

        self._store.put_cycle(cycle)
        try:
            self._store.save()
        except StorageError:
            self._store.remove_cycle(cycle.id)
            raise
        _logger.info("Created cycle %s (%r) at %.1f km", cycle.id, cycle.name, mileage)
        return cycle

    def delete_cycle(self, cycle_id: str) -> None:
        cycle = self._store.remove_cycle(cycle_id)
        try:
            self._store.save()
        except StorageError:
            self._store.put_cycle(cycle)
            raise
        _logger.info("Deleted cycle %s (%r)", cycle.id, cycle.name)

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    def add_checkpoint(self, cycle_id: str, mileage: float, date: DateInput = None) -> Cycle:
        """Record an absolute odometer reading above the current mileage."""
        cycle = self._active_cycle(cycle_id)
        value = _require_finite(mileage, "mileage")
        if value <= cycle.current_mileage:
            _logger.warning("Rejected checkpoint %.1f on cycle %s (current %.1f)", value, cycle_id, cycle.current_mileage)
            raise CheckpointRegressionError(value, cycle.current_mileage)
        return self._append(cycle, CheckpointEvent, value, date)

    def add_trip(
        self,
        cycle_id: str,
        distance: float,
        date: DateInput = None,
        *,
        origin: str | None = None,
        destination: str | None = None,
    ) -> Cycle:
        """Record a driven distance, added to the running mileage."""
        cycle = self._active_cycle(cycle_id)
        value = _require_positive(distance, "distance")
        return self._append(cycle, TripEvent, value, date, origin=origin, destination=destination)

    def add_route_trip(self, cycle_id: str, route: Route, date: DateInput = None) -> Cycle:
        """Record a trip from a directions lookup (metres converted to km)."""
        return self.add_trip(
            cycle_id,
            route.distance_km,
            date,
            origin=route.origin,
            destination=route.destination,
        )

    def refuel(
        self,
        cycle_id: str,
        litres: float,
        date: DateInput = None,
        *,
        price_per_liter: float | None = None,
        discount: float | None = None,
    ) -> Cycle:
        cycle = self._active_cycle(cycle_id)
        value = _require_positive(litres, "litres")
        _validate_refuel_extras(price_per_liter, discount)
        return self._append(cycle, RefuelEvent, value, date, price_per_liter=price_per_liter, discount=discount)

    def update_consumption(self, cycle_id: str, km_per_liter: float, date: DateInput = None) -> Cycle:
        cycle = self._active_cycle(cycle_id)
        value = _require_positive(km_per_liter, "consumption")
        return self._append(cycle, ConsumptionEvent, value, date)

    def finish_cycle(self, cycle_id: str, date: DateInput = None) -> Cycle:
        """Append a ``finish`` event at the current mileage and close the cycle."""
        cycle = self._active_cycle(cycle_id)
        finished = self._append(cycle, FinishEvent, cycle.current_mileage, date, status=CycleStatus.FINISHED)
        _logger.info("Finished cycle %s at %.1f km", cycle_id, finished.current_mileage)
        return finished

    # ------------------------------------------------------------------
    # Edits / deletions
    # ------------------------------------------------------------------

    def edit_event(
        self,
        cycle_id: str,
        event_id: str,
        *,
        value: float | None = None,
        date: DateInput = None,
        **extra: Any,
    ) -> Cycle:
        """Change an event's value, date or kind-specific fields.

        The event keeps its id and kind. The cycle's derived state is then
        rebuilt with the reducer.
        """
        cycle = self._editable_cycle(cycle_id)
        event = self._find_event(cycle, event_id)
        if "type" in extra or "id" in extra:
            raise AutonomiaValidationError("event id and type cannot be edited", field="type")

        data = event.model_dump()
        if value is not None:
            data["value"] = _validate_event_value(event.kind, value)
        if date is not None:
            data["date"] = date
        if isinstance(event, RefuelEvent):
            _validate_refuel_extras(extra.get("price_per_liter"), extra.get("discount"))
        data.update(extra)

        try:
            edited = EVENT_MODELS[event.kind].model_validate(data)
        except ValidationError as exc:
            raise AutonomiaValidationError(f"invalid {event.kind} event: {exc}") from exc

        history = [edited if e.id == event_id else e for e in cycle.history]
        changes: dict[str, Any] = {}
        if isinstance(edited, StartEvent):
            changes["start_date"] = edited.date
        updated = self._recompute(cycle, history, **changes)
        _logger.info("Edited %s event %s on cycle %s", event.kind, event_id, cycle_id)
        return updated

    def delete_event(self, cycle_id: str, event_id: str) -> Cycle:
        """Remove an event and rebuild derived state.

        The ``start`` event cannot be removed. Removing the ``finish``
        event reopens the cycle.
        """
        cycle = self._editable_cycle(cycle_id)
        event = self._find_event(cycle, event_id)
        if isinstance(event, StartEvent):
            raise AutonomiaValidationError("the start event cannot be deleted", field="event_id")

        history = [e for e in cycle.history if e.id != event_id]
        updated = self._recompute(cycle, history)
        _logger.info("Deleted %s event %s from cycle %s", event.kind, event_id, cycle_id)
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _active_cycle(self, cycle_id: str) -> Cycle:
        cycle = self._store.get_cycle(cycle_id)
        if cycle.is_finished:
            raise CycleFinishedError(cycle_id)
        return cycle

    def _editable_cycle(self, cycle_id: str) -> Cycle:
        cycle = self._store.get_cycle(cycle_id)
        if cycle.is_finished and self._config.lock_finished_cycles:
            raise CycleFinishedError(cycle_id)
        return cycle

    @staticmethod
    def _find_event(cycle: Cycle, event_id: str) -> HistoryEvent:
        event = cycle.find_event(event_id)
        if event is None:
            raise EventNotFoundError(cycle.id, event_id)
        return event

    def _append(
        self,
        cycle: Cycle,
        event_cls: type[Any],
        value: float,
        date: DateInput,
        *,
        status: CycleStatus | None = None,
        **fields: Any,
    ) -> Cycle:
        try:
            event: HistoryEvent = event_cls(
                value=value,
                date=date if date is not None else utcnow(),
                seq=cycle.next_seq,
                **fields,
            )
        except ValidationError as exc:
            raise AutonomiaValidationError(f"invalid event: {exc}") from exc

        if cycle.history and event_sort_key(event) < max(event_sort_key(e) for e in cycle.history):
            # Backdated append: refold the whole history.
            _logger.debug("Event %s on cycle %s is backdated; recomputing", event.id, cycle.id)
            return self._recompute(cycle, [*cycle.history, event])

        mileage, fuel = fold_event(cycle.current_mileage, cycle.fuel_amount, event)
        update: dict[str, Any] = {
            "history": [*cycle.history, event],
            "current_mileage": mileage,
            "fuel_amount": fuel,
        }
        if isinstance(event, ConsumptionEvent):
            update["consumption"] = event.value
        if status is not None:
            update["status"] = status
        return self._commit(cycle, update)

    def _recompute(self, cycle: Cycle, history: list[HistoryEvent], **changes: Any) -> Cycle:
        result = recompute(cycle.initial_mileage, history)
        ordered = list(result.ordered_events)
        if ordered and not isinstance(ordered[0], StartEvent):
            raise AutonomiaValidationError(
                f"{ordered[0].kind} event {ordered[0].id} would precede the start event", field="date"
            )
        if result.current_mileage < cycle.initial_mileage:
            raise AutonomiaValidationError(
                f"history would put mileage at {result.current_mileage}, below the initial {cycle.initial_mileage}",
                field="value",
            )
        finished = any(isinstance(e, FinishEvent) for e in ordered)
        return self._commit(
            cycle,
            {
                "history": ordered,
                "current_mileage": result.current_mileage,
                "fuel_amount": result.fuel_amount,
                "consumption": last_consumption(ordered),
                "status": CycleStatus.FINISHED if finished else CycleStatus.ACTIVE,
                **changes,
            },
        )

    def _commit(self, cycle: Cycle, update: dict[str, Any]) -> Cycle:
        data = {name: getattr(cycle, name) for name in Cycle.model_fields}
        data.update(update)
        try:
            updated = Cycle.model_validate(data)
        except ValidationError as exc:
            raise AutonomiaValidationError(f"invalid cycle state: {exc}") from exc
        self._store.put_cycle(updated)
        try:
            self._store.save()
        except StorageError:
            self._store.put_cycle(cycle)
            raise
        return updated
