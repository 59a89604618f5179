"""Tests for record models: event union, cycle invariants, derived figures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from autonomia.models._base import parse_timestamp
from autonomia.models.cycle import Autonomy, Cycle, CycleReport, CycleStatus
from autonomia.models.history import (
    CheckpointEvent,
    EventKind,
    FinishEvent,
    RefuelEvent,
    StartEvent,
    TripEvent,
    parse_event,
)

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


# ------------------------------------------------------------------
# Timestamps
# ------------------------------------------------------------------


class TestParseTimestamp:
    def test_iso_with_z_suffix(self) -> None:
        assert parse_timestamp("2026-01-01T08:00:00.000Z") == T0

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp(datetime(2026, 1, 1, 8, 0)) == T0

    def test_epoch_seconds_and_milliseconds(self) -> None:
        seconds = int(T0.timestamp())
        assert parse_timestamp(seconds) == T0
        assert parse_timestamp(seconds * 1000) == T0

    @pytest.mark.parametrize("value", [float("inf"), float("nan"), 10**400])
    def test_out_of_range_epoch_rejected(self, value: object) -> None:
        with pytest.raises(ValueError):
            parse_timestamp(value)
        with pytest.raises(ValidationError):
            parse_event({"type": "trip", "value": 1, "date": value})

    def test_offset_normalised_to_utc(self) -> None:
        parsed = parse_timestamp("2026-01-01T05:00:00-03:00")
        assert parsed == T0
        assert parsed.tzinfo == UTC

    def test_garbage_passes_through_for_pydantic_to_reject(self) -> None:
        assert parse_timestamp("not a date") == "not a date"
        with pytest.raises(ValidationError):
            parse_event({"type": "trip", "value": 1, "date": "not a date"})


# ------------------------------------------------------------------
# History events
# ------------------------------------------------------------------


class TestHistoryEvent:
    def test_discriminates_on_type(self) -> None:
        event = parse_event(
            {"id": "e1", "type": "refuel", "value": 30, "date": "2026-01-01T08:00:00Z", "pricePerLiter": 5.89}
        )
        assert isinstance(event, RefuelEvent)
        assert event.kind == EventKind.REFUEL
        assert event.price_per_liter == 5.89

    def test_kind_specific_fields_rejected_on_other_kinds(self) -> None:
        with pytest.raises(ValidationError):
            parse_event({"type": "checkpoint", "value": 10, "date": T0, "pricePerLiter": 5.0})
        with pytest.raises(ValidationError):
            parse_event({"type": "refuel", "value": 10, "date": T0, "origin": "home"})

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_event({"type": "teleport", "value": 10, "date": T0})

    def test_legacy_event_without_id_gets_one(self) -> None:
        first = parse_event({"type": "start", "value": 100, "date": T0})
        second = parse_event({"type": "start", "value": 100, "date": T0})
        assert first.id
        assert first.id != second.id

    def test_events_are_frozen(self) -> None:
        event = TripEvent(value=10, date=T0)
        with pytest.raises(ValidationError):
            event.value = 20  # type: ignore[misc]

    def test_storage_shape_is_camel_case(self) -> None:
        event = RefuelEvent(id="r1", value=20, date=T0, price_per_liter=5.0, seq=3)
        stored = event.to_storage()
        assert stored == {
            "id": "r1",
            "type": "refuel",
            "value": 20.0,
            "date": "2026-01-01T08:00:00Z",
            "seq": 3,
            "pricePerLiter": 5.0,
        }

    def test_refuel_total_cost(self) -> None:
        assert RefuelEvent(value=20, date=T0, price_per_liter=5.0, discount=2.0).total_cost == 98.0
        assert RefuelEvent(value=20, date=T0).total_cost is None


# ------------------------------------------------------------------
# Cycle
# ------------------------------------------------------------------


def _cycle(**overrides: object) -> Cycle:
    data: dict[str, object] = {
        "name": "Viagem para a praia",
        "start_date": T0,
        "initial_mileage": 50_000,
        "history": [StartEvent(value=50_000, date=T0)],
    }
    data.update(overrides)
    return Cycle.model_validate(data)


class TestCycle:
    def test_current_mileage_defaults_to_initial(self) -> None:
        cycle = _cycle()
        assert cycle.current_mileage == 50_000
        assert cycle.status == CycleStatus.ACTIVE
        assert cycle.fuel_amount == 0

    def test_current_mileage_below_initial_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _cycle(current_mileage=49_999)

    def test_negative_fuel_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _cycle(fuel_amount=-1)

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _cycle(name="   ")

    def test_legacy_history_numbered_by_position(self) -> None:
        cycle = Cycle.model_validate(
            {
                "id": "c1",
                "name": "Legacy",
                "startDate": "2026-01-01T08:00:00.000Z",
                "initialMileage": 100,
                "currentMileage": 150,
                "fuelAmount": 0,
                "consumption": 0,
                "status": "active",
                "history": [
                    {"type": "start", "value": 100, "date": "2026-01-01T08:00:00.000Z"},
                    {"id": "t1", "type": "trip", "value": 50, "date": "2026-01-01T09:00:00.000Z"},
                ],
            }
        )
        assert [e.seq for e in cycle.history] == [0, 1]
        assert cycle.owner_id is None
        assert cycle.next_seq == 2
        assert cycle.find_event("t1") is cycle.history[1]
        assert cycle.find_event("missing") is None


# ------------------------------------------------------------------
# Autonomy / report
# ------------------------------------------------------------------


class TestAutonomy:
    def test_not_ready_without_fuel_or_consumption(self) -> None:
        autonomy = Autonomy.for_cycle(_cycle(current_mileage=50_100, fuel_amount=30))
        assert autonomy.ready is False
        assert autonomy.remaining_km == 0
        assert autonomy.max_reachable_km == 50_100

    def test_ready(self) -> None:
        cycle = _cycle(current_mileage=50_100, fuel_amount=40, consumption=12)
        autonomy = cycle.autonomy()
        assert autonomy.ready is True
        assert autonomy.total_autonomy_km == 480
        assert autonomy.remaining_km == 380
        assert autonomy.max_reachable_km == 50_480

    def test_remaining_never_negative(self) -> None:
        autonomy = _cycle(current_mileage=51_000, fuel_amount=10, consumption=10).autonomy()
        assert autonomy.remaining_km == 0


def test_cycle_report_figures() -> None:
    history = [
        StartEvent(value=100, date=T0),
        RefuelEvent(value=20, date=T0 + timedelta(hours=1), price_per_liter=5.0, discount=2.0),
        CheckpointEvent(value=300, date=T0 + timedelta(hours=2)),
        RefuelEvent(value=15, date=T0 + timedelta(hours=3), price_per_liter=6.0),
        RefuelEvent(value=5, date=T0 + timedelta(hours=4)),
        FinishEvent(value=500, date=T0 + timedelta(days=2)),
    ]
    cycle = Cycle.model_validate(
        {
            "name": "Report",
            "start_date": T0,
            "initial_mileage": 100,
            "current_mileage": 500,
            "fuel_amount": 40,
            "consumption": 11,
            "history": history,
            "status": CycleStatus.FINISHED,
        }
    )

    report = CycleReport.for_cycle(cycle)
    assert report.distance_km == 400
    assert report.fuel_litres == 40
    assert report.total_cost == pytest.approx(188.0)
    assert report.average_price_per_liter == pytest.approx(188.0 / 35)
    assert report.average_km_per_liter == pytest.approx(10.0)
    assert report.duration == timedelta(days=2)
    assert report.event_counts[EventKind.REFUEL] == 3
    assert report.event_counts[EventKind.FINISH] == 1
