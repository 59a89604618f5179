from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from autonomia.config import AutonomiaConfig
from autonomia.cycles import CycleService
from autonomia.exceptions import CycleNotFoundError, StorageError
from autonomia.models.history import StartEvent, TripEvent
from autonomia.models.user import User
from autonomia.state.backends import JsonFileBackend, MemoryBackend
from autonomia.state.store import CURRENT_USER_KEY, CYCLES_KEY, USERS_KEY, AutonomiaStore

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

LEGACY_DOCUMENT = {
    CYCLES_KEY: [
        {
            "id": "2026-01-01T08:00:00.000Zabc1234",
            "name": "Viagem para a praia",
            "startDate": "2026-01-01T08:00:00.000Z",
            "initialMileage": 50000,
            "currentMileage": 50120,
            "fuelAmount": 30,
            "consumption": 12.5,
            "status": "active",
            "history": [
                {"type": "start", "value": 50000, "date": "2026-01-01T08:00:00.000Z"},
                {"type": "refuel", "value": 30, "date": "2026-01-01T08:30:00.000Z", "pricePerLiter": 5.89},
                {"type": "consumption", "value": 12.5, "date": "2026-01-01T08:40:00.000Z"},
                {"type": "trip", "value": 120, "date": "2026-01-01T11:00:00.000Z"},
            ],
        }
    ]
}


def test_missing_file_loads_empty(tmp_path: Path) -> None:
    store = AutonomiaStore(JsonFileBackend(tmp_path / "nested" / "store.json"))
    store.load()

    assert store.loaded is True
    assert store.cycles() == []
    assert store.users() == []
    assert store.current_user_id is None


def test_round_trip_through_json_file(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = AutonomiaStore(JsonFileBackend(path))
    store.load()
    service = CycleService(store)
    cycle = service.create_cycle("Trabalho", T0, 100)
    service.refuel(cycle.id, 20, T0 + timedelta(hours=1), price_per_liter=5.89)
    saved = service.add_trip(cycle.id, 30, T0 + timedelta(hours=2), destination="Centro")

    reopened = AutonomiaStore.open(AutonomiaConfig(store_path=path))

    assert reopened.get_cycle(cycle.id) == saved
    document = json.loads(path.read_text(encoding="utf-8"))
    stored = document[CYCLES_KEY][0]
    assert stored["initialMileage"] == 100
    assert stored["currentMileage"] == 130
    assert stored["history"][1]["pricePerLiter"] == 5.89
    assert "price_per_liter" not in stored["history"][1]
    assert document[CURRENT_USER_KEY] is None


def test_legacy_document_loads(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text(json.dumps(LEGACY_DOCUMENT), encoding="utf-8")

    store = AutonomiaStore(JsonFileBackend(path))
    store.load()

    (cycle,) = store.cycles()
    assert cycle.owner_id is None
    assert cycle.current_mileage == 50120
    assert isinstance(cycle.history[0], StartEvent)
    assert isinstance(cycle.history[-1], TripEvent)
    assert all(event.id for event in cycle.history)
    assert [event.seq for event in cycle.history] == [0, 1, 2, 3]


def test_invalid_json_raises_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        AutonomiaStore(JsonFileBackend(path)).load()


def test_invalid_records_raise_storage_error() -> None:
    backend = MemoryBackend(
        {CYCLES_KEY: [{"name": "Bad", "startDate": "2026-01-01T08:00:00Z", "initialMileage": 100, "currentMileage": 50}]}
    )

    with pytest.raises(StorageError):
        AutonomiaStore(backend).load()


def test_non_list_section_raises_storage_error() -> None:
    with pytest.raises(StorageError):
        AutonomiaStore(MemoryBackend({USERS_KEY: {"id": "u1"}})).load()


def test_failed_load_keeps_previous_state() -> None:
    backend = MemoryBackend(LEGACY_DOCUMENT)
    store = AutonomiaStore(backend)
    store.load()

    backend.write({CYCLES_KEY: "broken"})
    with pytest.raises(StorageError):
        store.load()
    assert len(store.cycles()) == 1


def test_current_user_round_trip_and_unknown_user_dropped() -> None:
    user = User(id="u1", full_name="Ana Souza", username="Ana", email="ana@example.com", password_hash="h")
    backend = MemoryBackend()
    store = AutonomiaStore(backend)
    store.load()
    store.put_user(user)
    store.current_user_id = "u1"
    store.save()

    reloaded = AutonomiaStore(backend)
    reloaded.load()
    assert reloaded.current_user_id == "u1"
    assert reloaded.find_user("ANA") == user

    backend.write({USERS_KEY: [], CURRENT_USER_KEY: "u1"})
    reloaded.load()
    assert reloaded.current_user_id is None


def test_setting_unknown_current_user_rejected() -> None:
    store = AutonomiaStore(MemoryBackend())
    with pytest.raises(StorageError):
        store.current_user_id = "ghost"


def test_remove_cycle() -> None:
    store = AutonomiaStore(MemoryBackend(LEGACY_DOCUMENT))
    store.load()
    (cycle,) = store.cycles()

    assert store.remove_cycle(cycle.id) == cycle
    with pytest.raises(CycleNotFoundError):
        store.remove_cycle(cycle.id)


@pytest.mark.parametrize("start_date", ["Infinity", "-Infinity", "NaN", "1e20"])
def test_out_of_range_epoch_raises_storage_error(tmp_path: Path, start_date: str) -> None:
    path = tmp_path / "store.json"
    path.write_text(
        f'{{"{CYCLES_KEY}": [{{"name": "Bad", "startDate": {start_date}, "initialMileage": 100}}]}}',
        encoding="utf-8",
    )

    with pytest.raises(StorageError):
        AutonomiaStore(JsonFileBackend(path)).load()
