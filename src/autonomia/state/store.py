"""Explicit persisted store for cycles, users and the current session.

The store is passed by reference to the services that mutate it. It has
an explicit ``load()``/``save()`` lifecycle; services call ``save()``
synchronously after every accepted mutation.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from autonomia.config import AutonomiaConfig
from autonomia.exceptions import CycleNotFoundError, StorageError
from autonomia.models.cycle import Cycle
from autonomia.models.user import User, username_key
from autonomia.state.backends import JsonFileBackend, StorageBackend

_logger = logging.getLogger(__name__)

CYCLES_KEY = "autonomia-plus-cycles"
USERS_KEY = "autonomia-plus-users"
CURRENT_USER_KEY = "autonomia-plus-current-user"


class AutonomiaStore:
    """In-memory view of the persisted document.

    Cycles keep their insertion order. Records are frozen models, so
    callers replace a cycle with :meth:`put_cycle` instead of mutating it.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend
        self._cycles: dict[str, Cycle] = {}
        self._users: dict[str, User] = {}
        self._current_user_id: str | None = None
        self._loaded = False

    @classmethod
    def open(cls, config: AutonomiaConfig) -> AutonomiaStore:
        """Create a store over ``config.store_path`` and load it."""
        store = cls(JsonFileBackend(config.store_path))
        store.load()
        return store

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace in-memory state with the backend's document."""
        document = self._backend.read()
        try:
            cycles = [Cycle.model_validate(item) for item in _as_list(document.get(CYCLES_KEY), CYCLES_KEY)]
            users = [User.model_validate(item) for item in _as_list(document.get(USERS_KEY), USERS_KEY)]
        except ValidationError as exc:
            raise StorageError(f"Stored records are invalid: {exc}") from exc

        current = document.get(CURRENT_USER_KEY)
        if isinstance(current, dict):
            current = current.get("id")
        if current is not None and not isinstance(current, str):
            raise StorageError(f"{CURRENT_USER_KEY} must be a user id")

        self._cycles = {cycle.id: cycle for cycle in cycles}
        self._users = {user.id: user for user in users}
        self._current_user_id = current if current in self._users else None
        self._loaded = True
        _logger.debug("Loaded %d cycles and %d users", len(self._cycles), len(self._users))

    def save(self) -> None:
        """Write the full document to the backend."""
        document: dict[str, Any] = {
            CYCLES_KEY: [cycle.to_storage() for cycle in self._cycles.values()],
            USERS_KEY: [user.to_storage() for user in self._users.values()],
            CURRENT_USER_KEY: self._current_user_id,
        }
        self._backend.write(document)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def cycles(self) -> list[Cycle]:
        return list(self._cycles.values())

    def get_cycle(self, cycle_id: str) -> Cycle:
        cycle = self._cycles.get(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)
        return cycle

    def put_cycle(self, cycle: Cycle) -> None:
        self._cycles[cycle.id] = cycle

    def remove_cycle(self, cycle_id: str) -> Cycle:
        cycle = self._cycles.pop(cycle_id, None)
        if cycle is None:
            raise CycleNotFoundError(cycle_id)
        return cycle

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def users(self) -> list[User]:
        return list(self._users.values())

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def find_user(self, username: str) -> User | None:
        key = username_key(username)
        for user in self._users.values():
            if user.username_key == key:
                return user
        return None

    def put_user(self, user: User) -> None:
        self._users[user.id] = user

    @property
    def current_user_id(self) -> str | None:
        return self._current_user_id

    @current_user_id.setter
    def current_user_id(self, user_id: str | None) -> None:
        if user_id is not None and user_id not in self._users:
            raise StorageError(f"unknown user id {user_id!r}")
        self._current_user_id = user_id


def _as_list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise StorageError(f"{key} must be a list")
    return value
