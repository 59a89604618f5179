"""Custom exception hierarchy for autonomia."""

from __future__ import annotations


class AutonomiaError(Exception):
    """Base exception for all autonomia errors."""


class AutonomiaConfigError(AutonomiaError):
    """Invalid or missing configuration."""


class AutonomiaValidationError(AutonomiaError):
    """User input rejected before any state was changed."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class CheckpointRegressionError(AutonomiaValidationError):
    """Checkpoint odometer reading is not above the current mileage."""

    def __init__(self, mileage: float, current_mileage: float) -> None:
        self.mileage = mileage
        self.current_mileage = current_mileage
        super().__init__(
            f"new mileage {mileage} must be greater than current mileage {current_mileage}",
            field="mileage",
        )


class InvalidAmountError(AutonomiaValidationError):
    """A numeric amount (fuel, distance, price, consumption) is out of range."""


class DuplicateUsernameError(AutonomiaValidationError):
    """Username already registered (comparison is case-insensitive)."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"username {username!r} is already taken", field="username")


class CycleNotFoundError(AutonomiaError):
    """No cycle with the requested id."""

    def __init__(self, cycle_id: str) -> None:
        self.cycle_id = cycle_id
        super().__init__(f"cycle {cycle_id!r} not found")


class EventNotFoundError(AutonomiaError):
    """No history event with the requested id in the cycle."""

    def __init__(self, cycle_id: str, event_id: str) -> None:
        self.cycle_id = cycle_id
        self.event_id = event_id
        super().__init__(f"event {event_id!r} not found in cycle {cycle_id!r}")


class CycleFinishedError(AutonomiaError):
    """Mutation refused because the cycle is finished."""

    def __init__(self, cycle_id: str) -> None:
        self.cycle_id = cycle_id
        super().__init__(f"cycle {cycle_id!r} is finished")


class AuthenticationError(AutonomiaError):
    """Login rejected.

    The message never says whether the username or the password was wrong.
    """


class StorageError(AutonomiaError):
    """Backing store could not be read or written."""


class AutonomiaTransportError(AutonomiaError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class DirectionsError(AutonomiaError):
    """Directions service answered but returned no usable route."""

    def __init__(self, message: str, *, status: str = "") -> None:
        self.status = status
        super().__init__(message)
