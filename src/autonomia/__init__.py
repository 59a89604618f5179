"""autonomia - vehicle fuel-cycle tracking with history-driven recomputation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("autonomia")
except PackageNotFoundError:
    __version__ = "0+local"

from autonomia.accounts import AccountService
from autonomia.config import AutonomiaConfig
from autonomia.cycles import CycleService
from autonomia.directions import DirectionsClient
from autonomia.exceptions import (
    AuthenticationError,
    AutonomiaConfigError,
    AutonomiaError,
    AutonomiaTransportError,
    AutonomiaValidationError,
    CheckpointRegressionError,
    CycleFinishedError,
    CycleNotFoundError,
    DirectionsError,
    DuplicateUsernameError,
    EventNotFoundError,
    InvalidAmountError,
    StorageError,
)
from autonomia.models import (
    Autonomy,
    CheckpointEvent,
    ConsumptionEvent,
    Cycle,
    CycleReport,
    CycleStatus,
    EventKind,
    FinishEvent,
    HistoryEvent,
    RefuelEvent,
    Route,
    RouteStep,
    StartEvent,
    TripEvent,
    User,
)
from autonomia.state.backends import JsonFileBackend, MemoryBackend
from autonomia.state.reducer import Recomputation, recompute
from autonomia.state.store import AutonomiaStore

__all__ = [
    "__version__",
    "AccountService",
    "AuthenticationError",
    "Autonomy",
    "AutonomiaConfig",
    "AutonomiaConfigError",
    "AutonomiaError",
    "AutonomiaStore",
    "AutonomiaTransportError",
    "AutonomiaValidationError",
    "CheckpointEvent",
    "CheckpointRegressionError",
    "ConsumptionEvent",
    "Cycle",
    "CycleFinishedError",
    "CycleNotFoundError",
    "CycleReport",
    "CycleService",
    "CycleStatus",
    "DirectionsClient",
    "DirectionsError",
    "DuplicateUsernameError",
    "EventKind",
    "EventNotFoundError",
    "FinishEvent",
    "HistoryEvent",
    "InvalidAmountError",
    "JsonFileBackend",
    "MemoryBackend",
    "Recomputation",
    "RefuelEvent",
    "Route",
    "RouteStep",
    "StartEvent",
    "StorageError",
    "TripEvent",
    "User",
    "recompute",
]
