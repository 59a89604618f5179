"""Library configuration for autonomia."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from autonomia.exceptions import AutonomiaConfigError

DEFAULT_STORE_PATH = Path("~/.autonomia/store.json")
DEFAULT_DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class AutonomiaConfig:
    """Library configuration.

    Parameters
    ----------
    store_path : Path
        JSON document holding cycles, users and the current session.
        ``~`` is expanded when the store is opened.
    directions_api_key : str or None
        API key for the directions service. Route lookups are disabled
        when unset.
    directions_base_url : str
        Directions endpoint. Defaults to Google's JSON directions API.
    directions_timeout : float
        Total request timeout in seconds for a route lookup.
    directions_language : str
        Language code for turn-by-turn instructions.
    lock_finished_cycles : bool
        Refuse edits and deletions on finished cycles. When ``False``
        (the default) such edits are accepted and re-run recomputation.
    scrypt_n : int
        scrypt CPU/memory cost used for new password hashes.
    """

    store_path: Path = DEFAULT_STORE_PATH
    directions_api_key: str | None = None
    directions_base_url: str = DEFAULT_DIRECTIONS_URL
    directions_timeout: float = 10.0
    directions_language: str = "pt-BR"
    lock_finished_cycles: bool = False
    scrypt_n: int = 2**14

    def __post_init__(self) -> None:
        if self.directions_timeout <= 0:
            raise AutonomiaConfigError("directions_timeout must be positive")
        if self.scrypt_n < 2 or self.scrypt_n & (self.scrypt_n - 1):
            raise AutonomiaConfigError("scrypt_n must be a power of two greater than 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> AutonomiaConfig:
        """Create configuration from ``AUTONOMIA_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        store_env = env.get("AUTONOMIA_STORE_PATH")
        if store_env:
            config_kwargs["store_path"] = Path(store_env)

        _ENV_STR_MAP = {
            "AUTONOMIA_DIRECTIONS_API_KEY": "directions_api_key",
            "AUTONOMIA_DIRECTIONS_BASE_URL": "directions_base_url",
            "AUTONOMIA_DIRECTIONS_LANGUAGE": "directions_language",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        timeout_env = env.get("AUTONOMIA_DIRECTIONS_TIMEOUT")
        if timeout_env is not None and "directions_timeout" not in overrides:
            try:
                config_kwargs["directions_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise AutonomiaConfigError(f"AUTONOMIA_DIRECTIONS_TIMEOUT is not a number: {timeout_env!r}") from exc

        if "lock_finished_cycles" not in overrides:
            config_kwargs["lock_finished_cycles"] = _env_bool(env.get("AUTONOMIA_LOCK_FINISHED_CYCLES"), False)

        config_kwargs.update(overrides)
        if isinstance(config_kwargs.get("store_path"), str):
            config_kwargs["store_path"] = Path(config_kwargs["store_path"])

        return cls(**config_kwargs)
