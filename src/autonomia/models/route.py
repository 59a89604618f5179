"""Directions lookup result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RouteStep(BaseModel):
    """One turn-by-turn instruction."""

    model_config = ConfigDict(frozen=True)

    instruction: str
    distance_m: float | None = None
    duration_s: float | None = None


class Route(BaseModel):
    """A driving route between two places.

    Parameters
    ----------
    origin : str
        Origin as requested (address or ``"lat,lng"``).
    destination : str
        Destination as requested.
    distance_m : float
        Total distance in metres.
    distance_text : str
        Provider-formatted distance (e.g. ``"12,3 km"``).
    duration_s : float
        Estimated duration in seconds.
    duration_text : str
        Provider-formatted duration.
    steps : list[RouteStep]
        Turn-by-turn instructions with markup removed.
    raw : dict
        First route leg as received.
    """

    model_config = ConfigDict(frozen=True)

    origin: str
    destination: str
    distance_m: float
    distance_text: str = ""
    duration_s: float
    duration_text: str = ""
    steps: list[RouteStep] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def instructions(self) -> list[str]:
        return [step.instruction for step in self.steps]
