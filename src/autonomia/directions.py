"""Async driving-directions lookup.

Speaks the Google Directions JSON API. The cycle core never depends on
this module; a looked-up :class:`Route` can be recorded as a trip with
:meth:`autonomia.cycles.CycleService.add_route_trip`.
"""

from __future__ import annotations

import html
import logging
import re
from types import TracebackType
from typing import Any

import aiohttp

from autonomia._transport import HttpTransport, Transport
from autonomia.config import AutonomiaConfig
from autonomia.exceptions import AutonomiaConfigError, DirectionsError
from autonomia.models.route import Route, RouteStep

_logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_LATLNG_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def strip_markup(text: str) -> str:
    """Remove HTML tags and entities from a provider instruction."""
    return _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text))).strip()


def normalize_place(place: str) -> str:
    """Return *place* with ``"lat, lng"`` pairs compacted to ``"lat,lng"``.

    Coordinates outside the valid latitude/longitude ranges are rejected.
    """
    text = place.strip()
    if not text:
        raise ValueError("place must be non-empty")
    match = _LATLNG_RE.match(text)
    if match is None:
        return text
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise ValueError(f"coordinates out of range: {text}")
    return f"{match.group(1)},{match.group(2)}"


def _value(section: Any) -> tuple[float | None, str]:
    if not isinstance(section, dict):
        return None, ""
    raw_value = section.get("value")
    number = float(raw_value) if isinstance(raw_value, (int, float)) else None
    return number, str(section.get("text") or "")


def parse_route(origin: str, destination: str, payload: dict[str, Any]) -> Route:
    """Parse a directions response into a :class:`Route` (first route, first leg)."""
    status = str(payload.get("status") or "")
    if status != "OK":
        message = payload.get("error_message") or f"no route found ({status or 'missing status'})"
        raise DirectionsError(str(message), status=status)

    routes = payload.get("routes")
    legs = routes[0].get("legs") if isinstance(routes, list) and routes and isinstance(routes[0], dict) else None
    if not isinstance(legs, list) or not legs or not isinstance(legs[0], dict):
        raise DirectionsError("response has no route legs", status=status)
    leg: dict[str, Any] = legs[0]

    distance_m, distance_text = _value(leg.get("distance"))
    duration_s, duration_text = _value(leg.get("duration"))
    if distance_m is None or duration_s is None:
        raise DirectionsError("route leg lacks distance or duration", status=status)

    steps: list[RouteStep] = []
    for step in leg.get("steps") or []:
        if not isinstance(step, dict):
            continue
        # REST responses use html_instructions; the JS SDK uses instructions.
        text = step.get("html_instructions") or step.get("instructions") or ""
        step_distance, _ = _value(step.get("distance"))
        step_duration, _ = _value(step.get("duration"))
        steps.append(RouteStep(instruction=strip_markup(str(text)), distance_m=step_distance, duration_s=step_duration))

    return Route(
        origin=origin,
        destination=destination,
        distance_m=distance_m,
        distance_text=distance_text,
        duration_s=duration_s,
        duration_text=duration_text,
        steps=steps,
        raw=leg,
    )


class DirectionsClient:
    """Async client for driving directions.

    Usage::

        async with DirectionsClient(config) as directions:
            route = await directions.route("-23.55,-46.63", "Santos, SP")
    """

    def __init__(
        self,
        config: AutonomiaConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport

    async def __aenter__(self) -> DirectionsClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.directions_timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._http_session is not None and not self._external_session:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    async def route(self, origin: str, destination: str) -> Route:
        """Look up a driving route.

        Raises
        ------
        AutonomiaConfigError
            No API key configured, or the client was not entered.
        DirectionsError
            The service found no route.
        AutonomiaTransportError
            Network or decoding failure.
        """
        if not self._config.directions_api_key:
            raise AutonomiaConfigError("directions_api_key is not configured")
        if self._transport is None:
            raise AutonomiaConfigError("DirectionsClient must be used within 'async with'")
        try:
            origin_q = normalize_place(origin)
            destination_q = normalize_place(destination)
        except ValueError as exc:
            raise DirectionsError(str(exc), status="INVALID_REQUEST") from exc

        params = {
            "origin": origin_q,
            "destination": destination_q,
            "mode": "driving",
            "language": self._config.directions_language,
            "key": self._config.directions_api_key,
        }
        payload = await self._transport.get_json(self._config.directions_base_url, params)
        route = parse_route(origin_q, destination_q, payload)
        _logger.debug("Route %s -> %s: %.0f m, %d steps", origin_q, destination_q, route.distance_m, len(route.steps))
        return route
