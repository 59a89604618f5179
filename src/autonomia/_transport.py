"""HTTP transport for JSON GET endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from autonomia._redact import redact_for_log
from autonomia.exceptions import AutonomiaTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "autonomia/1 (+aiohttp)"


class Transport(Protocol):
    """Anything that can GET a URL and return a decoded JSON object."""

    async def get_json(self, url: str, params: Mapping[str, str]) -> dict[str, Any]:
        ...


class HttpTransport:
    """aiohttp-backed transport returning decoded JSON objects."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str, params: Mapping[str, str]) -> dict[str, Any]:
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        _logger.debug("GET %s %s", url, redact_for_log(dict(params)))

        try:
            async with self._http.get(url, params=dict(params), headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise AutonomiaTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except AutonomiaTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise AutonomiaTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AutonomiaTransportError(f"Invalid JSON from {url}: {text[:200]}", endpoint=url) from exc
        if not isinstance(body, dict):
            raise AutonomiaTransportError(f"Expected a JSON object from {url}", endpoint=url)
        return body
