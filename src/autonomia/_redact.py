"""Scrub secrets out of values headed for debug logs.

Passwords, stored password hashes and the directions API key are the only
secrets autonomia handles. Keys are matched after lower-casing and removing
``_``/``-`` so ``passwordHash``, ``password_hash`` and ``Password-Hash`` all
hit the same entry.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

_SECRET_KEYS = frozenset(
    {
        "password",
        "confirmpassword",
        "passwordhash",
        "key",
        "apikey",
        "directionsapikey",
        "authorization",
    }
)
_MAX_DEPTH = 20


def _normalize_key(key: object) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* that is safe to pass to ``_logger.debug``.

    Secret-keyed entries become ``"<redacted>"``, strings longer than
    *max_string* are cut, pydantic models are dumped by alias first and
    anything else that is not plain data is logged via ``repr``.
    """

    def scrub(item: Any, depth: int) -> Any:
        if depth > _MAX_DEPTH:
            return "<max-depth>"
        if item is None or isinstance(item, (bool, int, float)):
            return item
        if isinstance(item, str):
            if item.startswith("scrypt$"):
                return REDACTED
            return item if len(item) <= max_string else f"{item[:max_string]}…<truncated>"
        if isinstance(item, BaseModel):
            return scrub(item.model_dump(mode="json", by_alias=True), depth + 1)
        if isinstance(item, Mapping):
            return {
                str(k): REDACTED if _normalize_key(k) in _SECRET_KEYS else scrub(v, depth + 1)
                for k, v in item.items()
            }
        if isinstance(item, (list, tuple)):
            return [scrub(v, depth + 1) for v in item]
        return repr(item)

    return scrub(value, 0)
