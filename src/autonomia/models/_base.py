"""Base model and timestamp coercion for persisted autonomia records.

Every persisted record inherits from :class:`AutonomiaBaseModel` which
provides:

* ``alias_generator=to_camel`` so records serialise with the camelCase
  keys of the original browser storage (``initialMileage``,
  ``pricePerLiter``, ...) while Python code uses snake_case.
* Frozen instances. Updates go through ``model_copy``/re-validation
  so a rejected change never leaves a half-mutated record behind.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> Any:
    """Coerce ISO strings, datetimes and epoch numbers to aware UTC datetimes.

    Naive datetimes are taken as UTC. Epoch values may be seconds or
    milliseconds; non-finite or out-of-range epochs raise ``ValueError``.
    Anything else is passed through for pydantic to reject.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return value
    elif isinstance(value, (int, float)):
        try:
            ts = float(value)
            if ts >= _MS_THRESHOLD:
                ts /= 1000.0
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"epoch timestamp out of range: {value!r}") from exc
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return value
    else:
        return value
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type accepting ISO strings, datetimes and epoch numbers."""


class AutonomiaBaseModel(BaseModel):
    """Base for persisted autonomia records."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_storage(self) -> dict[str, Any]:
        """Dump to the JSON-compatible camelCase shape used on disk."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
