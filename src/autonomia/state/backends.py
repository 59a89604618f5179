"""Storage backends for :class:`autonomia.state.store.AutonomiaStore`.

A backend persists one flat keyed document. It knows nothing about
cycles or users; the store owns parsing and validation.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from autonomia.exceptions import StorageError

_logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Reads and replaces the whole stored document."""

    def read(self) -> dict[str, Any]: ...

    def write(self, document: dict[str, Any]) -> None: ...


class MemoryBackend:
    """Keeps the document in memory. Used by tests and throwaway sessions."""

    def __init__(self, document: dict[str, Any] | None = None) -> None:
        self._document: dict[str, Any] = copy.deepcopy(document) if document else {}
        self.writes = 0

    def read(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    def write(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.writes += 1


class JsonFileBackend:
    """One JSON document on disk, replaced atomically on every write."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> dict[str, Any]:
        if not self._path.exists():
            _logger.debug("Store file %s does not exist yet", self._path)
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot read {self._path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Store file {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise StorageError(f"Store file {self._path} does not hold a JSON object")
        return document

    def write(self, document: dict[str, Any]) -> None:
        body = json.dumps(document, ensure_ascii=False, indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".store-", suffix=".json", dir=self._path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(body)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Cannot write {self._path}: {exc}") from exc
        _logger.debug("Wrote %d bytes to %s", len(body), self._path)
