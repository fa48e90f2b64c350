"""Shared JSON file access for the file-backed repositories.

Reads raise FetchFailureError and writes raise PersistenceWriteError, so
callers above the infrastructure layer never see OSError or decode errors.
A write goes to a temporary file that then replaces the original, so a
crash mid-write leaves the previous contents intact.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pos_cart.domain.exceptions import FetchFailureError, PersistenceWriteError

logger = logging.getLogger(__name__)


class JsonFile:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._ensure_file()

    def load(self) -> list[dict[str, Any]]:
        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise FetchFailureError(f"Could not read {self._file_path.name}: {exc}") from exc
        if not isinstance(data, list):
            raise FetchFailureError(f"{self._file_path.name} does not contain a list")
        return data

    def load_for_write(self) -> list[dict[str, Any]]:
        """Load before a read-modify-write; a failed read fails the write."""
        try:
            return self.load()
        except FetchFailureError as exc:
            raise PersistenceWriteError(str(exc)) from exc

    def persist(self, rows: list[dict[str, Any]]) -> None:
        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(rows, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self._file_path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceWriteError(f"Could not write {self._file_path.name}: {exc}") from exc
        logger.debug("Wrote %d rows to %s", len(rows), self._file_path)

    def _ensure_file(self) -> None:
        if self._file_path.exists():
            return
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")
        except OSError as exc:
            raise PersistenceWriteError(f"Could not create {self._file_path}: {exc}") from exc
