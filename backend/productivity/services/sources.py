"""
Record sources: read-only snapshots of raw provider rows.

The engine only needs ``fetch(location_id, start, end)``. Sources may
return supersets (other locations, wider dates); records are filtered by
location and date after normalization.
"""
import json
import logging
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Protocol

logger = logging.getLogger("productivity-engine.sources")


class RecordSource(Protocol):
    def fetch(self, location_id: str, start: date, end: date) -> List[Mapping[str, Any]]:
        ...


class InMemorySource:
    """Raw rows held in memory (tests, task payloads)."""

    def __init__(self, rows: Optional[Iterable[Mapping[str, Any]]] = None):
        self._rows = list(rows or [])

    def fetch(self, location_id: str, start: date, end: date) -> List[Mapping[str, Any]]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)


class JsonFileSource:
    """A JSON file holding an array of raw rows. Read once, on first fetch."""

    def __init__(self, path: str):
        self.path = path
        self._rows: Optional[List[Mapping[str, Any]]] = None

    def fetch(self, location_id: str, start: date, end: date) -> List[Mapping[str, Any]]:
        if self._rows is None:
            self._rows = self._load()
        return list(self._rows)

    def _load(self) -> List[Mapping[str, Any]]:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, Mapping):
            # {"records": [...]} envelopes
            data = data.get("records", data.get("data"))
        if not isinstance(data, list):
            raise ValueError(f"{self.path}: expected a JSON array of records")
        logger.info("loaded source file", extra={"reason": f"{self.path}: {len(data)} rows"})
        return data
