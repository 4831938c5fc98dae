"""Utilities for loading captured Azure Activity Log records from the local filesystem."""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from core.models import ensure_utc

logger = logging.getLogger(__name__)

TIMESTAMP_KEYS = ("eventTimestamp", "event_timestamp", "TimeGenerated", "timestamp")


def coerce_datetime(value: datetime | str | None) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Azure emits seven fractional digits; fromisoformat accepts at most six.
    head, dot, tail = text.partition(".")
    if dot:
        digits = ""
        for char in tail:
            if not char.isdigit():
                break
            digits += char
        text = f"{head}.{digits[:6].ljust(6, '0')}{tail[len(digits):]}"
    return ensure_utc(datetime.fromisoformat(text))


def record_timestamp(record: dict[str, Any]) -> Optional[datetime]:
    for key in TIMESTAMP_KEYS:
        raw = record.get(key)
        if raw is None:
            continue
        try:
            return coerce_datetime(raw if isinstance(raw, datetime) else str(raw))
        except ValueError:
            return None
    return None


def _rows_from_tables(tables: list[Any]) -> Iterator[dict[str, Any]]:
    for table in tables:
        if not isinstance(table, dict):
            continue
        columns = [column.get("name") if isinstance(column, dict) else str(column) for column in table.get("columns", [])]
        for row in table.get("rows", []):
            yield dict(zip(columns, row))


def _iter_records(payload: str) -> Iterator[dict[str, Any]]:
    stripped = payload.strip()
    if not stripped:
        return
    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            if isinstance(data.get("value"), list):
                for record in data["value"]:
                    if isinstance(record, dict):
                        yield record
                return
            if isinstance(data.get("tables"), list):
                yield from _rows_from_tables(data["tables"])
                return
            yield data
            return
    if stripped.startswith("["):
        data = json.loads(stripped)
        for record in data:
            if isinstance(record, dict):
                yield record
        return
    for line in stripped.splitlines():
        if line.strip():
            record = json.loads(line)
            if isinstance(record, dict):
                yield record


@dataclass(slots=True)
class ActivityLogReader:
    """Load activity log records from a file or a directory of captures."""

    source: str | Path
    start: datetime | str | None = None
    end: datetime | str | None = None

    _start_dt: Optional[datetime] = field(init=False, default=None)
    _end_dt: Optional[datetime] = field(init=False, default=None)

    def __post_init__(self) -> None:
        self._start_dt = coerce_datetime(self.start)
        self._end_dt = coerce_datetime(self.end)
        if self._start_dt and self._end_dt and self._start_dt > self._end_dt:
            raise ValueError("start must be earlier than end")

    def load(self) -> Iterator[dict[str, Any]]:
        """Yield raw activity log records from the configured source."""
        path = Path(self.source)
        if not path.exists():
            raise FileNotFoundError(path)
        if path.is_file():
            yield from self._load_file(path)
            return
        files = sorted(
            p
            for p in path.rglob("*")
            if p.is_file() and (p.suffix in {".json", ".jsonl"} or p.name.endswith(".json.gz"))
        )
        for file_path in files:
            yield from self._load_file(file_path)

    def _load_file(self, path: Path) -> Iterator[dict[str, Any]]:
        logger.debug("Reading activity records from %s", path)
        if path.suffix == ".gz":
            with gzip.open(path, "rt", encoding="utf-8") as handle:
                payload = handle.read()
        else:
            payload = path.read_text(encoding="utf-8")
        yield from self._filter_by_time(_iter_records(payload))

    def _filter_by_time(self, records: Iterable[dict[str, Any]]) -> Iterator[dict[str, Any]]:
        for record in records:
            event_time = record_timestamp(record)
            if self._start_dt and event_time and event_time < self._start_dt:
                continue
            if self._end_dt and event_time and event_time > self._end_dt:
                continue
            yield record


__all__ = ["ActivityLogReader", "coerce_datetime", "record_timestamp"]
