"""CSV rendering of operation aggregates for spreadsheet tools."""

from __future__ import annotations

import csv
import io
from typing import Any, Iterable

from core.constants import CSV_HEADER
from core.models import OperationAggregate, format_timestamp


def render_csv(aggregates: Iterable[OperationAggregate]) -> str:
    buffer = io.StringIO()
    header_writer = csv.writer(buffer, lineterminator="\n")
    row_writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    header_writer.writerow(CSV_HEADER)
    for record in aggregates:
        row_writer.writerow(
            [
                record.operation,
                record.count,
                record.resource_provider,
                record.resource_type,
                format_timestamp(record.first_seen),
                format_timestamp(record.last_seen),
            ]
        )
    return buffer.getvalue()


def parse_csv(text: str) -> list[dict[str, Any]]:
    """Read a rendered CSV back into dictionaries keyed like the analysis JSON."""
    reader = csv.DictReader(io.StringIO(text))
    rows: list[dict[str, Any]] = []
    for row in reader:
        rows.append(
            {
                "operation": row["Operation"],
                "count": int(row["Count"]),
                "resourceProvider": row["Resource Provider"],
                "resourceType": row["Resource Type"],
                "firstSeen": row["First Seen"],
                "lastSeen": row["Last Seen"],
            }
        )
    return rows


__all__ = ["parse_csv", "render_csv"]
