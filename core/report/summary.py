"""Human-readable frequency summary of an activity capture."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Sequence

from core.aggregator.operations import AggregationStats
from core.constants import RECOMMENDED_ACTIONS, SUMMARY_TOP_OPERATIONS
from core.models import OperationAggregate, TimeRange, format_timestamp


def rank_operations(aggregates: Sequence[OperationAggregate], top: int) -> list[OperationAggregate]:
    """Most frequent operations first; ties fall back to the operation name."""
    ranked = sorted(aggregates, key=lambda rec: (-rec.count, rec.operation))
    return ranked[: max(top, 0)]


def render_summary(
    aggregates: Sequence[OperationAggregate],
    time_range: TimeRange,
    principal: str,
    *,
    top: int = SUMMARY_TOP_OPERATIONS,
    generated_at: datetime | None = None,
    stats: AggregationStats | None = None,
    artifacts: Mapping[str, Path | str] | None = None,
) -> str:
    generated = generated_at or datetime.now(timezone.utc)
    providers = sorted({record.resource_provider for record in aggregates})
    resource_types = {record.resource_type for record in aggregates}

    lines = [
        "# Azure Minimal Role - Permissions Analysis Summary",
        f"Generated: {format_timestamp(generated)}",
        f"Analysis Period: {time_range.label()}",
        f"Service Principal: {principal or '(not set)'}",
        "",
        "## Overview",
        f"- Total Unique Operations: {len(aggregates)}",
        f"- Unique Resource Providers: {len(providers)}",
        f"- Unique Resource Types: {len(resource_types)}",
    ]
    if stats is not None:
        lines.extend(
            [
                f"- Activity Events Captured: {stats.total}",
                f"- Successful Events Aggregated: {stats.succeeded}",
                f"- Events Skipped (not succeeded): {stats.skipped_status}",
                f"- Events Skipped (no operation name): {stats.skipped_malformed}",
            ]
        )
    if not aggregates:
        lines.extend(
            [
                "",
                "WARNING: no successful operations were captured for this window.",
                "The result is inconclusive; it does not mean no permissions are needed.",
            ]
        )

    lines.extend(["", "## Top Operations by Frequency"])
    lines.extend(f"- {record.operation} ({record.count} times)" for record in rank_operations(aggregates, top))

    lines.extend(["", "## Resource Providers Used"])
    lines.extend(f"- {provider}" for provider in providers)

    lines.extend(["", "## Recommended Next Steps"])
    lines.extend(f"{index}. {text}" for index, text in enumerate(RECOMMENDED_ACTIONS, start=1))

    if artifacts:
        lines.extend(["", "## Files Generated"])
        lines.extend(f"- {label}: {path}" for label, path in artifacts.items())

    return "\n".join(lines) + "\n"


__all__ = ["rank_operations", "render_summary"]
