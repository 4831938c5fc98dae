"""Aggregate normalized Activity Log events into per-operation usage records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from core.models import ActivityEvent, OperationAggregate
from core.parser.resource_id import parse_resource_id

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AggregationStats:
    """Counts describing how the last aggregation treated its input."""

    total: int = 0
    succeeded: int = 0
    skipped_status: int = 0
    skipped_malformed: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_status + self.skipped_malformed

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "skippedStatus": self.skipped_status,
            "skippedMalformed": self.skipped_malformed,
        }


@dataclass(slots=True)
class _AggregateState:
    first_event: ActivityEvent
    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    def register(self, event: ActivityEvent) -> None:
        self.count += 1
        if self.first_seen is None or event.timestamp < self.first_seen:
            self.first_seen = event.timestamp
        if self.last_seen is None or event.timestamp > self.last_seen:
            self.last_seen = event.timestamp

    def to_record(self, operation: str, namespace_aware: bool = False) -> OperationAggregate:
        # Provider and type come from the first contributing event only.
        path = parse_resource_id(self.first_event.resource_id, namespace_aware=namespace_aware)
        return OperationAggregate(
            operation=operation,
            count=self.count,
            resource_provider=path.provider,
            resource_type=path.resource_type,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
        )


class OperationAggregator:
    """Group successful events by operation name.

    Each call to :meth:`aggregate` recomputes from scratch; ``stats`` reflects
    the most recent call only. ``namespace_aware`` switches resource fields to
    the namespace and type after the last ``providers`` segment.
    """

    def __init__(self, namespace_aware: bool = False) -> None:
        self.namespace_aware = namespace_aware
        self.stats = AggregationStats()

    def aggregate(self, events: Iterable[ActivityEvent]) -> list[OperationAggregate]:
        stats = AggregationStats()
        states: dict[str, _AggregateState] = {}

        for event in events:
            stats.total += 1
            if not event.succeeded:
                stats.skipped_status += 1
                continue
            if not event.operation_name:
                stats.skipped_malformed += 1
                continue

            stats.succeeded += 1
            state = states.get(event.operation_name)
            if state is None:
                state = _AggregateState(first_event=event)
                states[event.operation_name] = state
            state.register(event)

        self.stats = stats
        if stats.skipped:
            logger.info(
                "Skipped %d of %d event(s): %d not succeeded, %d without an operation name",
                stats.skipped,
                stats.total,
                stats.skipped_status,
                stats.skipped_malformed,
            )

        return [states[operation].to_record(operation, self.namespace_aware) for operation in sorted(states)]


def aggregate(events: Iterable[ActivityEvent]) -> list[OperationAggregate]:
    """Return one aggregate per distinct successful operation, sorted by operation."""
    return OperationAggregator().aggregate(events)


__all__ = ["AggregationStats", "OperationAggregator", "aggregate"]
