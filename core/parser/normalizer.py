"""Normalize raw Azure Activity Log records into ActivityEvent instances."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

from core.models import ActivityEvent, EventStatus
from core.parser.activity_reader import record_timestamp

logger = logging.getLogger(__name__)


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _localizable_value(value: Any) -> Optional[str]:
    """Unwrap ``{"value": ..., "localizedValue": ...}`` pairs used by the Activity Log schema."""
    if isinstance(value, dict):
        inner = value.get("value") or value.get("localizedValue") or value.get("localized_value")
        return str(inner) if inner else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class EventNormalizer:
    """Convert az CLI, SDK and Log Analytics records into ActivityEvent objects.

    Records without a parseable timestamp cannot be ordered and are dropped;
    ``dropped`` counts them for the current ``transform`` call.
    """

    def __init__(self, caller_filter: str | None = None) -> None:
        self.caller_filter = caller_filter.lower() if caller_filter else None
        self.dropped = 0

    def transform(self, raw_events: Iterable[dict[str, Any]]) -> Iterator[ActivityEvent]:
        self.dropped = 0
        for raw in raw_events:
            model = self._to_model(raw)
            if model is None:
                self.dropped += 1
                continue
            if self.caller_filter and self.caller_filter not in model.caller.lower():
                continue
            yield model
        if self.dropped:
            logger.warning("Dropped %d activity record(s) without a usable timestamp", self.dropped)

    def _to_model(self, raw: dict[str, Any]) -> Optional[ActivityEvent]:
        if not isinstance(raw, dict):
            return None
        timestamp = record_timestamp(raw)
        if timestamp is None:
            return None

        operation = _localizable_value(
            _first(raw, "operationName", "operation_name", "OperationNameValue", "OperationName")
        )
        status = _localizable_value(_first(raw, "status", "ActivityStatusValue", "ActivityStatus"))
        resource_id = _first(raw, "resourceId", "resource_id", "_ResourceId", "ResourceId")
        resource_group = _first(raw, "resourceGroupName", "resource_group_name", "ResourceGroup")
        caller = _first(raw, "caller", "Caller")

        return ActivityEvent(
            operation_name=operation or "",
            status=EventStatus.normalize(status),
            timestamp=timestamp,
            resource_id=str(resource_id) if resource_id else None,
            resource_group_name=str(resource_group) if resource_group else None,
            caller=str(caller) if caller else "",
        )


__all__ = ["EventNormalizer"]
