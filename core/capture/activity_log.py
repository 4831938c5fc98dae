"""Query Azure for the activity a principal generated during a time window."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.mgmt.monitor import MonitorManagementClient
from azure.monitor.query import LogsQueryClient, LogsQueryStatus

from core.errors import CaptureError
from core.models import TimeRange, ensure_utc

logger = logging.getLogger(__name__)

ACTIVITY_KQL = """AzureActivity
| where TimeGenerated between (datetime({start}) .. datetime({end}))
| where Caller contains "{caller}"
| where ActivityStatusValue in ("Success", "Succeeded")
| project TimeGenerated, OperationNameValue, ResourceProviderValue, ResourceGroup, _ResourceId, ActivityStatusValue, Caller
| order by TimeGenerated asc"""


def _fmt_utc_z(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def _check_caller(caller_id: str) -> str:
    caller = (caller_id or "").strip()
    if not caller:
        raise CaptureError("A caller id is required to scope the activity query")
    if any(char in caller for char in "'\"\n"):
        raise CaptureError(f"Caller id contains characters that cannot be embedded in a query: {caller!r}")
    return caller


def _as_dict(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return item
    as_dict = getattr(item, "as_dict", None)
    if callable(as_dict):
        return as_dict()
    raise CaptureError(f"Unexpected activity log item of type {type(item).__name__}")


class ActivityLogCapture:
    """Read events from the subscription Activity Log through azure-mgmt-monitor."""

    def __init__(self, subscription_id: str, credential: Any | None = None, client: Any | None = None) -> None:
        if not subscription_id:
            raise CaptureError("A subscription id is required to query the Activity Log")
        self.subscription_id = subscription_id
        self._credential = credential
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            credential = self._credential or DefaultAzureCredential()
            self._client = MonitorManagementClient(credential, self.subscription_id)
        return self._client

    @staticmethod
    def build_filter(caller_id: str, time_range: TimeRange) -> str:
        caller = _check_caller(caller_id)
        return (
            f"eventTimestamp ge '{_fmt_utc_z(time_range.start)}' "
            f"and eventTimestamp le '{_fmt_utc_z(time_range.end)}' "
            f"and caller eq '{caller}'"
        )

    def fetch(self, caller_id: str, time_range: TimeRange) -> list[dict[str, Any]]:
        filter_str = self.build_filter(caller_id, time_range)
        logger.info("Querying Activity Log for %s (%s)", caller_id[:8] + "...", time_range.label())
        try:
            records = [_as_dict(item) for item in self.client.activity_logs.list(filter=filter_str)]
        except AzureError as exc:
            raise CaptureError(f"Activity Log query failed: {exc}") from exc
        logger.info("Extracted %d activity log entries", len(records))
        return records


class LogAnalyticsCapture:
    """Read ``AzureActivity`` rows from a Log Analytics workspace through azure-monitor-query."""

    def __init__(self, workspace_id: str, credential: Any | None = None, client: Any | None = None) -> None:
        if not workspace_id:
            raise CaptureError("A Log Analytics workspace id is required")
        self.workspace_id = workspace_id
        self._credential = credential
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            credential = self._credential or DefaultAzureCredential()
            self._client = LogsQueryClient(credential)
        return self._client

    @staticmethod
    def build_query(caller_id: str, time_range: TimeRange) -> str:
        caller = _check_caller(caller_id)
        return ACTIVITY_KQL.format(
            start=_fmt_utc_z(time_range.start),
            end=_fmt_utc_z(time_range.end),
            caller=caller,
        )

    def fetch(self, caller_id: str, time_range: TimeRange) -> list[dict[str, Any]]:
        query = self.build_query(caller_id, time_range)
        logger.info("Querying Log Analytics workspace %s", self.workspace_id)
        try:
            response = self.client.query_workspace(
                self.workspace_id,
                query,
                timespan=(time_range.start, time_range.end),
            )
        except AzureError as exc:
            raise CaptureError(f"Log Analytics query failed: {exc}") from exc

        if response.status != LogsQueryStatus.SUCCESS:
            error: Optional[Any] = getattr(response, "partial_error", None)
            raise CaptureError(f"Log Analytics returned a partial result: {error}")

        records: list[dict[str, Any]] = []
        for table in response.tables:
            columns = list(table.columns)
            for row in table.rows:
                records.append(dict(zip(columns, row)))
        logger.info("Extracted %d Log Analytics rows", len(records))
        return records


__all__ = ["ACTIVITY_KQL", "ActivityLogCapture", "LogAnalyticsCapture"]
