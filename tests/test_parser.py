"""Parser module smoke tests."""

from __future__ import annotations

import gzip
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from core.models import EventStatus
from core.parser.activity_reader import ActivityLogReader, coerce_datetime
from core.parser.normalizer import EventNormalizer
from core.parser.resource_id import parse_resource_id

FIXTURE = Path(__file__).parent / "fixtures" / "activity_log" / "deployment_events.json"


def _fixture_payload() -> str:
    return FIXTURE.read_text(encoding="utf-8")


def test_activity_reader_loads_file():
    records = list(ActivityLogReader(FIXTURE).load())
    assert len(records) == 10
    assert records[0]["operationName"]["value"] == "Microsoft.Resources/subscriptions/resourceGroups/write"


def test_activity_reader_loads_directory_and_gzip(tmp_path):
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir()
    (logs_dir / "a.json").write_text(_fixture_payload(), encoding="utf-8")
    with gzip.open(logs_dir / "b.json.gz", "wt", encoding="utf-8") as handle:
        handle.write(_fixture_payload())
    (logs_dir / "notes.txt").write_text("ignored", encoding="utf-8")

    records = list(ActivityLogReader(str(logs_dir)).load())
    assert len(records) == 20


def test_activity_reader_respects_time_window():
    reader = ActivityLogReader(FIXTURE, start="2024-01-15T10:02:30Z")
    records = list(reader.load())
    # Records without a timestamp are passed through for the normalizer to drop.
    assert len(records) == 5


def test_activity_reader_rejects_inverted_window():
    with pytest.raises(ValueError):
        ActivityLogReader(FIXTURE, start="2024-01-15T11:00:00Z", end="2024-01-15T10:00:00Z")


def test_activity_reader_unwraps_rest_and_log_analytics_payloads(tmp_path):
    rest = tmp_path / "rest.json"
    rest.write_text(json.dumps({"value": json.loads(_fixture_payload())[:2]}), encoding="utf-8")
    assert len(list(ActivityLogReader(rest).load())) == 2

    tables = tmp_path / "la.json"
    tables.write_text(
        json.dumps(
            {
                "tables": [
                    {
                        "name": "PrimaryResult",
                        "columns": [{"name": "TimeGenerated"}, {"name": "OperationNameValue"}, {"name": "ActivityStatusValue"}],
                        "rows": [["2024-01-15T10:00:00Z", "MICROSOFT.WEB/SITES/WRITE", "Success"]],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    rows = list(ActivityLogReader(tables).load())
    assert rows == [
        {
            "TimeGenerated": "2024-01-15T10:00:00Z",
            "OperationNameValue": "MICROSOFT.WEB/SITES/WRITE",
            "ActivityStatusValue": "Success",
        }
    ]


def test_activity_reader_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(ActivityLogReader(tmp_path / "missing.json").load())


def test_coerce_datetime_truncates_seven_digit_fractions():
    parsed = coerce_datetime("2024-01-15T10:00:30.1234567Z")
    assert parsed == datetime(2024, 1, 15, 10, 0, 30, 123456, tzinfo=timezone.utc)
    assert coerce_datetime("2024-01-15T10:00:00") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
    assert coerce_datetime("  ") is None


def test_normalizer_builds_events_and_counts_drops():
    normalizer = EventNormalizer()
    events = list(normalizer.transform(ActivityLogReader(FIXTURE).load()))

    assert len(events) == 9
    assert normalizer.dropped == 1
    first = events[0]
    assert first.operation_name == "Microsoft.Resources/subscriptions/resourceGroups/write"
    assert first.status is EventStatus.SUCCEEDED
    assert first.resource_group_name == "rg-demo"
    assert first.caller.startswith("11111111")
    assert events[1].status is EventStatus.STARTED
    assert any(event.operation_name == "" for event in events)


def test_normalizer_filters_by_caller():
    normalizer = EventNormalizer(caller_filter="11111111-2222")
    events = list(normalizer.transform(ActivityLogReader(FIXTURE).load()))
    assert len(events) == 8
    assert all(event.caller.startswith("11111111") for event in events)


def test_normalizer_accepts_sdk_snake_case_records():
    raw = {
        "caller": "sp",
        "event_timestamp": datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        "operation_name": {"value": "Microsoft.KeyVault/vaults/write", "localized_value": "Update Key Vault"},
        "status": {"value": "Succeeded"},
        "resource_id": "/subscriptions/s/resourceGroups/rg/providers/Microsoft.KeyVault/vaults/kv",
        "resource_group_name": "rg",
    }
    (event,) = list(EventNormalizer().transform([raw]))
    assert event.operation_name == "Microsoft.KeyVault/vaults/write"
    assert event.succeeded
    assert event.resource_id.endswith("/vaults/kv")


def test_normalizer_maps_log_analytics_statuses():
    rows = [
        {"TimeGenerated": "2024-01-15T10:00:00Z", "OperationNameValue": "Microsoft.Web/sites/write", "ActivityStatusValue": "Success", "Caller": "sp"},
        {"TimeGenerated": "2024-01-15T10:01:00Z", "OperationNameValue": "Microsoft.Web/sites/write", "ActivityStatusValue": "Failure", "Caller": "sp"},
        {"TimeGenerated": "2024-01-15T10:02:00Z", "OperationNameValue": "Microsoft.Web/sites/write", "ActivityStatusValue": "Weird", "Caller": "sp"},
    ]
    statuses = [event.status for event in EventNormalizer().transform(rows)]
    assert statuses == [EventStatus.SUCCEEDED, EventStatus.FAILED, EventStatus.UNKNOWN]


@pytest.mark.parametrize(
    ("resource_id", "provider", "resource_type", "ok"),
    [
        ("/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/st", "rg", "Microsoft.Storage", True),
        (
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web/sites/app/providers/Microsoft.Authorization/roleAssignments/1",
            "rg",
            "Microsoft.Web",
            True,
        ),
        ("/subscriptions/s/resourceGroups/rg", "rg", "Unknown", False),
        ("/subscriptions/s", "Unknown", "Unknown", False),
        ("", "Unknown", "Unknown", False),
        (None, "Unknown", "Unknown", False),
    ],
)
def test_parse_resource_id(resource_id, provider, resource_type, ok):
    path = parse_resource_id(resource_id)
    assert (path.provider, path.resource_type, path.ok) == (provider, resource_type, ok)


@pytest.mark.parametrize(
    ("resource_id", "provider", "resource_type", "ok"),
    [
        (
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/st",
            "Microsoft.Storage",
            "storageAccounts",
            True,
        ),
        (
            "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web/sites/app/providers/Microsoft.Authorization/roleAssignments/1",
            "Microsoft.Authorization",
            "roleAssignments",
            True,
        ),
        ("/subscriptions/s/resourceGroups/rg", "Unknown", "Unknown", False),
        ("/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web", "Unknown", "Unknown", False),
        (None, "Unknown", "Unknown", False),
    ],
)
def test_parse_resource_id_namespace_aware(resource_id, provider, resource_type, ok):
    path = parse_resource_id(resource_id, namespace_aware=True)
    assert (path.provider, path.resource_type, path.ok) == (provider, resource_type, ok)
