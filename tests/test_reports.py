"""CSV and summary rendering tests."""

from __future__ import annotations

from datetime import datetime, timezone

from core.aggregator.operations import AggregationStats
from core.models import OperationAggregate, TimeRange
from core.report.csv_export import parse_csv, render_csv
from core.report.summary import rank_operations, render_summary

SEEN = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
WINDOW = TimeRange(start=datetime(2024, 1, 15, 10, tzinfo=timezone.utc), end=datetime(2024, 1, 15, 11, tzinfo=timezone.utc))


def _record(operation: str, count: int = 1, provider: str = "Microsoft.Web", resource_type: str = "sites") -> OperationAggregate:
    return OperationAggregate(
        operation=operation,
        count=count,
        resource_provider=provider,
        resource_type=resource_type,
        first_seen=SEEN,
        last_seen=SEEN,
    )


def test_csv_header_and_quoting():
    rendered = render_csv([_record("Microsoft.Web/sites/write", 3)])
    lines = rendered.splitlines()
    assert lines[0] == "Operation,Count,Resource Provider,Resource Type,First Seen,Last Seen"
    assert lines[1] == '"Microsoft.Web/sites/write",3,"Microsoft.Web","sites","2024-01-15T10:00:00Z","2024-01-15T10:00:00Z"'


def test_csv_round_trip_preserves_operation_counts():
    records = [
        _record("Microsoft.Storage/storageAccounts/write", 2, "Microsoft.Storage", "storageAccounts"),
        _record('Contoso.Custom/things,with"quotes/write', 5, "Contoso.Custom", "things"),
        _record("Microsoft.Web/sites/write", 1),
    ]
    parsed = parse_csv(render_csv(records))
    assert [(row["operation"], row["count"]) for row in parsed] == [(record.operation, record.count) for record in records]


def test_csv_with_no_aggregates_is_header_only():
    assert render_csv([]) == "Operation,Count,Resource Provider,Resource Type,First Seen,Last Seen\n"


def test_rank_operations_breaks_ties_by_name():
    records = [_record("b/write", 2), _record("a/write", 2), _record("c/write", 5), _record("d/write", 1)]
    assert [record.operation for record in rank_operations(records, 3)] == ["c/write", "a/write", "b/write"]


def test_summary_lists_top_operations_and_providers():
    records = [
        _record("Microsoft.Storage/storageAccounts/write", 2, "Microsoft.Storage", "storageAccounts"),
        _record("Microsoft.Web/serverfarms/write", 4, "Microsoft.Web", "serverfarms"),
        _record("Microsoft.Web/sites/write", 4),
    ]
    summary = render_summary(records, WINDOW, "app-id", generated_at=SEEN)

    assert summary.startswith("# Azure Minimal Role - Permissions Analysis Summary\n")
    assert "Generated: 2024-01-15T10:00:00Z" in summary
    assert "Analysis Period: 2024-01-15T10:00:00Z to 2024-01-15T11:00:00Z" in summary
    assert "Service Principal: app-id" in summary
    assert "- Total Unique Operations: 3" in summary
    assert "- Unique Resource Providers: 2" in summary
    assert "- Unique Resource Types: 3" in summary

    top_section = summary.split("## Top Operations by Frequency\n", 1)[1].split("\n\n", 1)[0]
    assert top_section.splitlines() == [
        "- Microsoft.Web/serverfarms/write (4 times)",
        "- Microsoft.Web/sites/write (4 times)",
        "- Microsoft.Storage/storageAccounts/write (2 times)",
    ]
    providers_section = summary.split("## Resource Providers Used\n", 1)[1].split("\n\n", 1)[0]
    assert providers_section.splitlines() == ["- Microsoft.Storage", "- Microsoft.Web"]
    assert "1. Review the operations list" in summary


def test_summary_is_deterministic_and_honors_top():
    records = [_record(f"Microsoft.Web/op{index}/write", index + 1) for index in range(30)]
    first = render_summary(records, WINDOW, "sp", top=5, generated_at=SEEN)
    second = render_summary(list(reversed(records)), WINDOW, "sp", top=5, generated_at=SEEN)
    assert first == second
    assert first.count(" times)") == 5


def test_summary_flags_empty_capture_and_reports_stats():
    stats = AggregationStats(total=4, succeeded=0, skipped_status=3, skipped_malformed=1)
    summary = render_summary(
        [],
        WINDOW,
        "",
        generated_at=SEEN,
        stats=stats,
        artifacts={"CSV Export": "logs/permissions-x.csv"},
    )
    assert "inconclusive" in summary
    assert "Service Principal: (not set)" in summary
    assert "- Events Skipped (not succeeded): 3" in summary
    assert "- Events Skipped (no operation name): 1" in summary
    assert "- CSV Export: logs/permissions-x.csv" in summary
