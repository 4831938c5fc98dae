"""Command line interface for deriving minimal Azure roles from activity logs."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List

from pydantic import ValidationError

from cli import config, output
from core import models
from core.aggregator.operations import AggregationStats, OperationAggregator
from core.artifacts import ArtifactWriter
from core.capture.activity_log import ActivityLogCapture, LogAnalyticsCapture
from core.errors import CaptureError, ConfigurationError, EmptyActionSetError, MinimalRoleError
from core.parser.activity_reader import ActivityLogReader, coerce_datetime
from core.parser.normalizer import EventNormalizer
from core.report.csv_export import render_csv
from core.report.summary import rank_operations, render_summary
from core.role.actions import derive_minimal_actions
from core.role.definition import render_role_definition

logger = logging.getLogger("azminrole")

EXIT_USAGE = 2
EXIT_EMPTY_ROLE = 3
EXIT_CAPTURE = 4


class CLIError(Exception):
    def __init__(self, message: str, exit_code: int = EXIT_USAGE) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="azminrole", description="Derive minimal Azure RBAC roles from activity logs")
    parser.add_argument("--config", type=Path, default=Path("azminrole.yml"), help="Path to CLI configuration file")
    parser.add_argument("--project-root", type=Path, default=Path("."), help="Directory holding .env, .env.terraform and config/")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    subparsers = parser.add_subparsers(dest="command", required=True)

    # capture ----------------------------------------------------------------
    capture_cmd = subparsers.add_parser("capture", help="Fetch raw activity records for a principal")
    capture_cmd.add_argument("--start", required=True, help="ISO-8601 start time")
    capture_cmd.add_argument("--end", help="ISO-8601 end time (defaults to now)")
    capture_cmd.add_argument("--caller", help="Caller id override (object id or application id)")
    capture_cmd.add_argument("--subscription")
    capture_cmd.add_argument("--source", choices=config.CAPTURE_SOURCES)
    capture_cmd.add_argument("--output", type=Path)

    # aggregate --------------------------------------------------------------
    agg_cmd = subparsers.add_parser("aggregate", help="Group successful events by operation")
    agg_source = agg_cmd.add_mutually_exclusive_group(required=True)
    agg_source.add_argument("--events", type=Path)
    agg_source.add_argument("--local-dir", type=Path)
    agg_cmd.add_argument("--start")
    agg_cmd.add_argument("--end")
    agg_cmd.add_argument("--caller-filter")
    agg_cmd.add_argument("--output", type=Path)
    agg_cmd.add_argument("--format", choices=output.FORMATS, help="Output format override")
    agg_cmd.add_argument("--namespace-providers", action="store_true", help="Read provider/type after the last providers segment")

    # summary ----------------------------------------------------------------
    summary_cmd = subparsers.add_parser("summary", help="Render a frequency summary of an analysis")
    summary_cmd.add_argument("--from-agg", required=True, type=Path)
    summary_cmd.add_argument("--start", required=True)
    summary_cmd.add_argument("--end", required=True)
    summary_cmd.add_argument("--principal")
    summary_cmd.add_argument("--top", type=int)
    summary_cmd.add_argument("--output", type=Path)

    # role -------------------------------------------------------------------
    role_cmd = subparsers.add_parser("role", help="Build a minimal role definition from an analysis")
    role_cmd.add_argument("--from-agg", required=True, type=Path)
    role_cmd.add_argument("--subscription")
    role_cmd.add_argument("--scope", action="append", default=[], help="Assignable scope; repeat for several")
    role_cmd.add_argument("--name")
    role_cmd.add_argument("--description")
    role_cmd.add_argument("--deny-prefix", action="append", default=[], help="Extra denylisted operation prefix")
    role_cmd.add_argument("--no-default-denylist", action="store_true")
    role_cmd.add_argument("--output", type=Path)

    # extract ----------------------------------------------------------------
    extract_cmd = subparsers.add_parser("extract", help="Capture, aggregate and write the full artifact set")
    extract_cmd.add_argument("--start", required=True)
    extract_cmd.add_argument("--end")
    extract_source = extract_cmd.add_mutually_exclusive_group()
    extract_source.add_argument("--events", type=Path)
    extract_source.add_argument("--local-dir", type=Path)
    extract_cmd.add_argument("--caller")
    extract_cmd.add_argument("--subscription")
    extract_cmd.add_argument("--source", choices=config.CAPTURE_SOURCES)
    extract_cmd.add_argument("--output-dir", type=Path)
    extract_cmd.add_argument("--namespace-providers", action="store_true", help="Read provider/type after the last providers segment")

    return parser


def app(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")

    try:
        settings = config.load_settings(args.config, project_root=args.project_root)
        if settings.sources:
            logger.info("Loaded configuration from: %s", ", ".join(settings.sources))
        merged = settings.merge_cli(
            format_override=getattr(args, "format", None),
            output_dir=getattr(args, "output_dir", None),
            subscription_id=getattr(args, "subscription", None),
            caller_id=getattr(args, "caller", None),
            capture_source=getattr(args, "source", None),
        )

        if args.command == "capture":
            return _cmd_capture(args, merged)
        if args.command == "aggregate":
            return _cmd_aggregate(args, merged)
        if args.command == "summary":
            return _cmd_summary(args, merged)
        if args.command == "role":
            return _cmd_role(args, merged)
        if args.command == "extract":
            return _cmd_extract(args, merged)
    except CLIError as exc:
        print(exc, file=sys.stderr)
        return exc.exit_code
    except EmptyActionSetError as exc:
        print(exc, file=sys.stderr)
        return EXIT_EMPTY_ROLE
    except CaptureError as exc:
        print(f"Capture failed: {exc}", file=sys.stderr)
        return EXIT_CAPTURE
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except MinimalRoleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - unexpected errors bubble up
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


# ---------------------------------------------------------------------------
# Command implementations


def _cmd_capture(args: argparse.Namespace, settings: config.Settings) -> int:
    time_range = _time_range(args.start, args.end)
    records = _capture(settings, time_range)
    output.emit(records, "json", output_path=args.output)
    return 0


def _cmd_aggregate(args: argparse.Namespace, settings: config.Settings) -> int:
    raw = _load_raw_records(args)
    normalizer = EventNormalizer(caller_filter=args.caller_filter)
    aggregator = OperationAggregator(namespace_aware=args.namespace_providers)
    records = aggregator.aggregate(normalizer.transform(raw))
    if not records:
        _warn_inconclusive()
    payload = [record.model_dump(mode="json", by_alias=True) for record in records]
    output.emit(payload, settings.default_format, output_path=args.output)
    return 0


def _cmd_summary(args: argparse.Namespace, settings: config.Settings) -> int:
    time_range = _time_range(args.start, args.end)
    aggregates = _load_aggregates(args.from_agg)
    principal = args.principal or settings.service_principal_id or ""
    top = args.top if args.top is not None else settings.top_operations
    rendered = render_summary(aggregates, time_range, principal, top=top)
    output.write_text(rendered, args.output)
    return 0


def _cmd_role(args: argparse.Namespace, settings: config.Settings) -> int:
    aggregates = _load_aggregates(args.from_agg)
    denylist = [] if args.no_default_denylist else list(settings.denylist_prefixes)
    denylist.extend(args.deny_prefix)
    actions = derive_minimal_actions(aggregates, denylist, ignore_case=settings.denylist_ignore_case)
    if not args.scope and not settings.subscription_id:
        raise CLIError("AZURE_SUBSCRIPTION_ID not found; pass --subscription or --scope, or set it in .env, .env.terraform or config/azure-config.env")
    role = render_role_definition(
        actions,
        settings.subscription_id,
        name=args.name or settings.role_name,
        description=args.description or _generated_description(settings.role_description),
        assignable_scopes=args.scope or None,
    )
    output.emit(role.model_dump(by_alias=True), "json", output_path=args.output)
    return 0


def _cmd_extract(args: argparse.Namespace, settings: config.Settings) -> int:
    if not settings.subscription_id:
        raise CLIError("AZURE_SUBSCRIPTION_ID not found; check .env, .env.terraform or config/azure-config.env")
    time_range = _time_range(args.start, args.end)
    for line in settings.describe():
        logger.info("  %s", line)

    if args.events or args.local_dir:
        raw = _load_raw_records(args)
    else:
        raw = _capture(settings, time_range)

    normalizer = EventNormalizer()
    aggregator = OperationAggregator(namespace_aware=args.namespace_providers)
    aggregates = aggregator.aggregate(normalizer.transform(raw))
    if not aggregates:
        _warn_inconclusive()
    actions = derive_minimal_actions(aggregates, settings.denylist_prefixes, ignore_case=settings.denylist_ignore_case)

    writer = ArtifactWriter(settings.output_dir)
    # The raw capture is always kept for audit, even when no role can be built.
    writer.write_activity(raw)
    role = render_role_definition(
        actions,
        settings.subscription_id,
        name=settings.role_name,
        description=_generated_description(settings.role_description),
    )

    principal = settings.service_principal_id or settings.caller_id or ""
    writer.write_analysis(aggregates)
    writer.write_csv(render_csv(aggregates))
    writer.write_summary(
        render_summary(
            aggregates,
            time_range,
            principal,
            top=settings.top_operations,
            stats=aggregator.stats,
            artifacts=writer.paths,
        )
    )
    writer.write_role(role)
    _print_quick_stats(writer, aggregates, aggregator.stats, time_range)
    return 0


# ---------------------------------------------------------------------------
# Helpers


def _time_range(start: str | None, end: str | None) -> models.TimeRange:
    try:
        start_dt = coerce_datetime(start)
        end_dt = coerce_datetime(end) or datetime.now(timezone.utc)
    except ValueError as exc:
        raise CLIError(f"Invalid ISO-8601 timestamp: {exc}") from exc
    if start_dt is None:
        raise CLIError("--start is required")
    if start_dt > end_dt:
        raise CLIError("--start must be earlier than --end")
    return models.TimeRange(start=start_dt, end=end_dt)


def _capture(settings: config.Settings, time_range: models.TimeRange) -> list[dict[str, Any]]:
    caller = settings.caller_id
    if not caller:
        raise CLIError("SERVICE_PRINCIPAL_ID not found; pass --caller or set it in the environment files")
    if settings.capture_source == "log-analytics":
        if not settings.log_analytics_workspace_id:
            raise CLIError("LOG_ANALYTICS_WORKSPACE_ID is required for --source log-analytics")
        return LogAnalyticsCapture(settings.log_analytics_workspace_id).fetch(caller, time_range)
    if not settings.subscription_id:
        raise CLIError("AZURE_SUBSCRIPTION_ID is required to query the Activity Log")
    return ActivityLogCapture(settings.subscription_id).fetch(caller, time_range)


def _load_raw_records(args: argparse.Namespace) -> List[dict[str, Any]]:
    source = args.events or args.local_dir
    try:
        return list(ActivityLogReader(source, start=args.start, end=args.end).load())
    except FileNotFoundError as exc:
        raise CLIError(f"Activity log source not found: {exc}") from exc
    except ValueError as exc:
        raise CLIError(str(exc)) from exc


def _load_aggregates(path: Path) -> List[models.OperationAggregate]:
    if not path.exists():
        raise CLIError(f"Analysis file not found: {path}")
    objects = output.load_json_objects(path)
    try:
        return [models.OperationAggregate.model_validate(obj) for obj in objects]
    except ValidationError as exc:
        raise CLIError(f"{path} is not a permissions analysis: {exc.error_count()} invalid field(s)") from exc


def _generated_description(base: str) -> str:
    return f"{base} on {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}"


def _warn_inconclusive() -> None:
    logger.warning("No successful operations captured; treat the result as inconclusive, not as zero permissions needed")


def _print_quick_stats(
    writer: ArtifactWriter,
    aggregates: list[models.OperationAggregate],
    stats: AggregationStats,
    time_range: models.TimeRange,
) -> None:
    print("Files generated:")
    for label, path in writer.written.items():
        print(f"  {label}: {path}")
    print("")
    print("Quick Stats:")
    print(f"  - Total Activity Events: {stats.total}")
    print(f"  - Unique Operations: {len(aggregates)}")
    print(f"  - Time Range: {time_range.label()}")
    print("")
    print("Top 5 Operations:")
    for record in rank_operations(aggregates, 5):
        print(f"  - {record.operation} ({record.count} times)")


def main() -> None:
    raise SystemExit(app())


if __name__ == "__main__":
    main()
