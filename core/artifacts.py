"""Write the timestamped artifact set produced by one extraction run."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from core.constants import ARTIFACT_TIMESTAMP_FORMAT
from core.errors import ArtifactError
from core.models import OperationAggregate, RoleDefinition, format_timestamp

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    return str(value)


@dataclass(slots=True)
class ArtifactWriter:
    """Write-once artifacts sharing one ``YYYYmmdd-HHMMSS`` run identity."""

    output_dir: Path
    timestamp: datetime | None = None
    written: dict[str, Path] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    @property
    def run_id(self) -> str:
        return self.timestamp.strftime(ARTIFACT_TIMESTAMP_FORMAT)

    @property
    def paths(self) -> dict[str, Path]:
        run_id = self.run_id
        return {
            "Activity Logs": self.output_dir / f"activity-logs-{run_id}.json",
            "Permissions Analysis": self.output_dir / f"permissions-analysis-{run_id}.json",
            "CSV Export": self.output_dir / f"permissions-{run_id}.csv",
            "Summary": self.output_dir / f"permissions-summary-{run_id}.txt",
            "Role Template": self.output_dir / f"minimal-role-template-{run_id}.json",
        }

    def write_activity(self, records: Iterable[dict[str, Any]]) -> Path:
        payload = json.dumps(list(records), indent=2, default=_json_default)
        return self._write("Activity Logs", payload)

    def write_analysis(self, aggregates: Iterable[OperationAggregate]) -> Path:
        payload = json.dumps([record.model_dump(mode="json", by_alias=True) for record in aggregates], indent=2)
        return self._write("Permissions Analysis", payload)

    def write_csv(self, rendered: str) -> Path:
        return self._write("CSV Export", rendered)

    def write_summary(self, rendered: str) -> Path:
        return self._write("Summary", rendered)

    def write_role(self, role: RoleDefinition) -> Path:
        return self._write("Role Template", json.dumps(role.model_dump(by_alias=True), indent=2))

    def _write(self, label: str, content: str) -> Path:
        path = self.paths[label]
        self.output_dir.mkdir(parents=True, exist_ok=True)
        text = content if content.endswith("\n") else content + "\n"
        try:
            with path.open("x", encoding="utf-8") as handle:
                handle.write(text)
        except FileExistsError as exc:
            raise ArtifactError(f"Refusing to overwrite existing artifact {path}") from exc
        except OSError as exc:
            raise ArtifactError(f"Could not write {path}: {exc}") from exc
        self.written[label] = path
        logger.info("%s saved to: %s", label, path)
        return path


__all__ = ["ArtifactWriter"]
