"""Output helpers for the azminrole CLI."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from core.models import format_timestamp

FORMATS = ("json", "md", "table")


def _default_serializer(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, set):
        return sorted(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render(data: Any, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, indent=2, default=_default_serializer)
    if fmt == "md":
        return _to_markdown(data)
    if fmt == "table":
        return _to_table(data)
    raise ValueError(f"Unsupported format: {fmt}")


def emit(data: Any, fmt: str, output_path: Path | None = None) -> None:
    write_text(render(data, fmt), output_path)


def write_text(rendered: str, output_path: Path | None = None) -> None:
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(rendered + ("\n" if not rendered.endswith("\n") else ""), encoding="utf-8")
    else:
        print(rendered.rstrip("\n"))


def load_json_objects(path: Path) -> list[Any]:
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return []
    if raw.startswith("["):
        return json.loads(raw)
    try:
        return [json.loads(raw)]
    except json.JSONDecodeError:
        return [json.loads(line) for line in raw.splitlines() if line.strip()]


def _to_markdown(data: Any) -> str:
    if isinstance(data, list):
        if not data:
            return "(no data)"
        if not isinstance(data[0], dict):
            return "\n".join(f"- {item}" for item in data)
        headers = list(data[0].keys())
        lines = ["| " + " | ".join(headers) + " |", "| " + " | ".join(["---"] * len(headers)) + " |"]
        for row in data:
            values = [str(row.get(header, "")) for header in headers]
            lines.append("| " + " | ".join(values) + " |")
        return "\n".join(lines)
    if isinstance(data, dict):
        lines = ["| Key | Value |", "| --- | --- |"]
        for key, value in data.items():
            lines.append(f"| {key} | {value} |")
        return "\n".join(lines)
    return str(data)


def _to_table(data: Any) -> str:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        headers = list(data[0].keys())
        widths = {header: max(len(header), *(len(str(row.get(header, ""))) for row in data)) for header in headers}
        header_line = " ".join(header.ljust(widths[header]) for header in headers)
        sep_line = " ".join("-" * widths[header] for header in headers)
        rows = [" ".join(str(row.get(header, "")).ljust(widths[header]) for header in headers) for row in data]
        return "\n".join([header_line, sep_line, *rows])
    if isinstance(data, dict):
        width = max(len(str(key)) for key in data.keys()) if data else 0
        return "\n".join(f"{str(key).ljust(width)} : {value}" for key, value in data.items())
    if isinstance(data, list):
        return "\n".join(str(item) for item in data)
    return str(data)


__all__ = ["FORMATS", "emit", "load_json_objects", "render", "write_text"]
