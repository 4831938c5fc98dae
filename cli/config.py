"""Configuration loader for the azminrole CLI.

Settings are built once at start-up from two kinds of source: a YAML file
holding tool options, and env-style files holding the Azure identity. The
env sources are merged in increasing precedence::

    process environment < .env < .env.terraform < config/azure-config.env

after which Terraform's ``ARM_*`` keys fill any canonical key left unset.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from core.constants import DEFAULT_DENYLIST_PREFIXES, DEFAULT_ROLE_DESCRIPTION, DEFAULT_ROLE_NAME, SUMMARY_TOP_OPERATIONS
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_SOURCES = (
    ("base env", Path(".env")),
    ("terraform env", Path(".env.terraform")),
    ("config file", Path("config/azure-config.env")),
)

KEY_ALIASES = {
    "ARM_SUBSCRIPTION_ID": "AZURE_SUBSCRIPTION_ID",
    "ARM_CLIENT_ID": "SERVICE_PRINCIPAL_ID",
    "ARM_TENANT_ID": "AZURE_TENANT_ID",
}

CAPTURE_SOURCES = ("activity-log", "log-analytics")

DEFAULTS = {
    "output_dir": "logs",
    "default_format": "json",
    "role_name": DEFAULT_ROLE_NAME,
    "role_description": DEFAULT_ROLE_DESCRIPTION,
    "denylist_prefixes": sorted(DEFAULT_DENYLIST_PREFIXES),
    "denylist_ignore_case": False,
    "top_operations": SUMMARY_TOP_OPERATIONS,
    "capture_source": "activity-log",
}


def _mask(value: str | None) -> str:
    return f"{value[:8]}..." if value else "(not set)"


@dataclass(frozen=True, slots=True)
class Settings:
    output_dir: Path = Path(DEFAULTS["output_dir"])
    default_format: str = DEFAULTS["default_format"]
    role_name: str = DEFAULTS["role_name"]
    role_description: str = DEFAULTS["role_description"]
    denylist_prefixes: tuple[str, ...] = tuple(DEFAULTS["denylist_prefixes"])
    denylist_ignore_case: bool = DEFAULTS["denylist_ignore_case"]
    top_operations: int = DEFAULTS["top_operations"]
    capture_source: str = DEFAULTS["capture_source"]
    subscription_id: str | None = None
    tenant_id: str | None = None
    service_principal_id: str | None = None
    service_principal_object_id: str | None = None
    log_analytics_workspace_id: str | None = None
    sources: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], env: Mapping[str, str] | None = None, sources: tuple[str, ...] = ()) -> "Settings":
        env = env or {}
        denylist = data.get("denylist_prefixes", DEFAULTS["denylist_prefixes"])
        if isinstance(denylist, str):
            denylist = [item.strip() for item in denylist.split(",") if item.strip()]
        capture_source = data.get("capture_source", DEFAULTS["capture_source"])
        if capture_source not in CAPTURE_SOURCES:
            raise ConfigurationError(f"capture_source must be one of {', '.join(CAPTURE_SOURCES)}")
        try:
            top_operations = int(data.get("top_operations", DEFAULTS["top_operations"]))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("top_operations must be an integer") from exc
        return cls(
            output_dir=Path(data.get("output_dir", DEFAULTS["output_dir"])),
            default_format=data.get("default_format", DEFAULTS["default_format"]),
            role_name=data.get("role_name", DEFAULTS["role_name"]),
            role_description=data.get("role_description", DEFAULTS["role_description"]),
            denylist_prefixes=tuple(denylist or ()),
            denylist_ignore_case=bool(data.get("denylist_ignore_case", DEFAULTS["denylist_ignore_case"])),
            top_operations=top_operations,
            capture_source=capture_source,
            subscription_id=env.get("AZURE_SUBSCRIPTION_ID") or None,
            tenant_id=env.get("AZURE_TENANT_ID") or None,
            service_principal_id=env.get("SERVICE_PRINCIPAL_ID") or None,
            service_principal_object_id=env.get("SERVICE_PRINCIPAL_OBJECT_ID") or None,
            log_analytics_workspace_id=env.get("LOG_ANALYTICS_WORKSPACE_ID") or None,
            sources=sources,
        )

    @property
    def caller_id(self) -> str | None:
        """Activity Log caller: the object id when known, else the application id."""
        return self.service_principal_object_id or self.service_principal_id

    def merge_cli(
        self,
        format_override: str | None = None,
        output_dir: Path | None = None,
        subscription_id: str | None = None,
        caller_id: str | None = None,
        capture_source: str | None = None,
    ) -> "Settings":
        return replace(
            self,
            default_format=format_override or self.default_format,
            output_dir=output_dir or self.output_dir,
            subscription_id=subscription_id or self.subscription_id,
            service_principal_object_id=caller_id or self.service_principal_object_id,
            capture_source=capture_source or self.capture_source,
        )

    def describe(self) -> list[str]:
        return [
            f"AZURE_SUBSCRIPTION_ID: {_mask(self.subscription_id)}",
            f"SERVICE_PRINCIPAL_ID: {_mask(self.service_principal_id)}",
            f"SERVICE_PRINCIPAL_OBJECT_ID: {_mask(self.service_principal_object_id)}",
            f"LOG_ANALYTICS_WORKSPACE_ID: {_mask(self.log_analytics_workspace_id)}",
        ]


def load_environment(project_root: Path, environ: Mapping[str, str] | None = None) -> tuple[dict[str, str], tuple[str, ...]]:
    """Merge env sources in precedence order without touching ``os.environ``."""
    merged: dict[str, str] = dict(os.environ if environ is None else environ)
    loaded: list[str] = []
    for label, relative in ENV_SOURCES:
        path = project_root / relative
        if not path.is_file():
            continue
        values = {key: value for key, value in dotenv_values(path).items() if value is not None}
        merged.update(values)
        loaded.append(label)
        logger.debug("Loaded %s from %s", label, path)

    for source_key, target_key in KEY_ALIASES.items():
        if merged.get(source_key) and not merged.get(target_key):
            merged[target_key] = merged[source_key]
            logger.debug("Mapped %s to %s", source_key, target_key)
    return merged, tuple(loaded)


def load_settings(path: Path, project_root: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    data: Any = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Could not parse {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must be a mapping of keys to values.")

    env, sources = load_environment(project_root or Path.cwd(), environ)
    return Settings.from_mapping(data, env, sources)


__all__ = ["Settings", "load_environment", "load_settings"]
