"""Data models shared across the pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from core.constants import UNKNOWN


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 with a trailing ``Z`` for UTC."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


class EventStatus(str, Enum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    STARTED = "Started"
    ACCEPTED = "Accepted"
    UNKNOWN = "Unknown"

    @classmethod
    def normalize(cls, raw: object) -> "EventStatus":
        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        return _STATUS_ALIASES.get(text, cls.UNKNOWN)


# Log Analytics reports the short verb form of each status.
_STATUS_ALIASES = {
    "succeeded": EventStatus.SUCCEEDED,
    "success": EventStatus.SUCCEEDED,
    "failed": EventStatus.FAILED,
    "failure": EventStatus.FAILED,
    "started": EventStatus.STARTED,
    "start": EventStatus.STARTED,
    "accepted": EventStatus.ACCEPTED,
    "accept": EventStatus.ACCEPTED,
}


class ActivityEvent(BaseModel):
    """Normalized Azure Activity Log event, one per captured control-plane call."""

    operation_name: str = Field("", description="Fully-qualified action, e.g. Microsoft.Web/sites/write")
    status: EventStatus = Field(..., description="Outcome of the call")
    timestamp: datetime = Field(..., description="When the event occurred")
    resource_id: Optional[str] = Field(default=None, description="ARM path of the target resource")
    resource_group_name: Optional[str] = Field(default=None)
    caller: str = Field("", description="Principal identifier that issued the call")

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> EventStatus:
        return EventStatus.normalize(value)

    @field_validator("timestamp")
    @classmethod
    def _coerce_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def succeeded(self) -> bool:
        return self.status is EventStatus.SUCCEEDED


class ResourcePath(BaseModel):
    """Provider namespace and resource type parsed from an ARM resource id."""

    provider: str = UNKNOWN
    resource_type: str = UNKNOWN
    ok: bool = False


class OperationAggregate(BaseModel):
    """Usage of a single operation across the successful events of one run."""

    operation: str
    count: int = Field(..., ge=1)
    resource_provider: str = Field(UNKNOWN, alias="resourceProvider")
    resource_type: str = Field(UNKNOWN, alias="resourceType")
    first_seen: datetime = Field(..., alias="firstSeen")
    last_seen: datetime = Field(..., alias="lastSeen")

    model_config = {
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("first_seen", "last_seen")
    @classmethod
    def _coerce_timestamps(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_serializer("first_seen", "last_seen", when_used="json")
    def _serialize_timestamps(self, value: datetime) -> str:
        return format_timestamp(value)


class TimeRange(BaseModel):
    """Inclusive window an activity capture covers."""

    start: datetime
    end: datetime

    model_config = {"frozen": True}

    @field_validator("start", "end")
    @classmethod
    def _coerce_bounds(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.start > self.end:
            raise ValueError("start must be earlier than end")
        return self

    def label(self) -> str:
        return f"{format_timestamp(self.start)} to {format_timestamp(self.end)}"


class RoleDefinition(BaseModel):
    """Custom role document in the shape accepted by the Azure role-definition API."""

    name: str = Field(..., alias="Name")
    description: str = Field("", alias="Description")
    actions: list[str] = Field(default_factory=list, alias="Actions")
    not_actions: list[str] = Field(default_factory=list, alias="NotActions")
    data_actions: list[str] = Field(default_factory=list, alias="DataActions")
    not_data_actions: list[str] = Field(default_factory=list, alias="NotDataActions")
    assignable_scopes: list[str] = Field(default_factory=list, alias="AssignableScopes")

    model_config = {
        "populate_by_name": True,
    }

    @property
    def providers(self) -> list[str]:
        """Return the unique provider namespaces granted by the role."""
        return sorted({action.split("/", 1)[0] for action in self.actions})


__all__ = [
    "ActivityEvent",
    "EventStatus",
    "OperationAggregate",
    "ResourcePath",
    "RoleDefinition",
    "TimeRange",
    "ensure_utc",
    "format_timestamp",
]
