"""Structured parsing of ARM resource identifiers."""

from __future__ import annotations

from typing import Optional

from core.constants import UNKNOWN
from core.models import ResourcePath

_PROVIDER_INDEX = 4
_TYPE_INDEX = 6
_PROVIDERS_SEGMENT = "providers"


def _segment(segments: list[str], index: int) -> str:
    if index < len(segments) and segments[index]:
        return segments[index]
    return UNKNOWN


def parse_resource_id(resource_id: Optional[str], *, namespace_aware: bool = False) -> ResourcePath:
    """Return the ``(provider, resource_type)`` pair recorded for ``resource_id``.

    By default the id is split on ``/`` (keeping the leading empty segment)
    and segments 4 and 6 are taken, so
    ``/subscriptions/s/resourceGroups/rg/providers/Microsoft.Web/sites/app``
    gives ``rg`` / ``Microsoft.Web``. A missing segment becomes ``Unknown``
    and ``ok`` is False unless both were present.

    With ``namespace_aware=True`` the namespace and type after the last
    ``providers`` segment are returned instead (``Microsoft.Web`` / ``sites``).
    """
    if not resource_id:
        return ResourcePath()

    segments = resource_id.strip().split("/")
    if namespace_aware:
        return _parse_after_providers(segments)

    provider = _segment(segments, _PROVIDER_INDEX)
    resource_type = _segment(segments, _TYPE_INDEX)
    return ResourcePath(
        provider=provider,
        resource_type=resource_type,
        ok=provider != UNKNOWN and resource_type != UNKNOWN,
    )


def _parse_after_providers(segments: list[str]) -> ResourcePath:
    parts = [segment for segment in segments if segment]
    marker: Optional[int] = None
    for index, segment in enumerate(parts):
        if segment.lower() == _PROVIDERS_SEGMENT:
            marker = index

    if marker is None or marker + 2 >= len(parts):
        return ResourcePath()
    return ResourcePath(provider=parts[marker + 1], resource_type=parts[marker + 2], ok=True)


__all__ = ["parse_resource_id"]
