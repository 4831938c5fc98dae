"""Derive the minimal action set for a generated role."""

from __future__ import annotations

import logging
from typing import Iterable

from core.constants import DEFAULT_DENYLIST_PREFIXES
from core.models import OperationAggregate

logger = logging.getLogger(__name__)


def is_denied(operation: str, denylist_prefixes: Iterable[str], *, ignore_case: bool = False) -> bool:
    if ignore_case:
        lowered = operation.lower()
        return any(lowered.startswith(prefix.lower()) for prefix in denylist_prefixes if prefix)
    return any(operation.startswith(prefix) for prefix in denylist_prefixes if prefix)


def derive_minimal_actions(
    aggregates: Iterable[OperationAggregate],
    denylist_prefixes: Iterable[str] = DEFAULT_DENYLIST_PREFIXES,
    *,
    ignore_case: bool = False,
) -> set[str]:
    """Return the distinct observed operations, minus any under a denylisted prefix.

    Prefixes match with ``str.startswith``. Azure itself compares operation
    names case-insensitively, so ``ignore_case=True`` also drops
    ``microsoft.authorization/...`` style spellings.

    The result is bounded by what one capture observed; it cannot prove that
    no other permission is needed.
    """
    prefixes = tuple(denylist_prefixes)
    actions: set[str] = set()
    denied: set[str] = set()
    for record in aggregates:
        if is_denied(record.operation, prefixes, ignore_case=ignore_case):
            denied.add(record.operation)
        else:
            actions.add(record.operation)

    if denied:
        logger.warning("Excluded %d denylisted operation(s): %s", len(denied), ", ".join(sorted(denied)))
    return actions


__all__ = ["derive_minimal_actions", "is_denied"]
