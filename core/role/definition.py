"""Assemble custom role definitions from a minimal action set."""

from __future__ import annotations

from typing import Iterable, Sequence

from core.constants import DEFAULT_ROLE_DESCRIPTION, DEFAULT_ROLE_NAME
from core.errors import EmptyActionSetError, RoleDefinitionError
from core.models import RoleDefinition


def subscription_scope_path(subscription: str) -> str:
    """Accept either a bare subscription id or a full scope path."""
    scope = subscription.strip()
    if not scope:
        raise RoleDefinitionError("A subscription or scope is required for AssignableScopes")
    if scope.startswith("/"):
        return scope.rstrip("/") or "/"
    return f"/subscriptions/{scope}"


def render_role_definition(
    actions: Iterable[str],
    subscription_scope: str | None,
    name: str = DEFAULT_ROLE_NAME,
    description: str = DEFAULT_ROLE_DESCRIPTION,
    *,
    assignable_scopes: Sequence[str] | None = None,
) -> RoleDefinition:
    action_set = set(actions)
    if not action_set:
        raise EmptyActionSetError()

    if assignable_scopes:
        scopes = [subscription_scope_path(scope) for scope in assignable_scopes]
    elif subscription_scope:
        scopes = [subscription_scope_path(subscription_scope)]
    else:
        raise RoleDefinitionError("A subscription or scope is required for AssignableScopes")

    if not name.strip():
        raise RoleDefinitionError("Role name must not be empty")

    return RoleDefinition(
        name=name,
        description=description,
        actions=sorted(action_set),
        assignable_scopes=scopes,
    )


__all__ = ["render_role_definition", "subscription_scope_path"]
