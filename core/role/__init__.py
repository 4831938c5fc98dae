"""Minimal role helpers."""

from .actions import derive_minimal_actions
from .definition import render_role_definition

__all__ = ["derive_minimal_actions", "render_role_definition"]
