"""Exception hierarchy for the minimal-role pipeline."""

from __future__ import annotations


class MinimalRoleError(Exception):
    """Base class for errors raised by azminrole components."""


class EmptyActionSetError(MinimalRoleError):
    """Raised when a role would be emitted without any actions."""

    def __init__(self, message: str = "Refusing to build a role definition with no actions; the capture is inconclusive.") -> None:
        super().__init__(message)


class RoleDefinitionError(MinimalRoleError):
    """Raised when a role definition cannot be assembled from its inputs."""


class CaptureError(MinimalRoleError):
    """Raised when the activity log source cannot be queried."""


class ConfigurationError(MinimalRoleError):
    """Raised for unreadable or incomplete configuration."""


class ArtifactError(MinimalRoleError):
    """Raised when an artifact cannot be written."""


__all__ = [
    "ArtifactError",
    "CaptureError",
    "ConfigurationError",
    "EmptyActionSetError",
    "MinimalRoleError",
    "RoleDefinitionError",
]
