"""Core domain models and services for the Azure minimal-role generator."""

from .models import ActivityEvent, EventStatus, OperationAggregate, RoleDefinition, TimeRange

__all__ = ["ActivityEvent", "EventStatus", "OperationAggregate", "RoleDefinition", "TimeRange"]
