"""Activity capture collaborators."""

from .activity_log import ActivityLogCapture, LogAnalyticsCapture

__all__ = ["ActivityLogCapture", "LogAnalyticsCapture"]
