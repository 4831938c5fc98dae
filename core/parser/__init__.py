"""Activity Log parsing utilities."""

from .activity_reader import ActivityLogReader
from .normalizer import EventNormalizer
from .resource_id import parse_resource_id

__all__ = ["ActivityLogReader", "EventNormalizer", "parse_resource_id"]
