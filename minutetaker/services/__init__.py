"""Application services."""

from .meeting_service import MeetingService

__all__ = ["MeetingService"]
