"""Data models for the feedback stream dashboard."""

from .feedback import FeedbackRecord, StreamEvent, StreamEventType

__all__ = [
    "FeedbackRecord",
    "StreamEvent",
    "StreamEventType",
]
