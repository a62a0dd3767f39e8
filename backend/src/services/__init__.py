"""Services for the feedback stream backend."""

from .auth_service import AuthenticationError, AuthService
from .feedback_service import ConfigurationError, FeedbackService, UpstreamQueryError
from .feedback_stream import FeedbackStream, StreamSettings

__all__ = [
    "AuthService",
    "AuthenticationError",
    "ConfigurationError",
    "FeedbackService",
    "FeedbackStream",
    "StreamSettings",
    "UpstreamQueryError",
]
