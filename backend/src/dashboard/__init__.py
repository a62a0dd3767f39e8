"""Terminal client for the live feedback stream."""

from .filters import FilterState, apply_filters, clear_filters
from .reconciler import ConnectionState, FeedbackReconciler
from .stream_client import AuthenticationFailed, ConnectionLost, FeedbackStreamClient

__all__ = [
    "AuthenticationFailed",
    "ConnectionLost",
    "ConnectionState",
    "FeedbackReconciler",
    "FeedbackStreamClient",
    "FilterState",
    "apply_filters",
    "clear_filters",
]
