"""Utility functions for the feedback stream backend."""

from .dynamodb_utils import (
    decimal_to_python,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    python_to_decimal,
)
from .sse import ParseError, format_event, iter_events

__all__ = [
    "decimal_to_python",
    "python_to_decimal",
    "prepare_for_dynamodb",
    "parse_items_from_dynamodb",
    "ParseError",
    "format_event",
    "iter_events",
]
