"""Server-Sent Events framing for the feedback stream.

Each event is a single ``data: <JSON>`` line followed by a blank line. The
server side only ever writes that shape; the parser is a little more lenient
and also accepts multi-line data fields and comment lines.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

DATA_FIELD = "data:"


class ParseError(ValueError):
    """An event payload could not be decoded."""


def format_event(payload: dict[str, Any]) -> str:
    """Frame a payload as one SSE message."""
    return f"data: {json.dumps(payload)}\n\n"


def parse_event_data(data: str) -> dict[str, Any]:
    """Decode the data field of one event.

    Raises:
        ParseError: If the payload is not a JSON object
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed event payload: {e}") from e
    if not isinstance(payload, dict):
        raise ParseError("Event payload is not a JSON object")
    return payload


def iter_event_data(lines: Iterable[str | bytes]) -> Iterator[str]:
    """Group raw stream lines into event data strings."""
    buffer: list[str] = []
    for line in lines:
        decoded = (
            line.decode("utf-8") if isinstance(line, (bytes, bytearray)) else str(line)
        )
        decoded = decoded.rstrip("\r")
        if not decoded:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if decoded.startswith(":"):
            continue
        if decoded.startswith(DATA_FIELD):
            value = decoded[len(DATA_FIELD) :]
            buffer.append(value[1:] if value.startswith(" ") else value)
    if buffer:
        yield "\n".join(buffer)


def iter_events(lines: Iterable[str | bytes]) -> Iterator[dict[str, Any]]:
    """Yield decoded event payloads, dropping malformed ones."""
    for data in iter_event_data(lines):
        try:
            yield parse_event_data(data)
        except ParseError as e:
            logger.warning("Dropping stream event: %s", e)
