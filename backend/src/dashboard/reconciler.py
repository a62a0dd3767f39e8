"""Client-side state for the live feedback feed.

The reconciler owns the authoritative, newest-first list of records the
dashboard shows. Pushed batches are merged by record identity, so redelivered
or stale events never duplicate an entry.
"""

import logging
import threading
from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import ValidationError

from models.feedback import FeedbackRecord, StreamEventType

logger = logging.getLogger(__name__)

RECONNECTING_MESSAGE = "Connection lost. Attempting to reconnect..."


class ConnectionState(str, Enum):
    """Connection lifecycle of the dashboard feed."""

    LOADING = "loading"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class FeedbackReconciler:
    """Merges snapshot and pushed records into one ordered list.

    All mutations take a lock because stream events arrive on a reader thread
    while user commands run on the main thread.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._records: list[FeedbackRecord] = []
        self._ids: set[str] = set()
        self.state = ConnectionState.LOADING
        self.error: str | None = None
        self.unread_count = 0
        self.watermark: int | None = None

    @property
    def records(self) -> list[FeedbackRecord]:
        """A copy of the current list, newest first."""
        with self._lock:
            return list(self._records)

    @property
    def is_loading(self) -> bool:
        return self.state == ConnectionState.LOADING

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def load_snapshot(self, records: Iterable[FeedbackRecord]) -> None:
        """Replace the list with an initial page and set the watermark."""
        with self._lock:
            self._records = []
            self._ids = set()
            for record in records:
                if record.id not in self._ids:
                    self._records.append(record)
                    self._ids.add(record.id)
            if self._records:
                self.watermark = self._records[0].sequence
            self.error = None
            self._finish_loading()

    def load_failed(self, message: str) -> None:
        """Record a failed initial load; already loaded records stay visible."""
        with self._lock:
            self.error = message
            self._finish_loading()

    def _finish_loading(self) -> None:
        # The push connection may already be open by the time the page lands
        if self.state == ConnectionState.LOADING:
            self.state = ConnectionState.DISCONNECTED

    def mark_connected(self) -> None:
        with self._lock:
            self.state = ConnectionState.CONNECTED
            self.error = None

    def mark_disconnected(self, message: str = RECONNECTING_MESSAGE) -> None:
        with self._lock:
            self.state = ConnectionState.DISCONNECTED
            self.error = message

    def merge(self, batch: Iterable[FeedbackRecord]) -> int:
        """Prepend records not already present.

        Known identities are dropped, the rest keep their batch order on top
        of the existing list. The unread count grows by the number added and
        the watermark rises to the newest added sequence, never falling.

        Returns:
            Number of records added
        """
        with self._lock:
            fresh: list[FeedbackRecord] = []
            seen = set(self._ids)
            for record in batch:
                if record.id in seen:
                    continue
                seen.add(record.id)
                fresh.append(record)

            if not fresh:
                return 0

            self._records = fresh + self._records
            self._ids = seen
            self.unread_count += len(fresh)
            self._advance_watermark(fresh)
            return len(fresh)

    def _advance_watermark(self, records: list[FeedbackRecord]) -> None:
        sequences = [r.sequence for r in records if r.sequence is not None]
        if not sequences:
            return
        newest = max(sequences)
        if self.watermark is None or newest > self.watermark:
            self.watermark = newest

    def handle_event(self, payload: dict[str, Any]) -> int:
        """Apply one decoded stream event.

        Returns:
            Number of records added by the event
        """
        event_type = payload.get("type")

        if event_type == StreamEventType.CONNECTED.value:
            logger.info("Connected to feedback stream")
            return 0

        if event_type == StreamEventType.NEW_FEEDBACK.value:
            items = payload.get("data")
            if not isinstance(items, list) or not items:
                return 0
            batch = []
            for item in items:
                try:
                    batch.append(FeedbackRecord.model_validate(item))
                except ValidationError as e:
                    logger.warning("Dropping malformed feedback record: %s", e)
            return self.merge(batch)

        if event_type == StreamEventType.ERROR.value:
            with self._lock:
                self.error = payload.get("message") or "Unknown stream error"
            return 0

        logger.debug("Ignoring stream event of type %r", event_type)
        return 0

    def reset_unread(self) -> None:
        """Clear "new" highlighting; the list itself is untouched."""
        with self._lock:
            self.unread_count = 0

    def is_new(self, record: FeedbackRecord) -> bool:
        """Whether this record arrived since the last view.

        Goes by identity, so highlighting survives filtering.
        """
        with self._lock:
            return any(r.id == record.id for r in self._records[: self.unread_count])
