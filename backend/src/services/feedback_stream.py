"""Polling push loop behind the feedback event stream."""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from models.feedback import FeedbackRecord, StreamEvent
from services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
# Hard ceiling on a single connection, independent of activity
DEFAULT_MAX_DURATION_SECONDS = 5 * 60.0


@dataclass(frozen=True)
class StreamSettings:
    """Timing for push connections."""

    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_duration: float = DEFAULT_MAX_DURATION_SECONDS

    @classmethod
    def from_environment(cls) -> "StreamSettings":
        return cls(
            poll_interval=float(
                os.environ.get(
                    "FEEDBACK_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
                )
            ),
            max_duration=float(
                os.environ.get("FEEDBACK_STREAM_MAX_SECONDS", DEFAULT_MAX_DURATION_SECONDS)
            ),
        )


class FeedbackStream:
    """One client's push loop.

    Polls the store every ``poll_interval`` seconds for records newer than the
    connection's watermark and yields them as stream events. The watermark
    starts at ``since`` and advances past every emitted batch. Nothing here is
    shared with other connections.
    """

    def __init__(
        self,
        feedback_service: FeedbackService,
        since: int | None = None,
        settings: StreamSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.feedback_service = feedback_service
        self.watermark = since
        self.settings = settings or StreamSettings()
        self._clock = clock
        self._sleep = sleep

    async def events(
        self, is_disconnected: Callable[[], Awaitable[bool]] | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Yield a connected event, then poll until the ceiling or a disconnect."""
        deadline = self._clock() + self.settings.max_duration
        logger.info("Feedback stream opened (since=%s)", self.watermark)
        yield StreamEvent.connected()

        ticks = 0
        try:
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.info("Feedback stream reached its time limit")
                    break
                await self._sleep(min(self.settings.poll_interval, remaining))
                if self._clock() >= deadline:
                    logger.info("Feedback stream reached its time limit")
                    break
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Feedback stream client disconnected")
                    break

                ticks += 1
                event = await self.poll()
                if event is not None:
                    yield event
        finally:
            logger.info(
                "Feedback stream closed after %d polls (watermark=%s)",
                ticks,
                self.watermark,
            )

    async def poll(self) -> StreamEvent | None:
        """Run one query against the store.

        Returns a new_feedback event for a non-empty batch, an error event if
        the query failed, or None when there is nothing new.
        """
        try:
            # boto3 is blocking; keep it off the event loop
            records = await asyncio.to_thread(
                self.feedback_service.fetch_since, self.watermark
            )
        except Exception as e:
            logger.error("Error checking for new feedback: %s", e, exc_info=True)
            return StreamEvent.error("Failed to fetch new feedback")

        if not records:
            return None

        self._advance(records)
        return StreamEvent.new_feedback(records)

    def _advance(self, records: list[FeedbackRecord]) -> None:
        sequences = [r.sequence for r in records if r.sequence is not None]
        if not sequences:
            return
        newest = max(sequences)
        if self.watermark is None or newest > self.watermark:
            self.watermark = newest
