"""HTTP client for the feedback API and its event stream.

Loads the initial snapshot, keeps one push connection open and feeds every
event into a FeedbackReconciler. When the connection fails it arms a single
reconnect timer with a fixed backoff.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

import requests
from pydantic import ValidationError

from dashboard.reconciler import FeedbackReconciler
from models.feedback import FeedbackRecord
from utils.sse import iter_events

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY_SECONDS = 3.0
DEFAULT_SNAPSHOT_LIMIT = 20
DEFAULT_TIMEOUT_SECONDS = 10.0


class ConnectionLost(Exception):
    """The push connection failed or was closed by the server."""

    pass


class AuthenticationFailed(Exception):
    """The API rejected the dashboard password."""

    pass


class FeedbackStreamClient:
    """Drives the reconciler from the feedback API."""

    def __init__(
        self,
        base_url: str,
        reconciler: FeedbackReconciler,
        session: requests.Session | None = None,
        token: str | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS,
        snapshot_limit: int = DEFAULT_SNAPSHOT_LIMIT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        on_change: Callable[[], None] | None = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.base_url = base_url.rstrip("/")
        self.reconciler = reconciler
        self.session = session or requests.Session()
        self.token = token
        self.reconnect_delay = reconnect_delay
        self.snapshot_limit = snapshot_limit
        self.timeout = timeout
        self._on_change = on_change
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._closed = False
        # Bumped on every connect; readers from older connections go quiet
        self._generation = 0
        self._connection_open = False
        self._response = None
        self._reader: threading.Thread | None = None
        self._reconnect_timer = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()

    # ============================================
    # Request/response endpoints
    # ============================================

    def login(self, password: str) -> str:
        """Exchange the shared password for a session token.

        Raises:
            AuthenticationFailed: If the password is rejected
        """
        response = self.session.post(
            self._url("/api/auth"), json={"password": password}, timeout=self.timeout
        )
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200 or not body.get("token"):
            raise AuthenticationFailed(
                body.get("error") or f"Authentication failed (HTTP {response.status_code})"
            )

        self.token = body["token"]
        return self.token

    def fetch_initial(self) -> list[FeedbackRecord]:
        """Load the most recent page of feedback into the reconciler."""
        try:
            response = self.session.get(
                self._url("/api/feedback"),
                params={"limit": self.snapshot_limit},
                headers=self._headers(),
                timeout=self.timeout,
            )
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching initial feedback: %s", e)
            self.reconciler.load_failed("Failed to connect to server")
            self._notify()
            return []

        if not result.get("success"):
            message = (
                result.get("message")
                or result.get("detail")
                or result.get("error")
                or "Failed to fetch feedback"
            )
            self.reconciler.load_failed(message)
            self._notify()
            return []

        records = []
        for item in result.get("data") or []:
            try:
                records.append(FeedbackRecord.model_validate(item))
            except ValidationError as e:
                logger.warning("Dropping malformed feedback record: %s", e)
        self.reconciler.load_snapshot(records)
        self._notify()
        return records

    # ============================================
    # Push connection
    # ============================================

    def connect(self) -> None:
        """Open the push connection, replacing any existing one."""
        with self._lock:
            if self._closed:
                return
            self._release_response()
            self._generation += 1
            generation = self._generation
            self._connection_open = True

        params = {}
        if self.reconciler.watermark is not None:
            params["since"] = self.reconciler.watermark

        reader = threading.Thread(
            target=self._run,
            args=(generation, params),
            name=f"feedback-stream-{generation}",
            daemon=True,
        )
        self._reader = reader
        reader.start()

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _run(self, generation: int, params: dict[str, Any]) -> None:
        try:
            response = self.session.get(
                self._url("/api/feedback/stream"),
                params=params,
                headers={**self._headers(), "Accept": "text/event-stream"},
                stream=True,
                timeout=(self.timeout, None),
            )
            with self._lock:
                if not self._is_current(generation):
                    response.close()
                    return
                self._response = response

            if response.status_code != 200:
                raise ConnectionLost(f"Stream returned HTTP {response.status_code}")

            self.reconciler.mark_connected()
            self._notify()

            for payload in iter_events(response.iter_lines()):
                if not self._is_current(generation):
                    return
                self.reconciler.handle_event(payload)
                self._notify()

            raise ConnectionLost("Stream closed by server")
        except Exception as e:
            self._handle_error(generation, e)

    def _handle_error(self, generation: int, error: Exception) -> None:
        with self._lock:
            if not self._is_current(generation):
                logger.debug("Ignoring error from stale connection: %s", error)
                return
            self._release_response()
            self._connection_open = False

        logger.warning("Feedback stream connection lost: %s", error)
        self.reconciler.mark_disconnected()
        self._notify()
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        with self._lock:
            if self._closed or self._reconnect_timer is not None:
                return
            timer = self._timer_factory(self.reconnect_delay, self._reconnect)
            timer.daemon = True
            self._reconnect_timer = timer
        timer.start()

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_timer = None
            if self._closed or self._connection_open:
                return
        logger.info("Reconnecting to feedback stream")
        self.connect()

    def _release_response(self) -> None:
        # Caller holds the lock
        if self._response is not None:
            self._response.close()
            self._response = None

    @property
    def has_pending_reconnect(self) -> bool:
        return self._reconnect_timer is not None

    def wait(self, timeout: float | None = None) -> None:
        """Block until the current reader thread exits."""
        reader = self._reader
        if reader is not None:
            reader.join(timeout)

    def close(self) -> None:
        """Tear down: close the connection and cancel any pending reconnect."""
        with self._lock:
            self._closed = True
            self._connection_open = False
            if self._reconnect_timer is not None:
                self._reconnect_timer.cancel()
                self._reconnect_timer = None
            self._release_response()
