#!/usr/bin/env python3
"""
Terminal dashboard for the live feedback stream.

Logs in with the shared password, loads the latest feedback, follows the
event stream and re-renders whenever something changes. Type commands to
filter the list:

    name <text> | email <text> | text <text> | from <YYYY-MM-DD> | to <YYYY-MM-DD>
    clear        reset all filters
    top          mark everything as seen
    quit         exit

Usage: feedback-dashboard --url http://localhost:8000
"""

import argparse
import getpass
import logging
import os
import sys
import threading

from dashboard.filters import FilterState, clear_filters
from dashboard.reconciler import FeedbackReconciler
from dashboard.render import RULE, render_view
from dashboard.stream_client import (
    DEFAULT_RECONNECT_DELAY_SECONDS,
    DEFAULT_SNAPSHOT_LIMIT,
    AuthenticationFailed,
    FeedbackStreamClient,
)

logger = logging.getLogger(__name__)

FILTER_COMMANDS = {
    "name": "name",
    "email": "email",
    "text": "text",
    "from": "date_from",
    "to": "date_to",
}


class Dashboard:
    """Holds the filter state and redraws the view."""

    def __init__(self, reconciler: FeedbackReconciler, filters: FilterState, out=None):
        self.reconciler = reconciler
        self.filters = filters
        self.out = out or sys.stdout
        self._render_lock = threading.Lock()

    def refresh(self) -> None:
        with self._render_lock:
            print(RULE, file=self.out)
            print(render_view(self.reconciler, self.filters), file=self.out, flush=True)

    def handle_command(self, line: str) -> bool:
        """Apply one command line. Returns False when the user wants to quit."""
        command, _, argument = line.strip().partition(" ")
        command = command.lower()

        if command in ("quit", "exit", "q"):
            return False
        if command == "clear":
            self.filters = clear_filters()
        elif command == "top":
            self.reconciler.reset_unread()
        elif command in FILTER_COMMANDS:
            try:
                self.filters = self.filters.with_changes(
                    **{FILTER_COMMANDS[command]: argument.strip()}
                )
            except ValueError as e:
                print(f"Invalid date: {e}", file=self.out)
                return True
        elif command:
            print(f"Unknown command: {command}", file=self.out)
            return True

        self.refresh()
        return True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Follow the live feedback stream")
    parser.add_argument(
        "--url",
        default=os.environ.get("DASHBOARD_URL", "http://localhost:8000"),
        help="Base URL of the feedback API",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("DASHBOARD_PASSWORD"),
        help="Shared dashboard password (prompted if omitted)",
    )
    parser.add_argument("--limit", type=int, default=DEFAULT_SNAPSHOT_LIMIT)
    parser.add_argument(
        "--reconnect-delay", type=float, default=DEFAULT_RECONNECT_DELAY_SECONDS
    )
    parser.add_argument("--name", default="")
    parser.add_argument("--email", default="")
    parser.add_argument("--text", default="")
    parser.add_argument("--date-from", default=None, help="YYYY-MM-DD, inclusive")
    parser.add_argument("--date-to", default=None, help="YYYY-MM-DD, inclusive")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        filters = FilterState().with_changes(
            name=args.name,
            email=args.email,
            text=args.text,
            date_from=args.date_from,
            date_to=args.date_to,
        )
    except ValueError as e:
        print(f"Invalid date filter: {e}", file=sys.stderr)
        return 2

    reconciler = FeedbackReconciler()
    dashboard = Dashboard(reconciler, filters)
    client = FeedbackStreamClient(
        args.url,
        reconciler,
        reconnect_delay=args.reconnect_delay,
        snapshot_limit=args.limit,
        on_change=dashboard.refresh,
    )

    password = args.password or getpass.getpass("Dashboard password: ")
    try:
        client.login(password)
    except AuthenticationFailed as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error("Could not reach %s: %s", args.url, e)
        return 1

    client.fetch_initial()
    client.connect()

    try:
        for line in sys.stdin:
            if not dashboard.handle_command(line):
                break
    except KeyboardInterrupt:
        pass
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
