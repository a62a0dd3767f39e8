"""Tests for dashboard rendering and commands."""

import io
from datetime import date

import pytest

from conftest import make_record, newest_first
from dashboard.cli import Dashboard, parse_args
from dashboard.filters import FilterState
from dashboard.reconciler import FeedbackReconciler
from dashboard.render import format_created_at, render_card, render_view
from models.feedback import FeedbackRecord


@pytest.fixture
def reconciler():
    reconciler = FeedbackReconciler()
    reconciler.load_snapshot(newest_first(1, 2, 3))
    reconciler.mark_connected()
    return reconciler


@pytest.fixture
def dashboard(reconciler):
    return Dashboard(reconciler, FilterState(), out=io.StringIO())


class TestRenderView:
    def test_loading(self):
        assert render_view(FeedbackReconciler(), FilterState()) == "Loading feedback..."

    def test_live_indicator(self, reconciler):
        view = render_view(reconciler, FilterState())

        assert view.splitlines()[0] == "Live Feedback Stream  [Live]"
        assert "User 3 <user3@example.com>" in view

    def test_disconnected_banner(self, reconciler):
        reconciler.mark_disconnected()

        view = render_view(reconciler, FilterState())

        assert "[Disconnected]" in view
        assert "! Connection lost. Attempting to reconnect..." in view

    def test_new_items_banner_and_markers(self, reconciler):
        reconciler.merge(newest_first(4, 5))

        view = render_view(reconciler, FilterState())

        assert "2 new feedback items received" in view
        assert "[NEW] User 5" in view
        assert "[NEW] User 4" in view
        assert "[NEW] User 3" not in view

    def test_singular_banner(self, reconciler):
        reconciler.merge(newest_first(4))
        assert "1 new feedback item received" in render_view(reconciler, FilterState())

    def test_new_marker_survives_filtering(self, reconciler):
        reconciler.merge(newest_first(4, 5))

        view = render_view(reconciler, FilterState(name="user 4"))

        assert "[NEW] User 4" in view
        assert "User 5" not in view
        assert "Filters: name=user 4 (showing 1 of 5)" in view

    def test_empty_result(self, reconciler):
        view = render_view(reconciler, FilterState(name="nobody"))
        assert view.endswith("No feedback items found")

    def test_empty_store(self):
        reconciler = FeedbackReconciler()
        reconciler.load_snapshot([])

        assert "No feedback items found" in render_view(reconciler, FilterState())


class TestRenderCard:
    def test_card_lines(self):
        card = render_card(make_record(1, feedback_text="Great answers"), is_new=True)

        lines = card.splitlines()
        assert lines[0] == "[NEW] User 1 <user1@example.com>"
        assert lines[1] == "  Great answers"

    def test_created_at_format(self):
        record = FeedbackRecord(id="x", created_at="2026-01-05T10:00:00Z")
        assert format_created_at(record) == "Jan 05, 2026, 10:00:00 AM"

    def test_unparseable_created_at_is_shown_verbatim(self):
        record = FeedbackRecord(id="x", created_at="yesterday")
        assert format_created_at(record) == "yesterday"


class TestDashboardCommands:
    def test_filter_command(self, dashboard):
        assert dashboard.handle_command("name User 2\n") is True
        assert dashboard.filters.name == "User 2"
        assert "showing 1 of 3" in dashboard.out.getvalue()

    def test_date_command(self, dashboard):
        dashboard.handle_command("from 2026-01-20")
        assert dashboard.filters.date_from == date(2026, 1, 20)

    def test_blank_date_unsets(self, dashboard):
        dashboard.handle_command("to 2026-01-20")
        dashboard.handle_command("to")
        assert dashboard.filters.date_to is None

    def test_invalid_date(self, dashboard):
        dashboard.handle_command("from soon")

        assert dashboard.filters.date_from is None
        assert "Invalid date" in dashboard.out.getvalue()

    def test_clear(self, dashboard):
        dashboard.handle_command("email user1")
        dashboard.handle_command("clear")
        assert dashboard.filters.is_empty

    def test_top_resets_unread(self, dashboard, reconciler):
        reconciler.merge(newest_first(4))
        dashboard.handle_command("top")
        assert reconciler.unread_count == 0

    def test_unknown_command(self, dashboard):
        assert dashboard.handle_command("dance") is True
        assert "Unknown command: dance" in dashboard.out.getvalue()

    @pytest.mark.parametrize("line", ["quit", "exit", "q"])
    def test_quit(self, dashboard, line):
        assert dashboard.handle_command(line) is False

    def test_blank_line_redraws(self, dashboard):
        dashboard.handle_command("")
        assert "Live Feedback Stream" in dashboard.out.getvalue()


class TestParseArgs:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DASHBOARD_URL", raising=False)
        monkeypatch.delenv("DASHBOARD_PASSWORD", raising=False)

        args = parse_args([])

        assert args.url == "http://localhost:8000"
        assert args.password is None
        assert args.limit == 20
        assert args.reconnect_delay == 3.0

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("DASHBOARD_URL", "https://feedback.example.com")
        monkeypatch.setenv("DASHBOARD_PASSWORD", "secret")

        args = parse_args(["--name", "ada", "--date-from", "2026-01-01"])

        assert args.url == "https://feedback.example.com"
        assert args.password == "secret"
        assert args.name == "ada"
        assert args.date_from == "2026-01-01"
