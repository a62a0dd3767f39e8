"""Tests for the client-side feedback reconciler."""

import pytest

from conftest import make_record, newest_first
from dashboard.reconciler import (
    RECONNECTING_MESSAGE,
    ConnectionState,
    FeedbackReconciler,
)


@pytest.fixture
def reconciler():
    return FeedbackReconciler()


@pytest.fixture
def loaded(reconciler):
    reconciler.load_snapshot(newest_first(1, 2, 3))
    return reconciler


def _ids(reconciler):
    return [r.id for r in reconciler.records]


class TestInitialLoad:
    """Test cases for the snapshot load."""

    def test_starts_loading(self, reconciler):
        assert reconciler.state == ConnectionState.LOADING
        assert reconciler.records == []
        assert reconciler.watermark is None

    def test_snapshot_sets_list_and_watermark(self, loaded):
        assert _ids(loaded) == ["fb-3", "fb-2", "fb-1"]
        assert loaded.watermark == make_record(3).sequence
        assert loaded.state == ConnectionState.DISCONNECTED
        assert loaded.unread_count == 0

    def test_empty_snapshot(self, reconciler):
        reconciler.load_snapshot([])

        assert reconciler.records == []
        assert reconciler.unread_count == 0
        assert reconciler.watermark is None
        assert not reconciler.is_loading

    def test_snapshot_after_connect_keeps_connected(self, reconciler):
        reconciler.mark_connected()
        reconciler.load_snapshot(newest_first(1))

        assert reconciler.state == ConnectionState.CONNECTED

    def test_load_failure_finishes_loading(self, reconciler):
        reconciler.load_failed("Failed to connect to server")

        assert reconciler.error == "Failed to connect to server"
        assert reconciler.state == ConnectionState.DISCONNECTED

    def test_records_property_is_a_copy(self, loaded):
        loaded.records.clear()
        assert len(loaded.records) == 3


class TestMerge:
    """Test cases for merging pushed batches."""

    def test_two_unseen_records(self, loaded):
        added = loaded.merge(newest_first(4, 5))

        assert added == 2
        assert _ids(loaded) == ["fb-5", "fb-4", "fb-3", "fb-2", "fb-1"]
        assert loaded.unread_count == 2
        records = loaded.records
        assert loaded.is_new(records[0]) and loaded.is_new(records[1])
        assert not loaded.is_new(records[2])

    def test_one_seen_one_unseen(self, loaded):
        added = loaded.merge(newest_first(3, 4))

        assert added == 1
        assert _ids(loaded) == ["fb-4", "fb-3", "fb-2", "fb-1"]
        assert loaded.unread_count == 1

    def test_redelivery_is_idempotent(self, loaded):
        batch = newest_first(4, 5, 6)
        loaded.merge(batch)
        after_first = _ids(loaded)

        assert loaded.merge(batch[1:]) == 0
        assert loaded.merge(batch) == 0
        assert _ids(loaded) == after_first
        assert loaded.unread_count == 3

    def test_existing_order_is_preserved(self, loaded):
        before = _ids(loaded)
        # Deliberately out of order: prepended as delivered, never re-sorted
        loaded.merge([make_record(7), make_record(9), make_record(8)])

        assert _ids(loaded)[:3] == ["fb-7", "fb-9", "fb-8"]
        assert _ids(loaded)[3:] == before

    def test_duplicates_within_a_batch(self, loaded):
        assert loaded.merge([make_record(4), make_record(4)]) == 1
        assert _ids(loaded).count("fb-4") == 1

    def test_unread_accumulates_across_batches(self, loaded):
        loaded.merge(newest_first(4))
        loaded.merge(newest_first(5, 6))

        assert loaded.unread_count == 3

    def test_merge_before_snapshot(self, reconciler):
        reconciler.merge(newest_first(1))
        assert _ids(reconciler) == ["fb-1"]
        assert reconciler.watermark == make_record(1).sequence


class TestWatermark:
    """Test cases for the client watermark."""

    def test_merge_advances_watermark(self, reconciler):
        reconciler.load_snapshot([make_record(1)])

        reconciler.merge([make_record(5)])

        assert reconciler.watermark == make_record(5).sequence

    def test_uses_newest_sequence_in_batch(self, loaded):
        loaded.merge([make_record(7), make_record(9), make_record(8)])
        assert loaded.watermark == make_record(9).sequence

    def test_never_moves_backwards(self, loaded):
        before = loaded.watermark

        loaded.merge([make_record(0)])

        assert loaded.watermark == before

    def test_redelivered_records_do_not_move_it(self, loaded):
        loaded.merge(newest_first(4))
        stale = make_record(4).model_copy(update={"ts": make_record(8).ts})

        loaded.merge([stale])

        assert loaded.watermark == make_record(4).sequence

    def test_records_without_ts_use_created_at(self, reconciler):
        record = make_record(2).model_copy(update={"ts": None})

        reconciler.merge([record])

        assert reconciler.watermark == record.sequence
        assert record.sequence == make_record(2).ts

    def test_empty_snapshot_then_merge(self, reconciler):
        reconciler.load_snapshot([])
        reconciler.merge(newest_first(3))

        assert reconciler.watermark == make_record(3).sequence


class TestHandleEvent:
    """Test cases for decoding stream events."""

    def test_connected_event_changes_nothing(self, loaded):
        assert loaded.handle_event({"type": "connected", "message": "hi"}) == 0
        assert len(loaded.records) == 3

    def test_new_feedback_event(self, loaded):
        payload = {
            "type": "new_feedback",
            "data": [r.to_wire() for r in newest_first(3, 4)],
            "timestamp": 1,
        }

        assert loaded.handle_event(payload) == 1
        assert loaded.unread_count == 1

    def test_new_feedback_drops_malformed_records(self, loaded):
        payload = {
            "type": "new_feedback",
            "data": [{"userName": "no id"}, make_record(4).to_wire()],
        }

        assert loaded.handle_event(payload) == 1
        assert _ids(loaded)[0] == "fb-4"

    def test_new_feedback_without_data(self, loaded):
        assert loaded.handle_event({"type": "new_feedback"}) == 0

    def test_error_event_sets_banner(self, loaded):
        loaded.handle_event({"type": "error", "message": "Failed to fetch new feedback"})

        assert loaded.error == "Failed to fetch new feedback"
        assert len(loaded.records) == 3

    def test_unknown_event_is_ignored(self, loaded):
        assert loaded.handle_event({"type": "mystery"}) == 0


class TestConnectionState:
    """Test cases for the connection state machine."""

    def test_connect_clears_error(self, loaded):
        loaded.mark_disconnected()
        loaded.mark_connected()

        assert loaded.is_connected
        assert loaded.error is None

    def test_disconnect_sets_reconnecting_message(self, loaded):
        loaded.mark_connected()
        loaded.mark_disconnected()

        assert loaded.state == ConnectionState.DISCONNECTED
        assert loaded.error == RECONNECTING_MESSAGE

    def test_disconnect_keeps_records(self, loaded):
        loaded.mark_disconnected()
        assert len(loaded.records) == 3


class TestUnreadReset:
    """Test cases for clearing new-item highlighting."""

    def test_reset_keeps_list(self, loaded):
        loaded.merge(newest_first(4, 5))
        loaded.reset_unread()

        assert loaded.unread_count == 0
        assert not loaded.is_new(make_record(5))
        assert len(loaded.records) == 5
