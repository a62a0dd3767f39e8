"""Tests for the Server-Sent Events codec."""

import json

import pytest

from utils.sse import ParseError, format_event, iter_event_data, iter_events, parse_event_data


class TestFormatEvent:
    def test_frames_single_data_line(self):
        framed = format_event({"type": "connected", "timestamp": 1})

        assert framed.startswith("data: ")
        assert framed.endswith("\n\n")
        assert json.loads(framed[len("data: ") :]) == {"type": "connected", "timestamp": 1}

    def test_formatted_events_parse_back(self):
        stream = format_event({"type": "a"}) + format_event({"type": "b"})
        events = list(iter_events(stream.split("\n")))

        assert [e["type"] for e in events] == ["a", "b"]


class TestParseEventData:
    def test_rejects_malformed_json(self):
        with pytest.raises(ParseError, match="Malformed"):
            parse_event_data("{not-json}")

    def test_rejects_non_object(self):
        with pytest.raises(ParseError, match="not a JSON object"):
            parse_event_data("[1, 2]")


class TestIterEvents:
    def test_accepts_bytes_and_str_lines(self):
        lines = [
            b'data: {"type": "connected"}',
            b"",
            'data: {"type": "error", "message": "boom"}',
            "",
        ]
        events = list(iter_events(lines))

        assert events == [{"type": "connected"}, {"type": "error", "message": "boom"}]

    def test_skips_comments_and_other_fields(self):
        lines = [": keep-alive", "event: ping", 'data: {"type": "x"}', ""]
        assert list(iter_events(lines)) == [{"type": "x"}]

    def test_joins_multiline_data(self):
        lines = ["data: {", 'data: "type": "x"}', ""]
        assert list(iter_event_data(lines)) == ['{\n"type": "x"}']

    def test_flushes_trailing_event_without_blank_line(self):
        assert list(iter_events(['data: {"type": "x"}'])) == [{"type": "x"}]

    def test_drops_malformed_payloads(self, caplog):
        lines = ["data: {not-json}", "", 'data: {"type": "ok"}', ""]

        events = list(iter_events(lines))

        assert events == [{"type": "ok"}]
        assert "Dropping stream event" in caplog.text

    def test_strips_carriage_returns(self):
        assert list(iter_events(['data: {"type": "x"}\r', "\r"])) == [{"type": "x"}]
