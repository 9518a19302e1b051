"""Unit tests for Server-Sent Events parsing."""

import pytest

from toolchat_server.mcp.sse import SSEDecoder, aiter_sse, parse_sse_text


class TestSSEDecoder:
    """Tests for the line-based event decoder."""

    def test_named_event(self):
        """Test that event and data lines form one event on a blank line."""
        decoder = SSEDecoder()
        assert decoder.decode("event: endpoint") is None
        assert decoder.decode("data: /messages?sessionId=abc") is None

        event = decoder.decode("")

        assert event is not None
        assert event.event == "endpoint"
        assert event.data == "/messages?sessionId=abc"

    def test_default_event_name_is_message(self):
        """Test that events without an event field are 'message' events."""
        decoder = SSEDecoder()
        decoder.decode('data: {"id": 1}')

        event = decoder.decode("")

        assert event.event == "message"
        assert event.json() == {"id": 1}

    def test_multiline_data_is_joined(self):
        """Test that consecutive data lines are joined with newlines."""
        decoder = SSEDecoder()
        decoder.decode("data: first")
        decoder.decode("data: second")

        event = decoder.decode("")

        assert event.data == "first\nsecond"

    def test_comments_and_blank_lines_are_ignored(self):
        """Test that keep-alive comments never produce events."""
        decoder = SSEDecoder()
        assert decoder.decode(": ping") is None
        assert decoder.decode("") is None

    def test_line_terminators_are_stripped(self):
        """Test that trailing CR/LF from raw lines do not leak into data."""
        decoder = SSEDecoder()
        decoder.decode("event: endpoint\r\n")
        decoder.decode("data: x\n")

        event = decoder.decode("\r\n")

        assert event.event == "endpoint"
        assert event.data == "x"

    def test_event_id_is_kept(self):
        """Test that the id field is attached to the event."""
        decoder = SSEDecoder()
        decoder.decode("id: 7")
        decoder.decode("data: hello")

        event = decoder.decode("")

        assert event.id == "7"


def test_parse_sse_text():
    """Test parsing a complete event-stream body."""
    text = 'event: message\r\ndata: {"jsonrpc": "2.0", "id": 3}\r\n\r\n'

    events = parse_sse_text(text)

    assert len(events) == 1
    assert events[0].json() == {"jsonrpc": "2.0", "id": 3}


def test_parse_sse_text_without_trailing_blank_line():
    """Test that a final event without a terminating blank line is kept."""
    events = parse_sse_text("data: tail")

    assert [event.data for event in events] == ["tail"]


@pytest.mark.asyncio
async def test_aiter_sse():
    """Test decoding events from an async line iterator."""

    async def lines():
        for line in [": hello", "", "event: endpoint", "data: /m?sessionId=1", "", "data: x", ""]:
            yield line

    events = [event async for event in aiter_sse(lines())]

    assert [(event.event, event.data) for event in events] == [
        ("endpoint", "/m?sessionId=1"),
        ("message", "x"),
    ]
