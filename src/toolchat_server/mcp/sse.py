"""Minimal Server-Sent Events parsing.

Turns the lines of an ``text/event-stream`` body into ``ServerSentEvent``
objects. Only the ``event``, ``data`` and ``id`` fields are interpreted;
comments and ``retry`` are skipped.
"""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable


@dataclass
class ServerSentEvent:
    """A single dispatched SSE event."""

    event: str = "message"
    data: str = ""
    id: str | None = None

    def json(self) -> Any:
        """Decode the event data as JSON."""
        return json.loads(self.data)


class SSEDecoder:
    """Incremental line decoder following the WHATWG event-stream rules."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._last_id: str | None = None

    def decode(self, line: str) -> ServerSentEvent | None:
        """Feed one line (without its terminator).

        Returns:
            The completed event when ``line`` is the blank dispatch line,
            otherwise None.
        """
        line = line.rstrip("\r\n")

        if not line:
            if not self._event and not self._data:
                return None
            event = ServerSentEvent(
                event=self._event or "message",
                data="\n".join(self._data),
                id=self._last_id,
            )
            self._event = ""
            self._data = []
            return event

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            self._last_id = value or None

        return None


async def aiter_sse(lines: AsyncIterator[str]) -> AsyncIterator[ServerSentEvent]:
    """Yield events from an async iterator of stream lines."""
    decoder = SSEDecoder()
    async for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event


def parse_sse_text(text: str) -> list[ServerSentEvent]:
    """Parse a complete event-stream body into its events."""
    decoder = SSEDecoder()
    events = []
    lines: Iterable[str] = text.replace("\r\n", "\n").split("\n") + [""]
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            events.append(event)
    return events
