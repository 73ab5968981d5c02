"""Incremental decoder for ``data: <json>`` Server-Sent Events streams.

Transport chunks never line up with SSE lines, so the decoder keeps the
unterminated tail of the text between chunks and only parses complete lines.
"""

import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable, Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"


@dataclass(frozen=True)
class StreamEvent:
    payload: Any  # Parsed JSON body of the data line
    raw: str      # JSON text as received, prefix stripped


class SSEDecoder:
    """Stateful line assembler for one stream. Do not reuse across streams."""

    def __init__(self):
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one transport chunk and return the events it completed."""
        self._buffer += self._text.decode(chunk)
        return self._drain()

    def finish(self) -> list[StreamEvent]:
        """Flush at end of stream. A trailing line with no newline is dropped."""
        self._buffer += self._text.decode(b"", final=True)
        events = self._drain()
        if self._buffer.strip():
            logger.debug("Discarding unterminated trailing line", extra={"event_data": {
                "length": len(self._buffer),
            }})
        self._buffer = ""
        return events

    def _drain(self) -> list[StreamEvent]:
        *lines, self._buffer = self._buffer.split("\n")
        events = []
        for line in lines:
            event = parse_line(line)
            if event is not None:
                events.append(event)
        return events


def parse_line(line: str) -> StreamEvent | None:
    """Turn one complete SSE line into an event, or None if it carries none."""
    line = line.strip()
    if not line or line == DONE_SENTINEL:
        return None
    if not line.startswith(DATA_PREFIX):
        # Keep-alive comments and other SSE fields
        return None

    data = line[len(DATA_PREFIX):]
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed SSE frame", extra={"event_data": {"frame": data[:200]}})
        return None
    return StreamEvent(payload=payload, raw=data)


class EventStream:
    """Async iterator of :class:`StreamEvent` over an async byte-chunk source.

    Each event is yielded as soon as its line is complete. The source is
    released exactly once however iteration ends, including when the stream
    is closed before the first read: ``close`` is awaited when given,
    otherwise the source's own ``aclose()`` if it has one.
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        close: Callable[[], Awaitable[Any]] | None = None,
    ):
        self._chunks = chunks
        self._close = close
        self._events = self._iterate()
        self._released = False

    async def _iterate(self) -> AsyncGenerator[StreamEvent, None]:
        decoder = SSEDecoder()
        async for chunk in self._chunks:
            for event in decoder.feed(chunk):
                yield event
        for event in decoder.finish():
            yield event

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> StreamEvent:
        try:
            return await self._events.__anext__()
        except BaseException:
            # End of stream, transport failure or cancellation
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            await self._events.aclose()
        finally:
            await self._release()

    async def _release(self) -> None:
        if self._close is not None:
            await self._close()
            return
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def decode_stream(
    chunks: AsyncIterable[bytes],
    *,
    close: Callable[[], Awaitable[Any]] | None = None,
) -> EventStream:
    """Lazily decode an async byte-chunk source into :class:`StreamEvent` objects."""
    return EventStream(chunks, close=close)
