"""Tests for eternalai/core/sse.py — incremental SSE decoding."""

import pytest

from eternalai.core.sse import SSEDecoder, StreamEvent, decode_stream, parse_line
from tests.conftest import async_chunks


class ClosableSource:
    """Async byte source that counts how often it was closed."""

    def __init__(self, chunks, fail_after: int | None = None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.close_calls = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise ConnectionResetError("peer reset")
            yield chunk

    async def aclose(self):
        self.close_calls += 1


async def collect(chunks) -> list:
    return [event.payload async for event in decode_stream(async_chunks(chunks, len(chunks) or 1))]


class TestParseLine:

    def test_data_line(self):
        event = parse_line('data: {"a": 1}')
        assert event == StreamEvent(payload={"a": 1}, raw='{"a": 1}')

    def test_surrounding_whitespace_trimmed(self):
        assert parse_line('  data: {"a": 1}\r').payload == {"a": 1}

    def test_blank_line(self):
        assert parse_line("") is None
        assert parse_line("   ") is None

    def test_done_sentinel(self):
        assert parse_line("data: [DONE]") is None

    def test_non_data_fields_ignored(self):
        assert parse_line(": keep-alive") is None
        assert parse_line("event: message") is None
        assert parse_line("id: 42") is None

    def test_malformed_json_skipped(self):
        assert parse_line("data: {not json") is None


class TestSSEDecoder:

    def test_line_split_at_every_offset(self):
        data = b'data: {"a":1}\n'
        for offset in range(len(data) + 1):
            decoder = SSEDecoder()
            events = decoder.feed(data[:offset]) + decoder.feed(data[offset:]) + decoder.finish()
            assert [e.payload for e in events] == [{"a": 1}], f"split at {offset}"

    def test_multibyte_character_split_across_chunks(self):
        data = 'data: {"text":"héllo ✓"}\n'.encode()
        split = data.index("✓".encode()) + 1  # inside the 3-byte sequence
        decoder = SSEDecoder()
        events = decoder.feed(data[:split]) + decoder.feed(data[split:])
        assert events[0].payload == {"text": "héllo ✓"}

    def test_trailing_partial_line_discarded(self):
        decoder = SSEDecoder()
        events = decoder.feed(b'data: {"a":1}\ndata: {"b":2}')
        events += decoder.finish()
        assert [e.payload for e in events] == [{"a": 1}]

    def test_crlf_line_endings(self):
        decoder = SSEDecoder()
        events = decoder.feed(b'data: {"a":1}\r\n\r\ndata: {"b":2}\r\n')
        assert [e.payload for e in events] == [{"a": 1}, {"b": 2}]

    def test_events_emitted_per_completed_line(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"a":1}\ndata: {"b"') == [StreamEvent({"a": 1}, '{"a":1}')]
        assert [e.payload for e in decoder.feed(b':2}\n')] == [{"b": 2}]


class TestDecodeStream:

    async def test_sentinel_and_blank_lines_skipped(self):
        payloads = await collect(b'data: {"a":1}\n\n\ndata: [DONE]\n\n')
        assert payloads == [{"a": 1}]

    async def test_malformed_frame_does_not_stop_stream(self):
        body = b'data: {"a":1}\ndata: {not json\ndata: {"b":2}\n'
        assert await collect(body) == [{"a": 1}, {"b": 2}]

    async def test_keep_alive_comments_ignored(self):
        body = b': ping\n\ndata: {"a":1}\n\n: ping\n\n'
        assert await collect(body) == [{"a": 1}]

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    async def test_output_independent_of_chunk_size(self, size):
        body = b'data: {"n":1}\n\ndata: {"n":2}\n\ndata: {"n":3}\n\ndata: [DONE]\n\n'
        payloads = [e.payload async for e in decode_stream(async_chunks(body, size))]
        assert payloads == [{"n": 1}, {"n": 2}, {"n": 3}]

    async def test_events_yielded_before_stream_ends(self):
        delivered = []

        async def source():
            delivered.append(1)
            yield b'data: {"a":1}\n'
            delivered.append(2)
            yield b'data: {"b":2}\n'

        stream = decode_stream(source())
        first = await stream.__anext__()
        assert first.payload == {"a": 1}
        assert delivered == [1]
        await stream.aclose()

    async def test_empty_stream(self):
        assert await collect(b"") == []


class TestDecodeStreamRelease:

    async def test_close_after_full_consumption(self):
        source = ClosableSource([b'data: {"a":1}\n', b"data: [DONE]\n"])
        events = [e async for e in decode_stream(source)]
        assert len(events) == 1
        assert source.close_calls == 1

    async def test_close_after_early_abandonment(self):
        source = ClosableSource([b'data: {"a":1}\n', b'data: {"b":2}\n', b'data: {"c":3}\n'])
        stream = decode_stream(source)
        async for _ in stream:
            break
        await stream.aclose()
        assert source.close_calls == 1

    async def test_close_when_consumer_raises(self):
        source = ClosableSource([b'data: {"a":1}\n', b'data: {"b":2}\n'])
        stream = decode_stream(source)
        with pytest.raises(RuntimeError):
            async for _ in stream:
                raise RuntimeError("consumer failed")
        await stream.aclose()
        assert source.close_calls == 1

    async def test_close_when_transport_fails(self):
        source = ClosableSource([b'data: {"a":1}\n', b'data: {"b":2}\n'], fail_after=1)
        with pytest.raises(ConnectionResetError):
            async for _ in decode_stream(source):
                pass
        assert source.close_calls == 1

    async def test_explicit_close_hook_preferred(self):
        source = ClosableSource([b'data: {"a":1}\n'])
        hook_calls = []

        async def close():
            hook_calls.append(True)

        async for _ in decode_stream(source, close=close):
            pass
        assert hook_calls == [True]
        assert source.close_calls == 0

    async def test_close_before_first_read(self):
        source = ClosableSource([b'data: {"a":1}\n'])
        stream = decode_stream(source)
        await stream.aclose()
        assert source.close_calls == 1

    async def test_repeated_close_releases_once(self):
        source = ClosableSource([b'data: {"a":1}\n'])
        stream = decode_stream(source)
        events = [e async for e in stream]
        await stream.aclose()
        await stream.aclose()
        assert len(events) == 1
        assert source.close_calls == 1

    async def test_context_manager_releases_unread_stream(self):
        source = ClosableSource([b'data: {"a":1}\n'])
        async with decode_stream(source):
            pass
        assert source.close_calls == 1

    async def test_close_hook_runs_before_first_read(self):
        hook_calls = []

        async def close():
            hook_calls.append(True)

        stream = decode_stream(ClosableSource([b'data: {"a":1}\n']), close=close)
        await stream.aclose()
        assert hook_calls == [True]
