import random

import pytest

from chatline.decoder import ChunkDecoder, decode_stream, parse_frame
from chatline.models import DoneChunk, ErrorChunk, TextChunk, ToolEndChunk, ToolStartChunk

from conftest import frames

SAMPLE = (
    b": keep-alive\n\n"
    + frames(
        {"type": "text", "content": "Grüße "},
        {"type": "tool_start", "name": "search"},
        {"type": "tool_end", "name": "search"},
        {"type": "text", "content": "日本語 ✓"},
    )
    + b"event: ping\n"
    + b"data: {broken json\n"
    + frames({"type": "text", "content": "🙂"}, {"type": "done"})
)

EXPECTED = [
    TextChunk(content="Grüße "),
    ToolStartChunk(name="search"),
    ToolEndChunk(name="search"),
    TextChunk(content="日本語 ✓"),
    TextChunk(content="🙂"),
    DoneChunk(),
]


def split_at(data: bytes, cuts: list[int]) -> list[bytes]:
    pieces = []
    prev = 0
    for cut in sorted(cuts):
        pieces.append(data[prev:cut])
        prev = cut
    pieces.append(data[prev:])
    return pieces


class TestParseFrame:
    def test_non_data_lines_ignored(self):
        assert parse_frame("") is None
        assert parse_frame(": comment") is None
        assert parse_frame("event: message") is None
        assert parse_frame("data:{\"type\":\"done\"}") is None

    def test_malformed_json_ignored(self):
        assert parse_frame("data: {oops") is None

    def test_data_frame(self):
        assert parse_frame('data: {"type":"done"}') == DoneChunk()


class TestChunkDecoder:
    def test_single_read(self):
        decoder = ChunkDecoder()
        assert decoder.feed(SAMPLE) == EXPECTED
        assert decoder.saw_done

    def test_byte_at_a_time(self):
        decoder = ChunkDecoder()
        chunks = []
        for i in range(len(SAMPLE)):
            chunks.extend(decoder.feed(SAMPLE[i:i + 1]))
        assert chunks == EXPECTED

    @pytest.mark.parametrize("seed", range(20))
    def test_random_read_boundaries(self, seed):
        rng = random.Random(seed)
        cuts = rng.sample(range(1, len(SAMPLE)), k=rng.randint(1, 30))
        chunks = list(decode_stream(split_at(SAMPLE, cuts)))
        assert chunks == EXPECTED

    def test_split_inside_multibyte_character(self):
        data = frames({"type": "text", "content": "é"}, {"type": "done"})
        idx = data.index("é".encode("utf-8")) + 1
        chunks = list(decode_stream([data[:idx], data[idx:]]))
        assert chunks == [TextChunk(content="é"), DoneChunk()]

    def test_partial_line_waits_for_newline(self):
        decoder = ChunkDecoder()
        assert decoder.feed(b'data: {"type":"text",') == []
        assert decoder.pending == 'data: {"type":"text",'
        assert decoder.feed(b'"content":"x"}\n') == [TextChunk(content="x")]
        assert decoder.pending == ""

    def test_multiple_frames_per_read(self):
        decoder = ChunkDecoder()
        data = frames({"type": "text", "content": "a"}, {"type": "text", "content": "b"})
        assert decoder.feed(data) == [TextChunk(content="a"), TextChunk(content="b")]

    def test_crlf_and_surrounding_whitespace(self):
        decoder = ChunkDecoder()
        data = b'  data: {"type":"text","content":"x"}  \r\n'
        assert decoder.feed(data) == [TextChunk(content="x")]

    def test_invalid_utf8_is_replaced(self):
        decoder = ChunkDecoder()
        data = b'data: {"type":"text","content":"a\xffb"}\n'
        assert decoder.feed(data) == [TextChunk(content="a\ufffdb")]

    def test_malformed_frame_does_not_stop_decoding(self):
        decoder = ChunkDecoder()
        data = b"data: nope\n" + frames({"type": "text", "content": "ok"})
        assert decoder.feed(data) == [TextChunk(content="ok")]

    def test_unknown_frame_type_skipped(self):
        decoder = ChunkDecoder()
        data = frames({"type": "usage", "tokens": 12}, {"type": "text", "content": "ok"})
        assert decoder.feed(data) == [TextChunk(content="ok")]

    def test_error_chunk_does_not_finish_decoder(self):
        decoder = ChunkDecoder()
        data = frames({"type": "error", "message": "boom"}, {"type": "text", "content": "x"})
        assert decoder.feed(data) == [ErrorChunk(message="boom"), TextChunk(content="x")]
        assert not decoder.saw_done


class TestDoneTermination:
    def test_frames_after_done_in_same_read_dropped(self):
        decoder = ChunkDecoder()
        data = frames({"type": "done"}, {"type": "text", "content": "late"})
        assert decoder.feed(data) == [DoneChunk()]

    def test_later_reads_after_done_dropped(self):
        decoder = ChunkDecoder()
        decoder.feed(frames({"type": "done"}))
        assert decoder.feed(frames({"type": "text", "content": "late"})) == []

    def test_stream_not_read_after_done(self):
        reads = []

        def source():
            for piece in [frames({"type": "done"}), frames({"type": "text", "content": "x"})]:
                reads.append(piece)
                yield piece

        chunks = list(decode_stream(source()))
        assert chunks == [DoneChunk()]
        assert len(reads) == 1

    def test_second_decode_after_done_is_noop(self):
        decoder = ChunkDecoder()
        assert list(decode_stream([frames({"type": "done"})], decoder)) == [DoneChunk()]
        assert list(decode_stream([frames({"type": "text", "content": "x"})], decoder)) == []


class TestStreamEnd:
    def test_end_without_done(self):
        decoder = ChunkDecoder()
        chunks = list(decode_stream([frames({"type": "text", "content": "x"})], decoder))
        assert chunks == [TextChunk(content="x")]
        assert not decoder.saw_done

    def test_unterminated_trailing_line_discarded(self):
        decoder = ChunkDecoder()
        data = frames({"type": "text", "content": "x"}) + b'data: {"type":"done"}'
        chunks = list(decode_stream([data], decoder))
        assert chunks == [TextChunk(content="x")]
        assert decoder.pending == ""
        assert not decoder.saw_done

    def test_empty_stream(self):
        assert list(decode_stream([])) == []

    def test_only_noise(self):
        assert list(decode_stream([b"\n\n: ping\n\nretry: 100\n"])) == []
