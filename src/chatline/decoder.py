"""Line-framed stream decoding.

The response body is a sequence of newline-terminated lines. Only lines of the
form ``data: <json>`` carry chunks; anything else (SSE separators, keep-alives,
comments) is ignored, and a frame whose JSON does not parse is dropped so
that unknown frame types from newer servers stay harmless.
"""

from __future__ import annotations

import codecs
import logging
from typing import Iterable, Iterator

from chatline.models import ChunkParseError, DoneChunk, StreamChunk, parse_chunk

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "


def parse_frame(line: str) -> StreamChunk | None:
    if not line.startswith(FRAME_PREFIX):
        return None
    try:
        return parse_chunk(line[len(FRAME_PREFIX):])
    except ChunkParseError as e:
        logger.debug("Skipping malformed frame: %s", e)
        return None


class ChunkDecoder:
    def __init__(self):
        # Incremental so a multi-byte character split across reads survives.
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.saw_done = False

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: bytes) -> list[StreamChunk]:
        if self.saw_done:
            return []

        self._buffer += self._utf8.decode(data)
        chunks: list[StreamChunk] = []

        while True:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline].strip()
            self._buffer = self._buffer[newline + 1:]

            chunk = parse_frame(line)
            if chunk is None:
                continue
            chunks.append(chunk)

            if isinstance(chunk, DoneChunk):
                self.saw_done = True
                self._buffer = ""
                break

        return chunks

    def finish(self) -> None:
        """Flush at end of stream. An unterminated last line is discarded."""
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        if tail.strip():
            logger.debug("Discarding unterminated trailing line (%d chars)", len(tail))


def decode_stream(
    source: Iterable[bytes], decoder: ChunkDecoder | None = None
) -> Iterator[StreamChunk]:
    """Yield chunks from ``source`` in arrival order.

    Reading stops as soon as a ``done`` chunk has been yielded. If the source
    runs out first the generator simply returns; ``decoder.saw_done`` tells
    the two endings apart.
    """
    decoder = decoder if decoder is not None else ChunkDecoder()
    if decoder.saw_done:
        return

    for data in source:
        yield from decoder.feed(data)
        if decoder.saw_done:
            return

    decoder.finish()
