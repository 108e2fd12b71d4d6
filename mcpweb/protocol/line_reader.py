from __future__ import annotations

import asyncio
from typing import AsyncIterator, Union

from mcpweb.types import Malformed

NEWLINE = b"\n"

RawLine = Union[str, Malformed]


class LineReassembler:
    """
    Turns arbitrarily chunked bytes into complete text lines.

    Bytes are buffered until a newline arrives, so both partial lines and
    multi-byte UTF-8 sequences split across chunks are reassembled before
    decoding. Whitespace-only lines are dropped. A line that is not valid
    in the stream encoding comes back as ``Malformed`` with its bytes
    backslash-escaped; the lines around it are unaffected.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding: str = encoding
        self._buffer: bytearray = bytearray()

    def feed(self, chunk: bytes) -> list[RawLine]:
        self._buffer.extend(chunk)

        last_newline = self._buffer.rfind(NEWLINE)
        if last_newline < 0:
            return []

        complete = bytes(self._buffer[: last_newline + 1])
        del self._buffer[: last_newline + 1]

        return self._decode_lines(
            complete.split(NEWLINE)
        )

    def flush(self) -> list[RawLine]:
        """Return the unterminated tail, if any, at end of stream."""
        remainder = bytes(self._buffer)
        self._buffer.clear()
        return self._decode_lines([remainder])

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def _decode_lines(self, raw_lines: list[bytes]) -> list[RawLine]:
        lines: list[RawLine] = []
        for raw_line in raw_lines:
            try:
                text = raw_line.decode(self._encoding).strip()
            except UnicodeDecodeError as e:
                lines.append(
                    Malformed(
                        raw_text=raw_line.decode(
                            self._encoding, errors="backslashreplace"
                        ).strip(),
                        reason=(
                            f"Invalid {self._encoding} at byte "
                            f"{e.start}: {e.reason}"
                        ),
                    )
                )
                continue
            if text:
                lines.append(text)
        return lines


async def iter_lines(
    stream: asyncio.StreamReader,
    chunk_size: int = 65536,
) -> AsyncIterator[RawLine]:
    """
    Yield complete lines from ``stream`` until EOF.

    Reads fixed-size chunks instead of ``readline`` so that frames larger
    than the stream's buffer limit are still delivered whole.
    """
    reassembler = LineReassembler()
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        for line in reassembler.feed(chunk):
            yield line

    for line in reassembler.flush():
        yield line
