"""LZO1X decompression."""

from __future__ import annotations

import enum

_M2_MAX_OFFSET = 0x0800


class LzoError(ValueError):
    """Raised when an LZO1X stream cannot be decompressed."""


class _State(enum.Enum):
    LITERAL_RUN = enum.auto()
    FIRST_LITERAL = enum.auto()
    MATCH = enum.auto()
    MATCH_NEXT = enum.auto()


class _Stream:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def byte(self) -> int:
        if self.pos >= len(self.data):
            raise LzoError("input overrun")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if end > len(self.data):
            raise LzoError("input overrun")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def le16(self) -> int:
        return int.from_bytes(self.take(2), "little")

    def run_length(self, base: int) -> int:
        extra = 0
        while (value := self.byte()) == 0:
            extra += 255
        return extra + base + value

    def trailing_literals(self) -> int:
        return self.data[self.pos - 2] & 3


class _Output:
    def __init__(self, limit: int | None) -> None:
        self.buf = bytearray()
        self.limit = limit

    def _reserve(self, count: int) -> None:
        if self.limit is not None and len(self.buf) + count > self.limit:
            raise LzoError("output overrun")

    def literal(self, chunk: bytes) -> None:
        self._reserve(len(chunk))
        self.buf += chunk

    def copy(self, distance: int, length: int) -> None:
        start = len(self.buf) - distance
        if start < 0:
            raise LzoError("lookbehind overrun")
        self._reserve(length)
        if distance >= length:
            self.buf += self.buf[start:start + length]
        else:
            for offset in range(length):
                self.buf.append(self.buf[start + offset])


def _match(stream: _Stream, out: _Output, t: int) -> bool:
    """Copy one match; return False at the end-of-stream marker."""
    if t >= 64:
        distance = 1 + ((t >> 2) & 7) + (stream.byte() << 3)
        length = (t >> 5) + 1
    elif t >= 32:
        t &= 31
        if t == 0:
            t = stream.run_length(31)
        distance = 1 + (stream.le16() >> 2)
        length = t + 2
    elif t >= 16:
        distance = (t & 8) << 11
        t &= 7
        if t == 0:
            t = stream.run_length(7)
        distance += stream.le16() >> 2
        if distance == 0:
            return False
        distance += 0x4000
        length = t + 2
    else:
        distance = 1 + (t >> 2) + (stream.byte() << 2)
        length = 2
    out.copy(distance, length)
    return True


def decompress(src: bytes, out_len: int | None = None) -> bytes:
    """Decompress an LZO1X stream.

    *out_len*, when given, is the largest output accepted.
    """
    stream = _Stream(bytes(src))
    out = _Output(out_len)
    state = _State.LITERAL_RUN
    t = 0

    if stream.data and stream.data[0] > 17:
        t = stream.byte() - 17
        if t < 4:
            state = _State.MATCH_NEXT
        else:
            out.literal(stream.take(t))
            state = _State.FIRST_LITERAL

    while True:
        if state is _State.LITERAL_RUN:
            t = stream.byte()
            if t >= 16:
                state = _State.MATCH
                continue
            if t == 0:
                t = stream.run_length(15)
            out.literal(stream.take(t + 3))
            state = _State.FIRST_LITERAL
        elif state is _State.FIRST_LITERAL:
            t = stream.byte()
            if t >= 16:
                state = _State.MATCH
                continue
            distance = 1 + _M2_MAX_OFFSET + (t >> 2) + (stream.byte() << 2)
            out.copy(distance, 3)
            t = stream.trailing_literals()
            state = _State.MATCH_NEXT if t else _State.LITERAL_RUN
        elif state is _State.MATCH:
            if not _match(stream, out, t):
                break
            t = stream.trailing_literals()
            state = _State.MATCH_NEXT if t else _State.LITERAL_RUN
        else:
            out.literal(stream.take(t))
            t = stream.byte()
            state = _State.MATCH

    if stream.pos != len(stream.data):
        raise LzoError("input not consumed")
    return bytes(out.buf)