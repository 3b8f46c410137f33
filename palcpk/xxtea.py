"""Key handling and the XXTEA-style cipher used by RST archives."""

from __future__ import annotations

import struct
from collections.abc import Sequence

DELTA = 0x9E3779B9
KEY_BUFFER_SIZE = 0x100
INDEX_BLOCK_SIZE = 0x1000
_INDEX_MIN_LENGTH = 0x2000
_MASK = 0xFFFFFFFF

_DEFAULT_KEY_PARTS = (
    b"Vampire.C.J at ",
    b"Softstar Technology (ShangHai)",
    b" Co., Ltd",
)


def _as_bytes(part: str | bytes) -> bytes:
    return part.encode("latin-1") if isinstance(part, str) else bytes(part)


def load_key(
    key1: str | bytes | None = None,
    key2: str | bytes | None = None,
    key3: str | bytes | None = None,
) -> bytes:
    """Build the 256-byte key buffer from three parts.

    When any part is missing the built-in archive key is used.
    """
    if key1 is None or key2 is None or key3 is None:
        parts = _DEFAULT_KEY_PARTS
    else:
        parts = (_as_bytes(key1), _as_bytes(key2), _as_bytes(key3))
    joined = b"".join(parts)
    if len(joined) >= KEY_BUFFER_SIZE:
        raise ValueError(f"key must be shorter than {KEY_BUFFER_SIZE} bytes")
    return joined.ljust(KEY_BUFFER_SIZE, b"\x00")


def _key_words(key: bytes | bytearray | Sequence[int]) -> tuple[int, int, int, int]:
    if isinstance(key, (bytes, bytearray, memoryview)):
        if len(key) < 16:
            raise ValueError("key needs at least 16 bytes")
        return struct.unpack_from("<4I", key)
    words = tuple(int(w) & _MASK for w in key)
    if len(words) < 4:
        raise ValueError("key needs four words")
    return words[:4]


def _mx(y: int, z: int, total: int, k: int) -> int:
    return (((z >> 5) ^ (y << 2)) + ((y >> 3) ^ (z << 4))) ^ ((total ^ y) + (k ^ z))


def rst_decrypt(
    data: bytes, count: int, key: bytes | Sequence[int] | None = None
) -> bytes:
    """Decrypt the first *count* little-endian words of *data*.

    Bytes past those words are returned unchanged. The inner rounds mix
    with ``y << 3 ^ z >> 4`` as the archive reader does; only the word at
    position 0 uses the textbook XXTEA mixing term.
    """
    if count < 2:
        raise ValueError("at least two words are needed")
    raw = bytes(data)
    span = count * 4
    if len(raw) < span:
        raise ValueError(f"data needs {span} bytes, got {len(raw)}")
    k = _key_words(load_key() if key is None else key)
    v = list(struct.unpack_from(f"<{count}I", raw))

    total = ((6 + 52 // count) * DELTA) & _MASK
    y = v[0]
    while total:
        e = (total >> 2) & 3
        for p in range(count - 1, 0, -1):
            z = v[p - 1]
            mx = (((z >> 5) ^ (y << 2)) + ((y << 3) ^ (z >> 4))) ^ (
                (total ^ y) + (k[(p & 3) ^ e] ^ z)
            )
            y = v[p] = (v[p] - mx) & _MASK
        z = v[count - 1]
        y = v[0] = (v[0] - _mx(y, z, total, k[e])) & _MASK
        total = (total - DELTA) & _MASK
    return struct.pack(f"<{count}I", *v) + raw[span:]


def btea(words: Sequence[int], n: int, key: bytes | Sequence[int]) -> list[int]:
    """Run textbook XXTEA over the first ``abs(n)`` words.

    A positive *n* encrypts, a negative one decrypts; for ``-1 <= n <= 1``
    the words come back unchanged. The result is a new list.
    """
    v = [int(w) & _MASK for w in words]
    k = _key_words(key)
    size = abs(n)
    if size > len(v):
        raise ValueError(f"{size} words requested, only {len(v)} given")

    if n > 1:
        rounds = 6 + 52 // n
        total = 0
        z = v[n - 1]
        for _ in range(rounds):
            total = (total + DELTA) & _MASK
            e = (total >> 2) & 3
            for p in range(n - 1):
                y = v[p + 1]
                z = v[p] = (v[p] + _mx(y, z, total, k[(p & 3) ^ e])) & _MASK
            y = v[0]
            z = v[n - 1] = (
                v[n - 1] + _mx(y, z, total, k[((n - 1) & 3) ^ e])
            ) & _MASK
    elif n < -1:
        rounds = 6 + 52 // size
        total = (rounds * DELTA) & _MASK
        y = v[0]
        while True:
            e = (total >> 2) & 3
            for p in range(size - 1, 0, -1):
                z = v[p - 1]
                y = v[p] = (v[p] - _mx(y, z, total, k[(p & 3) ^ e])) & _MASK
            z = v[size - 1]
            y = v[0] = (v[0] - _mx(y, z, total, k[e])) & _MASK
            total = (total - DELTA) & _MASK
            if total == 0:
                break
    return v


def decrypt_index(buffer: bytes, length: int) -> bytes:
    """Decrypt an index table of *length* bytes held at the start of *buffer*.

    Only the leading 0x1000 bytes are encrypted, and only tables longer than
    0x2000 bytes are touched; everything else is returned unchanged.
    """
    raw = bytes(buffer)
    if length > len(raw):
        raise ValueError(f"length {length} exceeds buffer of {len(raw)} bytes")
    if length <= _INDEX_MIN_LENGTH:
        return raw
    head = rst_decrypt(raw[:INDEX_BLOCK_SIZE], INDEX_BLOCK_SIZE // 4, load_key())
    return head + raw[INDEX_BLOCK_SIZE:]