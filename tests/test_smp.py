import struct
from pathlib import Path

import pytest

from palcpk.cpk import CpkError
from palcpk.formats import HEADER_SIZE, FileIndex, Header
from palcpk.smp import SmpArchive, extract_smp, smp_type
from palcpk.xxtea import DELTA, load_key, rst_decrypt

MASK = 0xFFFFFFFF
MAX_ENTRIES = 0x80


def _mx_inner(y, z, total, k):
    return (((z >> 5) ^ (y << 2)) + ((y << 3) ^ (z >> 4))) ^ ((total ^ y) + (k ^ z))


def _mx_outer(y, z, total, k):
    return (((z >> 5) ^ (y << 2)) + ((y >> 3) ^ (z << 4))) ^ ((total ^ y) + (k ^ z))


def encrypt(data: bytes) -> bytes:
    n = len(data) // 4
    v = list(struct.unpack_from(f"<{n}I", data))
    k = struct.unpack_from("<4I", load_key())
    for r in range(1, 6 + 52 // n + 1):
        total = (r * DELTA) & MASK
        e = (total >> 2) & 3
        v[0] = (v[0] + _mx_outer(v[1], v[n - 1], total, k[e])) & MASK
        for p in range(1, n):
            y = v[0] if p == n - 1 else v[p + 1]
            v[p] = (v[p] + _mx_inner(y, v[p - 1], total, k[(p & 3) ^ e])) & MASK
    return struct.pack(f"<{n}I", *v) + data[n * 4:]


PAYLOADS = [bytes(range(32)) + b"xy", b"abc", bytes(range(100, 140))]


def build_smp(path: Path):
    data_start = HEADER_SIZE + MAX_ENTRIES * 0x20
    body = bytearray()
    entries = []
    for number, payload in enumerate(PAYLOADS):
        stored = encrypt(payload) if len(payload) >= 8 else payload
        entries.append(
            FileIndex(
                vid=number + 1,
                offset=data_start + len(body),
                packed_size=len(payload),
                size=len(payload),
            )
        )
        body += stored
    index = b"".join(e.to_bytes() for e in entries).ljust(MAX_ENTRIES * 0x20, b"\x00")
    header = Header(max_entries=MAX_ENTRIES, file_count=len(entries))
    path.write_bytes(header.to_bytes() + encrypt(index) + bytes(body))
    return entries


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "music.smp"
    return path, build_smp(path)


def test_encryption_helper_round_trips():
    plain = bytes(range(64))
    assert rst_decrypt(encrypt(plain), 16) == plain


def test_read_index(sample):
    path, entries = sample
    with SmpArchive(path) as archive:
        assert archive.read_index() == entries


def test_output_names_default(sample):
    path, _ = sample
    with SmpArchive(path) as archive:
        assert archive.output_names() == [
            "PAL4_DEC.MP3",
            "PAL4_DEC_01.MP3",
            "PAL4_DEC_02.MP3",
        ]


def test_output_names_custom(sample):
    path, _ = sample
    with SmpArchive(path) as archive:
        names = archive.output_names("track")
    assert names[0] == "track.MP3"
    assert names[1] == "track_01.MP3"


def test_extract_decrypts(sample, tmp_path):
    path, _ = sample
    dest = tmp_path / "out"
    with SmpArchive(path) as archive:
        written = archive.extract(dest)
    assert [p.name for p in written] == [
        "PAL4_DEC.MP3",
        "PAL4_DEC_01.MP3",
        "PAL4_DEC_02.MP3",
    ]
    assert [p.read_bytes() for p in written] == PAYLOADS


def test_extract_smp_with_name(sample, tmp_path):
    path, _ = sample
    dest = tmp_path / "out"
    written = extract_smp(path, dest, "song")
    assert written[0] == dest / "song.MP3"
    assert written[2].read_bytes() == PAYLOADS[2]


def test_bad_signature(tmp_path):
    path = tmp_path / "bad.smp"
    path.write_bytes(Header(magic=0).to_bytes())
    with SmpArchive(path) as archive, pytest.raises(CpkError):
        archive.read_index()


def test_truncated_entry(tmp_path):
    path = tmp_path / "cut.smp"
    entry = FileIndex(offset=HEADER_SIZE + MAX_ENTRIES * 0x20, packed_size=64, size=64)
    index = entry.to_bytes().ljust(MAX_ENTRIES * 0x20, b"\x00")
    header = Header(max_entries=MAX_ENTRIES, file_count=1)
    path.write_bytes(header.to_bytes() + encrypt(index) + b"\x01" * 8)
    with pytest.raises(CpkError):
        extract_smp(path, tmp_path / "out")


def test_smp_type():
    assert smp_type(b"ID3\x03") == "MP3"