import struct

import pytest

from palcpk.formats import (
    FILE_LOGON,
    FILETYPE_FILE,
    FILETYPE_FOLDER,
    FileIndex,
    Header,
    parse_index,
)


def test_header_round_trip():
    header = Header(
        index_offset=0x80,
        data_offset=0x100000,
        max_entries=0x8000,
        file_count=7,
        archive_size=0x123456,
        reserved=tuple(range(20)),
    )
    assert Header.from_bytes(header.to_bytes()) == header


def test_header_signature_bytes_and_size():
    data = Header().to_bytes()
    assert data[:4] == b"RST\x1a"
    assert len(data) == 0x80


def test_header_field_offsets():
    words = [0] * 32
    words[0] = FILE_LOGON
    words[4] = 0x8000
    words[5] = 42
    words[11] = 999
    header = Header.from_bytes(struct.pack("<32I", *words))
    assert header.is_valid
    assert header.max_entries == 0x8000
    assert header.file_count == 42
    assert header.archive_size == 999


def test_header_invalid_signature():
    assert not Header(magic=0).is_valid


def test_header_index_size():
    assert Header(max_entries=0x8000).index_size == 0x8000 * 0x20


def test_header_short_data_raises():
    with pytest.raises(ValueError):
        Header.from_bytes(b"\x00" * 0x7F)


def test_header_bad_reserved_raises():
    with pytest.raises(ValueError):
        Header(reserved=(0, 0)).to_bytes()


def test_header_out_of_range_raises():
    with pytest.raises(ValueError):
        Header(file_count=-1).to_bytes()


def test_file_index_round_trip():
    entry = FileIndex(1, FILETYPE_FILE, 2, 0x100010, 30, 40, 8, 0)
    data = entry.to_bytes()
    assert len(data) == 0x20
    assert FileIndex.from_bytes(data) == entry


def test_file_index_field_order():
    entry = FileIndex.from_bytes(struct.pack("<8I", 11, 3, 12, 13, 14, 15, 16, 17))
    assert (entry.vid, entry.kind, entry.parent_vid, entry.offset) == (11, 3, 12, 13)
    assert (entry.packed_size, entry.size, entry.name_length, entry.end) == (14, 15, 16, 17)


def test_file_index_flags():
    folder = FileIndex(kind=FILETYPE_FOLDER, packed_size=5, size=5)
    packed = FileIndex(kind=FILETYPE_FILE, packed_size=5, size=9)
    assert folder.is_folder and not folder.is_compressed
    assert packed.is_compressed and not packed.is_folder


def test_file_index_short_data_raises():
    with pytest.raises(ValueError):
        FileIndex.from_bytes(b"\x00" * 0x1F)


def test_parse_index_reads_count_entries():
    entries = [FileIndex(vid=n, offset=n * 0x10) for n in range(5)]
    table = b"".join(e.to_bytes() for e in entries) + b"\xff" * 0x40
    parsed = parse_index(table, 5)
    assert parsed == entries


def test_parse_index_zero():
    assert parse_index(b"", 0) == []


def test_parse_index_short_raises():
    with pytest.raises(ValueError):
        parse_index(FileIndex().to_bytes(), 2)


def test_parse_index_negative_raises():
    with pytest.raises(ValueError):
        parse_index(b"", -1)