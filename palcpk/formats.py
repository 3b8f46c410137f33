"""On-disk structures of RST archives (CPK and SMP)."""

from __future__ import annotations

import struct
from dataclasses import dataclass

FILE_LOGON = 0x1A545352
MAX_FILE_SIZE = 0x100000
HEADER_SIZE = 0x80
INDEX_ENTRY_SIZE = 0x20
FILETYPE_FOLDER = 0x00003
FILETYPE_FILE = 0x20001

_RESERVED_WORDS = 0x14
_HEADER = struct.Struct("<12I20I")
_ENTRY = struct.Struct("<8I")


@dataclass
class Header:
    """The 0x80-byte header at the start of an RST archive."""

    magic: int = FILE_LOGON
    unknown1: int = 0
    index_offset: int = 0
    data_offset: int = 0
    max_entries: int = 0
    file_count: int = 0
    unknown7: int = 0
    unknown8: int = 0
    unknown9: int = 0
    unknown10: int = 0
    unknown11: int = 0
    archive_size: int = 0
    reserved: tuple[int, ...] = (0,) * _RESERVED_WORDS

    def __post_init__(self) -> None:
        self.reserved = tuple(self.reserved)

    @property
    def is_valid(self) -> bool:
        """True when the header carries the RST signature."""
        return self.magic == FILE_LOGON

    @property
    def index_size(self) -> int:
        """Number of bytes taken by the index table."""
        return self.max_entries * INDEX_ENTRY_SIZE

    @classmethod
    def from_bytes(cls, data: bytes) -> Header:
        """Decode a header from the first 0x80 bytes of *data*."""
        if len(data) < HEADER_SIZE:
            raise ValueError(
                f"header needs {HEADER_SIZE} bytes, got {len(data)}"
            )
        values = _HEADER.unpack_from(data)
        return cls(*values[:12], reserved=tuple(values[12:]))

    def to_bytes(self) -> bytes:
        """Encode the header as 0x80 bytes."""
        if len(self.reserved) != _RESERVED_WORDS:
            raise ValueError(
                f"reserved must hold {_RESERVED_WORDS} words, "
                f"got {len(self.reserved)}"
            )
        try:
            return _HEADER.pack(
                self.magic,
                self.unknown1,
                self.index_offset,
                self.data_offset,
                self.max_entries,
                self.file_count,
                self.unknown7,
                self.unknown8,
                self.unknown9,
                self.unknown10,
                self.unknown11,
                self.archive_size,
                *self.reserved,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc


@dataclass
class FileIndex:
    """One 0x20-byte entry of the archive index."""

    vid: int = 0
    kind: int = FILETYPE_FILE
    parent_vid: int = 0
    offset: int = 0
    packed_size: int = 0
    size: int = 0
    name_length: int = 0
    end: int = 0

    @property
    def is_folder(self) -> bool:
        return self.kind == FILETYPE_FOLDER

    @property
    def is_compressed(self) -> bool:
        """True when the stored data differs in length from the original."""
        return self.packed_size != self.size

    @classmethod
    def from_bytes(cls, data: bytes) -> FileIndex:
        """Decode an entry from the first 0x20 bytes of *data*."""
        if len(data) < INDEX_ENTRY_SIZE:
            raise ValueError(
                f"index entry needs {INDEX_ENTRY_SIZE} bytes, got {len(data)}"
            )
        return cls(*_ENTRY.unpack_from(data))

    def to_bytes(self) -> bytes:
        """Encode the entry as 0x20 bytes."""
        try:
            return _ENTRY.pack(
                self.vid,
                self.kind,
                self.parent_vid,
                self.offset,
                self.packed_size,
                self.size,
                self.name_length,
                self.end,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc


def parse_index(data: bytes, count: int) -> list[FileIndex]:
    """Decode the first *count* entries of an index table."""
    if count < 0:
        raise ValueError("entry count must not be negative")
    needed = count * INDEX_ENTRY_SIZE
    if len(data) < needed:
        raise ValueError(f"index needs {needed} bytes, got {len(data)}")
    view = memoryview(data)
    return [
        FileIndex.from_bytes(view[start:start + INDEX_ENTRY_SIZE])
        for start in range(0, needed, INDEX_ENTRY_SIZE)
    ]