"""Reading and unpacking CPK archives."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType

from .formats import HEADER_SIZE, MAX_FILE_SIZE, FileIndex, Header, parse_index
from .lzo import LzoError, decompress
from .xxtea import decrypt_index

log = logging.getLogger(__name__)

DATA_START = MAX_FILE_SIZE
INDEX_FILE = "index.bin"
NAME_MAX = 260
NAME_ENCODING = "gbk"
_PAGE = 0x1000
_SIGNATURE_MASK = 0x00FFFFFF
_BIK_SIGNATURE = int.from_bytes(b"BIK\x00", "little")


class CpkError(Exception):
    """Raised when an archive cannot be read or unpacked."""


def _signature(header: bytes) -> int:
    """Return the low three bytes of the first little-endian word."""
    word = bytes(header[:4]).ljust(4, b"\x00")
    return int.from_bytes(word, "little") & _SIGNATURE_MASK


def detect_type(header: bytes) -> str:
    """Guess the kind of an entry from its first bytes."""
    signature = _signature(header)
    if signature == _BIK_SIGNATURE:
        return "BIK"
    return "unk"


def _unpacked_capacity(size: int) -> int:
    if size <= _PAGE:
        return _PAGE
    return (size // _PAGE) * _PAGE + _PAGE


def _name_parts(name: str) -> list[str]:
    return [
        part
        for part in name.replace("\\", "/").split("/")
        if part not in ("", ".", "..")
    ]


class CpkArchive:
    """An open CPK archive."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._fh = self.path.open("rb")
        self.size = os.fstat(self._fh.fileno()).st_size
        self.header: Header | None = None
        self.entries: list[FileIndex] = []
        self.index_data = b""

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> CpkArchive:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _read_at(self, offset: int, length: int) -> bytes:
        self._fh.seek(offset)
        data = self._fh.read(length)
        if len(data) != length:
            raise CpkError(
                f"short read at 0x{offset:08X}: wanted {length}, got {len(data)}"
            )
        return data

    def read_index(self) -> list[FileIndex]:
        """Read the header and decrypt the index table."""
        self._fh.seek(0)
        raw = self._fh.read(HEADER_SIZE)
        if len(raw) < HEADER_SIZE:
            raise CpkError("archive is too short for a header")
        header = Header.from_bytes(raw)
        if not header.is_valid:
            raise CpkError("archive lacks the RST signature")
        size = header.index_size
        if size > MAX_FILE_SIZE:
            raise CpkError(f"index of {size} bytes is too large")
        index = decrypt_index(self._read_at(HEADER_SIZE, size), size)
        padded = index.ljust(MAX_FILE_SIZE, b"\x00")
        try:
            entries = parse_index(padded, header.file_count)
        except ValueError as exc:
            raise CpkError(str(exc)) from exc
        self.header = header
        self.index_data = padded
        self.entries = entries
        return entries

    def _check_region(self, start: int, length: int) -> None:
        if start < DATA_START or start + length > self.size:
            raise CpkError(
                f"region 0x{start:08X}+{length} lies outside the data area"
            )

    def entry_name(self, entry: FileIndex) -> str:
        """Return the name stored right after an entry's data."""
        start = entry.offset + entry.packed_size
        self._check_region(start, 0)
        self._fh.seek(start)
        raw = self._fh.read(min(NAME_MAX, self.size - start))
        return raw.split(b"\x00", 1)[0].decode(NAME_ENCODING, errors="replace")

    def entry_data(self, entry: FileIndex) -> bytes:
        """Return an entry's contents, decompressed when needed."""
        self._check_region(entry.offset, entry.packed_size)
        raw = self._read_at(entry.offset, entry.packed_size)
        if not entry.is_compressed:
            return raw
        try:
            return decompress(raw, _unpacked_capacity(entry.size))
        except LzoError as exc:
            raise CpkError(
                f"entry at 0x{entry.offset:08X} failed to decompress: {exc}"
            ) from exc

    def extract(self, dest: str | os.PathLike[str]) -> list[Path]:
        """Unpack every entry below *dest*; return the files written."""
        target_root = Path(dest)
        target_root.mkdir(parents=True, exist_ok=True)
        if self.header is None:
            self.read_index()
        (target_root / INDEX_FILE).write_bytes(self.index_data)
        if self.size <= DATA_START:
            raise CpkError("archive holds no data area")

        by_vid: dict[int, FileIndex] = {}
        for entry in self.entries:
            by_vid.setdefault(entry.vid, entry)

        written: list[Path] = []
        for number, entry in enumerate(self.entries):
            name = self.entry_name(entry)
            if entry.is_folder:
                target_root.joinpath(*_name_parts(name)).mkdir(
                    parents=True, exist_ok=True
                )
                continue
            folder = target_root
            if entry.parent_vid:
                parent = by_vid.get(entry.parent_vid)
                if parent is not None:
                    folder = target_root.joinpath(
                        *_name_parts(self.entry_name(parent))
                    )
            parts = _name_parts(name)
            if not parts:
                raise CpkError(f"entry {number} has no usable name")
            target = folder.joinpath(*parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.entry_data(entry))
            log.info(
                "(%d/%d) %s <0x%08X> %d -> %d bytes",
                number,
                len(self.entries),
                target,
                entry.offset,
                entry.packed_size,
                entry.size,
            )
            written.append(target)
        return written


def extract_cpk(
    source: str | os.PathLike[str], dest: str | os.PathLike[str]
) -> list[Path]:
    """Unpack the CPK archive at *source* into *dest*."""
    with CpkArchive(source) as archive:
        return archive.extract(dest)