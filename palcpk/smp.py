"""Reading and unpacking SMP music archives."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType

from .cpk import CpkError
from .formats import HEADER_SIZE, MAX_FILE_SIZE, FileIndex, Header, parse_index
from .xxtea import decrypt_index, rst_decrypt

log = logging.getLogger(__name__)

DEFAULT_NAME = "PAL4_DEC"
_PEEK_SIZE = 0x10
_SIGNATURE_MASK = 0x00FFFFFF


def smp_type(header: bytes) -> str:
    """Return the extension for an entry; SMP archives hold MP3 audio."""
    word = bytes(header[:4]).ljust(4, b"\x00")
    signature = int.from_bytes(word, "little") & _SIGNATURE_MASK
    log.debug("entry signature 0x%06X treated as MP3", signature)
    return "MP3"


class SmpArchive:
    """An open SMP archive."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._fh = self.path.open("rb")
        self.header: Header | None = None
        self.entries: list[FileIndex] = []

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> SmpArchive:
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
        buffer = self._read_at(HEADER_SIZE, size).ljust(MAX_FILE_SIZE, b"\x00")
        decrypted = decrypt_index(buffer, MAX_FILE_SIZE)
        try:
            entries = parse_index(decrypted, header.file_count)
        except ValueError as exc:
            raise CpkError(str(exc)) from exc
        self.header = header
        self.entries = entries
        return entries

    def _ensure_index(self) -> list[FileIndex]:
        if self.header is None:
            self.read_index()
        return self.entries

    def output_names(self, name: str | None = None) -> list[str]:
        """Return the file name each entry is written under."""
        base = DEFAULT_NAME if name is None else name
        names = []
        for number, entry in enumerate(self._ensure_index()):
            self._fh.seek(entry.offset)
            extension = smp_type(self._fh.read(_PEEK_SIZE))
            if number == 0:
                names.append(f"{base}.{extension}")
            else:
                names.append(f"{base}_{number:02X}.{extension}")
        return names

    def _decrypted_data(self, entry: FileIndex) -> bytes:
        raw = self._read_at(entry.offset, entry.packed_size)
        count = entry.packed_size // 4
        if count < 2:
            return raw
        return rst_decrypt(raw, count)

    def extract(
        self, dest: str | os.PathLike[str], name: str | None = None
    ) -> list[Path]:
        """Decrypt every entry into *dest*; return the files written."""
        target_root = Path(dest)
        target_root.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for number, (file_name, entry) in enumerate(
            zip(self.output_names(name), self._ensure_index())
        ):
            target = target_root / file_name
            data = self._decrypted_data(entry)
            target.write_bytes(data)
            log.info(
                "(%d) %s <0x%08X> %d bytes", number, file_name, entry.offset, len(data)
            )
            written.append(target)
        return written


def extract_smp(
    source: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    name: str | None = None,
) -> list[Path]:
    """Unpack the SMP archive at *source* into *dest*."""
    with SmpArchive(source) as archive:
        return archive.extract(dest, name)