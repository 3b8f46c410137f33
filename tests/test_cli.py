from pathlib import Path

from palcpk.cli import main
from palcpk.formats import HEADER_SIZE, MAX_FILE_SIZE, FileIndex, Header


def build_cpk(path: Path) -> None:
    payload = b"payload"
    entry = FileIndex(
        vid=1, offset=MAX_FILE_SIZE, packed_size=len(payload), size=len(payload)
    )
    header = Header(max_entries=4, file_count=1)
    blob = bytearray(MAX_FILE_SIZE)
    blob[:HEADER_SIZE] = header.to_bytes()
    blob[HEADER_SIZE:HEADER_SIZE + 0x20] = entry.to_bytes()
    blob += payload + b"file.dat\x00"
    path.write_bytes(bytes(blob))


def test_unpacks_cpk(tmp_path, capsys):
    source = tmp_path / "database.cpk"
    build_cpk(source)
    dest = tmp_path / "out"
    assert main([str(source), str(dest)]) == 0
    assert (dest / "file.dat").read_bytes() == b"payload"
    assert "Unpack finished!" in capsys.readouterr().out


def test_bad_archive_fails(tmp_path, capsys):
    source = tmp_path / "bad.cpk"
    source.write_bytes(b"\x00" * HEADER_SIZE)
    assert main([str(source), str(tmp_path / "out")]) == 1
    assert "palcpk:" in capsys.readouterr().err


def test_missing_archive_fails(tmp_path):
    assert main([str(tmp_path / "absent.cpk"), str(tmp_path / "out")]) == 1


def test_empty_smp(tmp_path, capsys):
    source = tmp_path / "music.smp"
    header = Header(max_entries=0x80, file_count=0)
    source.write_bytes(header.to_bytes() + b"\x00" * (0x80 * 0x20))
    dest = tmp_path / "out"
    assert main(["--smp", "--name", "song", str(source), str(dest)]) == 0
    assert list(dest.iterdir()) == []
    assert "Unpack finished!" in capsys.readouterr().out