# palcpk

Unpacks the `RST`-signed archive formats used by a family of PC role-playing
games:

- **CPK** archives, such as `database.cpk`. The archive holds a directory
  tree. The first 0x1000 bytes of its index table are encrypted with an XXTEA
  variant, but only when the table is longer than 0x2000 bytes. Each entry's
  data is either stored as is or compressed with LZO1X.
- **SMP** archives. Each entry is encrypted with XXTEA and is written out as a
  separate `.MP3` file.

The package is pure Python and needs no third-party libraries.

## Installation

```
pip install .
```

## Command line

```
palcpk path/to/database.cpk path/to/output/
palcpk --smp --name MUSIC path/to/music.smp path/to/output/
```

Options:

- `--smp`: treat the archive as an SMP music archive. Without it the archive
  is read as CPK.
- `--name NAME`: the base name for SMP output files. The default is
  `PAL4_DEC`.
- `-v`, `--verbose`: log every entry as it is written.

On success the command prints `Unpack finished!` and exits with status 0. If
the archive cannot be read or unpacked, it prints `palcpk: <reason>` to
standard error and exits with status 1.

For a CPK archive the command first writes the decrypted index table, padded
to 1 MiB, as `index.bin` in the output directory. It then creates a directory
for each folder entry. Each file entry is written under the folder named by
its parent entry. An entry is decompressed when its stored size differs from
its original size. Entry names are stored after each entry's data and are
decoded as GBK. Data is read from offset 0x100000 onward, so an archive no
larger than that is rejected.

For an SMP archive, the entries are written to the output directory as
`NAME.MP3`, `NAME_01.MP3`, `NAME_02.MP3`, and so on. The suffix is the entry
number as two or more hexadecimal digits.

## Library use

```python
from palcpk.cpk import CpkArchive, extract_cpk
from palcpk.smp import SmpArchive, extract_smp

# Unpack a whole CPK archive in one call; returns the paths written.
extract_cpk("database.cpk", "out/")

# Or work through the entries yourself.
with CpkArchive("database.cpk") as archive:
    for entry in archive.read_index():
        if not entry.is_folder:
            print(archive.entry_name(entry), len(archive.entry_data(entry)))

# SMP music archives.
extract_smp("music.smp", "out/", "PAL4_DEC")
with SmpArchive("music.smp") as archive:
    print(archive.output_names("PAL4_DEC"))
```

`palcpk.cpk.detect_type` reports `"BIK"` or `"unk"` from an entry's first
bytes. `palcpk.smp.smp_type` always reports `"MP3"`.

Lower-level building blocks are available as separate modules:

- `palcpk.formats`: `Header` and `FileIndex`, the fixed-layout archive records
  (each has `from_bytes` and `to_bytes`), plus `parse_index`.
- `palcpk.xxtea`:
  - `load_key` builds the 256-byte key buffer. The built-in key is used
    unless all three parts are given.
  - `rst_decrypt` is the archive's decryption routine.
  - `btea` is textbook XXTEA. A positive word count encrypts and a negative
    one decrypts.
  - `decrypt_index` decrypts an index table.
- `palcpk.lzo`: `decompress` for LZO1X data. It raises `LzoError` on corrupt
  input and when the output would exceed the optional limit.

Problems with an archive are reported as `palcpk.cpk.CpkError`, for both
archive kinds. Such problems include a missing `RST` signature, a short file,
an entry outside the data area, or an entry that fails to decompress.

## What it does not do

The package only reads archives. It cannot create or repack CPK or SMP
archives, and it has no LZO compressor.

## Running the tests

```
pip install .[test]
pytest
```