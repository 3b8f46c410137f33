"""Command line entry point for unpacking RST archives."""

from __future__ import annotations

import argparse
import logging
import sys

from .cpk import CpkError, extract_cpk
from .smp import extract_smp


def main(argv: list[str] | None = None) -> int:
    """Unpack an archive; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="palcpk", description="Unpack CPK and SMP archives."
    )
    parser.add_argument("source", help="archive to unpack")
    parser.add_argument("dest", help="directory to unpack into")
    parser.add_argument(
        "--smp", action="store_true", help="treat the archive as SMP music"
    )
    parser.add_argument("--name", default=None, help="base name for SMP output")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="report every entry"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )
    try:
        if args.smp:
            extract_smp(args.source, args.dest, args.name)
        else:
            extract_cpk(args.source, args.dest)
    except (CpkError, OSError) as exc:
        print(f"palcpk: {exc}", file=sys.stderr)
        return 1
    print("Unpack finished!")
    return 0


if __name__ == "__main__":
    sys.exit(main())