"""Reader and extractor for PAKO archives."""

from __future__ import annotations

import argparse
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path

_HEADER = struct.Struct("<IiiI")
_ENTRY_SIZE = 20


@dataclass(frozen=True)
class PakoHeader:
    """Archive header: magic, string table offset, data offset, file count."""

    magic: int
    off_str: int
    off_dat: int
    n_files: int


@dataclass
class PakoEntry:
    """One file record of the archive."""

    filename_offset: int
    size: int
    content_offset: int
    checksum: int
    filename: str = ""


def xor_checksum(data: bytes) -> int:
    """XOR of *data* taken as little-endian 64-bit words, the last zero-padded."""
    result = 0
    for start in range(0, len(data), 8):
        result ^= int.from_bytes(data[start:start + 8], "little")
    return result


@dataclass
class PakoArchive:
    """A parsed archive together with its raw bytes."""

    header: PakoHeader
    entries: list[PakoEntry] = field(default_factory=list)
    data: bytes = b""

    def content(self, entry: PakoEntry) -> bytes:
        """Return the stored bytes of *entry*."""
        start = self.header.off_dat + entry.content_offset
        return self.data[start:start + entry.size]

    def verify(self, entry: PakoEntry) -> bool:
        """Tell whether the checksum of *entry* matches its content."""
        return xor_checksum(self.content(entry)) == entry.checksum


def _unpack(fmt: str, data: bytes, offset: int) -> int:
    try:
        return struct.unpack_from(fmt, data, offset)[0]
    except struct.error as exc:
        raise ValueError(f"archive truncated at offset {offset}") from exc


def read_archive(data: bytes) -> PakoArchive:
    """Parse the header, file records and file names of an archive."""
    if len(data) < _HEADER.size:
        raise ValueError("archive truncated: header incomplete")
    header = PakoHeader(*_HEADER.unpack_from(data, 0))

    entries = []
    for index in range(header.n_files):
        pos = _HEADER.size + index * _ENTRY_SIZE
        entries.append(
            PakoEntry(
                filename_offset=_unpack("<i", data, pos),
                size=_unpack(">I", data, pos + 4),
                content_offset=_unpack("<i", data, pos + 8),
                checksum=_unpack(">Q", data, pos + 12),
            )
        )

    pos = header.off_str
    for entry in entries:
        end = data.find(b"\0", pos)
        if end == -1:
            end = len(data)
        entry.filename = data[pos:end].decode("utf-8", "surrogateescape")
        pos = end + 1

    return PakoArchive(header=header, entries=entries, data=data)


def _write_entry(archive: PakoArchive, entry: PakoEntry, dest_dir: Path) -> Path:
    target = Path(dest_dir) / entry.filename
    fd = os.open(target, os.O_WRONLY | os.O_CREAT, 0o644)
    with os.fdopen(fd, "wb") as out:
        out.write(archive.content(entry))
    return target


def extract(path: str | os.PathLike, dest_dir: str | os.PathLike) -> list[Path]:
    """Write every file whose checksum holds into *dest_dir*; return their paths."""
    archive = read_archive(Path(path).read_bytes())
    return [
        _write_entry(archive, entry, Path(dest_dir))
        for entry in archive.entries
        if archive.verify(entry)
    ]


def main(argv: list[str] | None = None) -> int:
    """List an archive, check each file and extract the sound ones."""
    parser = argparse.ArgumentParser(prog="pako", description=main.__doc__)
    parser.add_argument("archive")
    parser.add_argument("dest_dir")
    args = parser.parse_args(argv)

    archive = read_archive(Path(args.archive).read_bytes())
    header = archive.header
    print(header.magic, header.off_str, header.off_dat, header.n_files)
    for number, entry in enumerate(archive.entries, 1):
        print(
            f"{number}: {entry.filename_offset} {entry.size} "
            f"{entry.content_offset} {entry.checksum}"
        )
    for number, entry in enumerate(archive.entries, 1):
        print(f"{number}: {entry.filename}")
    print()

    for number, entry in enumerate(archive.entries, 1):
        ok = archive.verify(entry)
        print(f"{number}'s checkSum: {int(ok)}")
        if ok:
            print(f"Create file: {entry.filename}")
            print(f"{args.dest_dir}/{entry.filename}")
            _write_entry(archive, entry, Path(args.dest_dir))
    return 0