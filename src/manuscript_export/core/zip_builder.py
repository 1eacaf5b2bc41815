"""Minimal ZIP writer using the stored (uncompressed) method only."""

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from manuscript_export.errors import ArchiveError

LOCAL_HEADER_SIGNATURE = 0x04034B50
CENTRAL_HEADER_SIGNATURE = 0x02014B50
END_OF_CENTRAL_DIR_SIGNATURE = 0x06054B50

LOCAL_HEADER = struct.Struct("<IHHHHHIIIHH")  # 30 bytes
CENTRAL_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")  # 46 bytes
END_OF_CENTRAL_DIR = struct.Struct("<IHHHHIIH")  # 22 bytes

ZIP_VERSION = 20
METHOD_STORED = 0
MAX_UINT32 = 0xFFFFFFFF
MAX_UINT16 = 0xFFFF


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (c >> 1) ^ 0xEDB88320 if c & 1 else c >> 1
        table.append(c)
    return tuple(table)


CRC_TABLE = _make_crc_table()


def crc32(data: bytes) -> int:
    """CRC-32 (reflected polynomial 0xEDB88320) as used by ZIP."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


@dataclass(frozen=True)
class ArchiveEntry:
    """One file to place in the archive."""

    path: str
    data: bytes

    @classmethod
    def text(cls, path: str, content: str) -> "ArchiveEntry":
        return cls(path=path, data=content.encode("utf-8"))

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def crc32(self) -> int:
        return crc32(self.data)


@dataclass(frozen=True)
class StoredEntry:
    """Entry as read back from an archive."""

    path: str
    data: bytes
    crc32: int
    offset: int


def _encode_name(path: str) -> bytes:
    if not path:
        raise ArchiveError("Entry path is empty")
    try:
        name = path.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ArchiveError(f"Entry path is not UTF-8 encodable: {path!r}") from e
    if len(name) > MAX_UINT16:
        raise ArchiveError(f"Entry path too long: {path[:40]}...")
    return name


def build_zip(entries: Sequence[ArchiveEntry]) -> bytes:
    """Assemble entries, in order, into a ZIP archive.

    Each entry gets a local header followed by its raw bytes; the central
    directory and end record follow the last entry. Modification times are
    left zeroed.
    """
    if not entries:
        raise ArchiveError("Cannot build an archive with no entries")
    if len(entries) > MAX_UINT16:
        raise ArchiveError(f"Too many entries: {len(entries)}")

    body = bytearray()
    central = bytearray()

    for entry in entries:
        name = _encode_name(entry.path)
        data = entry.data
        size = len(data)
        if size > MAX_UINT32:
            raise ArchiveError(f"Entry too large for a ZIP32 archive: {entry.path}")
        crc = crc32(data)
        offset = len(body)
        if offset > MAX_UINT32:
            raise ArchiveError("Archive exceeds the ZIP32 size limit")

        body += LOCAL_HEADER.pack(
            LOCAL_HEADER_SIGNATURE,
            ZIP_VERSION,  # version needed
            0,  # flags
            METHOD_STORED,
            0,  # mod time
            0,  # mod date
            crc,
            size,  # compressed size
            size,  # uncompressed size
            len(name),
            0,  # extra length
        )
        body += name
        body += data

        central += CENTRAL_HEADER.pack(
            CENTRAL_HEADER_SIGNATURE,
            ZIP_VERSION,  # version made by
            ZIP_VERSION,  # version needed
            0,  # flags
            METHOD_STORED,
            0,  # mod time
            0,  # mod date
            crc,
            size,
            size,
            len(name),
            0,  # extra length
            0,  # comment length
            0,  # disk number start
            0,  # internal attributes
            0,  # external attributes
            offset,
        )
        central += name

    central_offset = len(body)
    if central_offset + len(central) > MAX_UINT32:
        raise ArchiveError("Archive exceeds the ZIP32 size limit")

    end = END_OF_CENTRAL_DIR.pack(
        END_OF_CENTRAL_DIR_SIGNATURE,
        0,  # this disk
        0,  # disk with central directory
        len(entries),  # entries on this disk
        len(entries),  # total entries
        len(central),
        central_offset,
        0,  # comment length
    )
    return bytes(body + central + end)


# =============================================================================
# Reading back
# =============================================================================


def _find_end_record(data: bytes) -> int:
    position = data.rfind(struct.pack("<I", END_OF_CENTRAL_DIR_SIGNATURE))
    if position < 0 or position + END_OF_CENTRAL_DIR.size > len(data):
        raise ArchiveError("End of central directory record not found")
    return position


def read_zip_entries(data: bytes) -> list[StoredEntry]:
    """Read a stored-only archive through its central directory.

    Raises ArchiveError when local headers, central records and the end
    record disagree.
    """
    end_pos = _find_end_record(data)
    (_, _, _, disk_entries, total_entries, central_size, central_offset, _) = (
        END_OF_CENTRAL_DIR.unpack_from(data, end_pos)
    )
    if disk_entries != total_entries:
        raise ArchiveError("Split archives are not supported")
    if central_offset + central_size != end_pos:
        raise ArchiveError("Central directory size does not match its position")

    entries = []
    position = central_offset
    for _ in range(total_entries):
        fields = CENTRAL_HEADER.unpack_from(data, position)
        if fields[0] != CENTRAL_HEADER_SIGNATURE:
            raise ArchiveError(f"Bad central directory signature at {position}")
        method, crc, compressed, size = fields[4], fields[7], fields[8], fields[9]
        name_len, extra_len, comment_len = fields[10], fields[11], fields[12]
        local_offset = fields[16]
        name = data[position + CENTRAL_HEADER.size : position + CENTRAL_HEADER.size + name_len]
        position += CENTRAL_HEADER.size + name_len + extra_len + comment_len

        if method != METHOD_STORED or compressed != size:
            raise ArchiveError(f"Entry {name!r} is not stored")

        local = LOCAL_HEADER.unpack_from(data, local_offset)
        if local[0] != LOCAL_HEADER_SIGNATURE:
            raise ArchiveError(f"Bad local header signature at {local_offset}")
        local_name_len, local_extra_len = local[9], local[10]
        start = local_offset + LOCAL_HEADER.size + local_name_len + local_extra_len
        if data[local_offset + LOCAL_HEADER.size : local_offset + LOCAL_HEADER.size + local_name_len] != name:
            raise ArchiveError(f"Local header name differs for {name!r}")

        entries.append(
            StoredEntry(
                path=name.decode("utf-8"),
                data=data[start : start + size],
                crc32=crc,
                offset=local_offset,
            )
        )

    if position != end_pos:
        raise ArchiveError("Central directory has trailing bytes")
    return entries


def count_local_headers(data: bytes) -> int:
    """Walk local headers from the start of the archive and count them."""
    count = 0
    position = 0
    while position + 4 <= len(data):
        (signature,) = struct.unpack_from("<I", data, position)
        if signature != LOCAL_HEADER_SIGNATURE:
            break
        local = LOCAL_HEADER.unpack_from(data, position)
        position += LOCAL_HEADER.size + local[9] + local[10] + local[7]
        count += 1
    return count
