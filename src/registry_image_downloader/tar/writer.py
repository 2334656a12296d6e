"""Hand-rolled tar encoding for regular files.

Only the pre-POSIX (v7) header fields docker load needs are written:
name, mode, uid, gid, size, mtime, checksum and type flag. The functions
here are pure and emit bytes; the assemblers decide where they go.
"""

from typing import Iterable, Iterator

from ..exceptions import ArchiveError
from .models import TarEntry

BLOCK_SIZE = 512
NAME_SIZE = 100
# 11 octal digits plus NUL
MAX_OCTAL_VALUE = 8**11 - 1

FILE_MODE = b"0000644\x00"
OWNER_ID = b"0000000\x00"
REGULAR_FILE = b"0"
CHECKSUM_PLACEHOLDER = b" " * 8

END_OF_ARCHIVE = bytes(BLOCK_SIZE * 2)


def _octal_field(value: int, field: str) -> bytes:
    if value < 0 or value > MAX_OCTAL_VALUE:
        raise ArchiveError(f"{field} {value} does not fit in a tar header")
    return f"{value:011o}".encode("ascii") + b"\x00"


def create_tar_header(entry: TarEntry) -> bytes:
    """Encode the 512-byte header for a regular file.

    The checksum is the unsigned byte sum of the header with the checksum
    field itself held at eight spaces, written as six octal digits, NUL
    and a space.

    Args:
        entry: File name, size and modification time

    Returns:
        Header block

    Raises:
        ArchiveError: If the name is not ASCII or longer than 100 bytes,
            or size/mtime overflow their octal fields
    """
    try:
        name = entry.name.encode("ascii")
    except UnicodeEncodeError as e:
        raise ArchiveError(f"Entry name must be ASCII: {entry.name!r}") from e
    if not name or len(name) > NAME_SIZE:
        raise ArchiveError(f"Entry name must be 1-{NAME_SIZE} bytes: {entry.name!r}")

    header = bytearray(BLOCK_SIZE)
    header[0 : len(name)] = name
    header[100:108] = FILE_MODE
    header[108:116] = OWNER_ID
    header[116:124] = OWNER_ID
    header[124:136] = _octal_field(entry.size, "size")
    header[136:148] = _octal_field(entry.mtime, "mtime")
    header[148:156] = CHECKSUM_PLACEHOLDER
    header[156:157] = REGULAR_FILE

    checksum = sum(header)
    header[148:156] = f"{checksum:06o}".encode("ascii") + b"\x00 "
    return bytes(header)


def tar_padding(size: int) -> bytes:
    """Zero bytes that pad ``size`` bytes of data to a block boundary."""
    return bytes(-size % BLOCK_SIZE)


def encode_file(name: str, data: bytes, mtime: int = 0) -> Iterator[bytes]:
    """Yield header, data and padding for one in-memory file."""
    yield create_tar_header(TarEntry(name=name, size=len(data), mtime=mtime))
    yield data
    padding = tar_padding(len(data))
    if padding:
        yield padding


def create_tar_archive(files: Iterable[tuple[str, bytes]], mtime: int = 0) -> bytes:
    """Build a complete archive from in-memory files.

    Args:
        files: (name, data) pairs in archive order
        mtime: Modification time for every entry

    Returns:
        Archive bytes, terminated by two zero blocks
    """
    parts: list[bytes] = []
    for name, data in files:
        parts.extend(encode_file(name, data, mtime))
    parts.append(END_OF_ARCHIVE)
    return b"".join(parts)
