"""Data models for tar archive entries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TarEntry:
    """A regular file in the archive."""

    name: str
    size: int
    mtime: int = 0
