"""Utility functions for the registry image downloader."""

from .digest import calculate_digest, digest_hex
from .platform import parse_platform, select_platform_manifest
from .reference import archive_filename, parse_image_name

__all__ = [
    "calculate_digest",
    "digest_hex",
    "parse_platform",
    "select_platform_manifest",
    "archive_filename",
    "parse_image_name",
]
