"""Registry Image Downloader - build docker-load tar archives from Registry API v2."""

__version__ = "0.1.0"

from .core.registry_client import RegistryClient
from .core.types import RegistryConfig
from .exceptions import (
    ArchiveError,
    AuthenticationError,
    BlobDownloadError,
    MalformedReferenceError,
    ManifestNotFoundError,
    PlatformNotAvailableError,
    RegistryError,
)
from .models import ImageReference, Platform
from .registry import download_image_tar, stream_image_tar
from .utils.platform import parse_platform, select_platform_manifest
from .utils.reference import archive_filename, parse_image_name

__all__ = [
    "RegistryClient",
    "RegistryConfig",
    "ImageReference",
    "Platform",
    "download_image_tar",
    "stream_image_tar",
    "parse_image_name",
    "parse_platform",
    "select_platform_manifest",
    "archive_filename",
    "RegistryError",
    "AuthenticationError",
    "ManifestNotFoundError",
    "PlatformNotAvailableError",
    "BlobDownloadError",
    "MalformedReferenceError",
    "ArchiveError",
]
