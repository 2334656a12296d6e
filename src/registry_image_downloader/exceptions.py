"""Custom exceptions for the registry image downloader."""


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class AuthenticationError(RegistryError):
    """Raised when a bearer token cannot be obtained."""

    pass


class ManifestNotFoundError(RegistryError):
    """Raised when a manifest cannot be fetched or parsed."""

    pass


class PlatformNotAvailableError(RegistryError):
    """Raised when no manifest in a manifest list matches the platform."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"No manifest found for platform {platform}")
        self.platform = platform


class BlobDownloadError(RegistryError):
    """Raised when a config or layer blob cannot be retrieved."""

    def __init__(self, message: str, digest: str | None = None) -> None:
        super().__init__(message)
        self.digest = digest


class MalformedReferenceError(RegistryError, ValueError):
    """Raised when an image reference or platform string cannot be parsed."""

    pass


class ArchiveError(RegistryError):
    """Raised when an entry cannot be encoded into the tar archive."""

    pass
