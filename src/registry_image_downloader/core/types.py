"""Core configuration types and registry constants."""

from dataclasses import dataclass

DEFAULT_REGISTRY = "registry-1.docker.io"
DOCKER_HUB_ALIASES = frozenset({"docker.io", "index.docker.io", DEFAULT_REGISTRY})
DOCKER_HUB_AUTH_URL = "https://auth.docker.io/token"
DOCKER_HUB_AUTH_SERVICE = "registry.docker.io"

MEDIA_TYPE_DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_DOCKER_MANIFEST_LIST = (
    "application/vnd.docker.distribution.manifest.list.v2+json"
)
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"

# Order is preference order for content negotiation
MANIFEST_ACCEPT_TYPES = (
    MEDIA_TYPE_DOCKER_MANIFEST,
    MEDIA_TYPE_DOCKER_MANIFEST_LIST,
    MEDIA_TYPE_OCI_MANIFEST,
    MEDIA_TYPE_OCI_INDEX,
)


@dataclass(frozen=True)
class RegistryConfig:
    """Connection settings for a single registry.

    Attributes:
        url: Registry base URL (e.g., https://registry-1.docker.io)
        auth_url: Bearer token endpoint; discovered from the registry's
            ``WWW-Authenticate`` challenge when not set
        auth_service: ``service`` parameter sent to the token endpoint
        timeout: Connect and per-read socket timeout in seconds
        chunk_size: Read size used when relaying blob bodies
    """

    url: str
    auth_url: str | None = None
    auth_service: str | None = None
    timeout: int = 30
    chunk_size: int = 64 * 1024

    @property
    def base_url(self) -> str:
        """Registry URL without a trailing slash."""
        return self.url.rstrip("/")

    @classmethod
    def for_registry(cls, registry: str, timeout: int = 30) -> "RegistryConfig":
        """Build the configuration for a registry host.

        Args:
            registry: Registry host, optionally with a port
            timeout: Connect and per-read socket timeout in seconds

        Returns:
            RegistryConfig scoped to that host
        """
        if registry in DOCKER_HUB_ALIASES:
            return cls(
                url=f"https://{DEFAULT_REGISTRY}",
                auth_url=DOCKER_HUB_AUTH_URL,
                auth_service=DOCKER_HUB_AUTH_SERVICE,
                timeout=timeout,
            )
        return cls(url=f"https://{registry}", timeout=timeout)
