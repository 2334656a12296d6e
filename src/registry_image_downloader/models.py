"""Data models for image references and registry manifests."""

from dataclasses import dataclass, field
from typing import Any, Union

from .core.types import DEFAULT_REGISTRY


@dataclass(frozen=True)
class ImageReference:
    """A parsed image reference."""

    registry: str
    repository: str
    tag: str = "latest"

    @property
    def is_docker_hub(self) -> bool:
        return self.registry == DEFAULT_REGISTRY

    @property
    def name(self) -> str:
        """Repository name as a user would type it."""
        if self.is_docker_hub:
            namespace, _, rest = self.repository.partition("/")
            if namespace == "library" and "/" not in rest:
                return rest
            return self.repository
        return f"{self.registry}/{self.repository}"

    @property
    def repo_tag(self) -> str:
        """Value written into the RepoTags of the archive's manifest.json."""
        return f"{self.name}:{self.tag}"

    def __str__(self) -> str:
        return self.repo_tag


@dataclass(frozen=True)
class Platform:
    """Target platform triple."""

    os: str
    architecture: str
    variant: str | None = None

    def __str__(self) -> str:
        parts = [self.os, self.architecture]
        if self.variant:
            parts.append(self.variant)
        return "/".join(parts)


@dataclass(frozen=True)
class BlobRef:
    """Reference to a content-addressed blob."""

    digest: str
    media_type: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlobRef":
        return cls(
            digest=data["digest"],
            media_type=data.get("mediaType", ""),
            size=int(data.get("size", 0)),
        )


@dataclass(frozen=True)
class ManifestDescriptor:
    """One child entry of a manifest list."""

    digest: str
    media_type: str
    size: int
    platform: Platform | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestDescriptor":
        platform = None
        raw_platform = data.get("platform")
        if raw_platform:
            platform = Platform(
                os=raw_platform.get("os", ""),
                architecture=raw_platform.get("architecture", ""),
                variant=raw_platform.get("variant"),
            )
        return cls(
            digest=data["digest"],
            media_type=data.get("mediaType", ""),
            size=int(data.get("size", 0)),
            platform=platform,
        )


@dataclass(frozen=True)
class ImageManifest:
    """Single-platform image manifest."""

    schema_version: int
    media_type: str
    config: BlobRef | None = None
    layers: list[BlobRef] = field(default_factory=list)

    is_manifest_list = False


@dataclass(frozen=True)
class ManifestList:
    """Multi-platform manifest list (Docker) or image index (OCI)."""

    schema_version: int
    media_type: str
    manifests: list[ManifestDescriptor] = field(default_factory=list)

    is_manifest_list = True


Manifest = Union[ImageManifest, ManifestList]


def parse_manifest(data: Any, media_type: str = "") -> Manifest:
    """Parse a registry manifest response into its tagged variant.

    Args:
        data: Decoded JSON body
        media_type: Content-Type of the response, used when the body
            does not declare ``mediaType`` itself

    Returns:
        ManifestList when the body carries a ``manifests`` array,
        otherwise ImageManifest

    Raises:
        ValueError: If the body is not a manifest object
    """
    if not isinstance(data, dict):
        raise ValueError("Manifest must be a JSON object")

    schema_version = int(data.get("schemaVersion", 0))
    declared_type = data.get("mediaType") or media_type
    children = data.get("manifests")

    if children is not None:
        if not isinstance(children, list):
            raise ValueError("manifests must be a list")
        if "layers" in data or "config" in data:
            raise ValueError("Manifest has both manifests and layers")
        return ManifestList(
            schema_version=schema_version,
            media_type=declared_type,
            manifests=[ManifestDescriptor.from_dict(child) for child in children],
        )

    raw_config = data.get("config")
    raw_layers = data.get("layers") or []
    if not isinstance(raw_layers, list):
        raise ValueError("layers must be a list")

    return ImageManifest(
        schema_version=schema_version,
        media_type=declared_type,
        config=BlobRef.from_dict(raw_config) if raw_config else None,
        layers=[BlobRef.from_dict(layer) for layer in raw_layers],
    )
