"""Image resolution shared by the buffered and streaming assemblers."""

import json
import logging
from dataclasses import dataclass

from ..core.registry_client import RegistryClient
from ..exceptions import (
    BlobDownloadError,
    ManifestNotFoundError,
    PlatformNotAvailableError,
)
from ..models import ImageManifest, ImageReference, Platform
from ..utils.digest import calculate_digest, digest_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    """Everything needed to write an archive, except the layer bytes."""

    reference: ImageReference
    platform: Platform
    manifest: ImageManifest
    token: str | None
    config_name: str
    config_data: bytes

    @property
    def layer_names(self) -> list[str]:
        return [f"layer_{index}.tar" for index in range(len(self.manifest.layers))]

    @property
    def load_manifest(self) -> bytes:
        return create_load_manifest(
            self.config_name, self.reference.repo_tag, self.layer_names
        )


def create_load_manifest(
    config_name: str, repo_tag: str, layer_names: list[str]
) -> bytes:
    """Create the manifest.json index that docker load reads.

    Args:
        config_name: Archive name of the image config file
        repo_tag: Tag applied on load (e.g., nginx:latest)
        layer_names: Archive names of the layers, in manifest order

    Returns:
        JSON bytes of a single-element array
    """
    index = [
        {
            "Config": config_name,
            "RepoTags": [repo_tag],
            "Layers": layer_names,
        }
    ]
    return json.dumps(index).encode("utf-8")


def synthesize_config(platform: Platform) -> bytes:
    """Minimal image config for manifests that predate config blobs."""
    config = {
        "architecture": platform.architecture,
        "os": platform.os,
        "history": [],
    }
    return json.dumps(config).encode("utf-8")


async def fetch_image_manifest(
    client: RegistryClient,
    reference: ImageReference,
    platform: Platform,
    token: str | None,
) -> ImageManifest:
    """Fetch the image manifest, resolving a manifest list if needed.

    Raises:
        ManifestNotFoundError: If a manifest cannot be fetched
        PlatformNotAvailableError: If no child matches the platform
    """
    manifest = await client.get_manifest(reference.repository, reference.tag, token)
    if manifest is None:
        raise ManifestNotFoundError(f"Failed to fetch manifest for {reference}")

    if manifest.is_manifest_list:
        digest = client.select_platform_manifest(manifest, platform)
        if digest is None:
            raise PlatformNotAvailableError(str(platform))

        logger.info(f"Resolved {reference} for {platform} to {digest}")
        manifest = await client.get_manifest(reference.repository, digest, token)
        if manifest is None:
            raise ManifestNotFoundError(
                f"Failed to fetch platform-specific manifest {digest}"
            )
        if manifest.is_manifest_list:
            raise ManifestNotFoundError(f"Manifest {digest} is itself a manifest list")

    return manifest


async def fetch_image_config(
    client: RegistryClient,
    reference: ImageReference,
    manifest: ImageManifest,
    platform: Platform,
    token: str | None,
) -> bytes:
    """Download the config blob, or synthesize one for config-less manifests.

    Raises:
        BlobDownloadError: If the config blob cannot be downloaded
    """
    if manifest.config is None:
        logger.warning(f"{reference} has no config blob, synthesizing one")
        return synthesize_config(platform)

    digest = manifest.config.digest
    config_data = await client.download_blob(reference.repository, digest, token)
    if config_data is None:
        raise BlobDownloadError(f"Failed to download config {digest}", digest)
    return config_data


async def resolve_image(
    client: RegistryClient,
    reference: ImageReference,
    platform: Platform,
    username: str | None = None,
    password: str | None = None,
) -> ResolvedImage:
    """Resolve a reference to its manifest and config for one platform.

    Args:
        client: Client bound to the reference's registry
        reference: Parsed image reference
        platform: Requested platform
        username: Optional registry username
        password: Optional registry password

    Returns:
        ResolvedImage

    Raises:
        ManifestNotFoundError: If a manifest cannot be fetched
        PlatformNotAvailableError: If no child matches the platform
        BlobDownloadError: If the config blob cannot be downloaded
    """
    token = await client.get_auth_token(reference.repository, username, password)
    manifest = await fetch_image_manifest(client, reference, platform, token)
    config_data = await fetch_image_config(
        client, reference, manifest, platform, token
    )

    config_name = f"{digest_hex(calculate_digest(config_data))}.json"
    logger.info(f"{reference}: {len(manifest.layers)} layers, config {config_name}")

    return ResolvedImage(
        reference=reference,
        platform=platform,
        manifest=manifest,
        token=token,
        config_name=config_name,
        config_data=config_data,
    )
