"""Buffered archive assembly."""

import logging

from ..core.registry_client import RegistryClient
from ..exceptions import BlobDownloadError
from ..tar.writer import create_tar_archive
from .images import ResolvedImage

logger = logging.getLogger(__name__)


async def download_layers(client: RegistryClient, image: ResolvedImage) -> list[bytes]:
    """Download every layer into memory, in manifest order.

    Raises:
        BlobDownloadError: If any layer cannot be downloaded
    """
    repository = image.reference.repository
    layers: list[bytes] = []
    for index, layer in enumerate(image.manifest.layers):
        logger.info(f"Downloading layer {index} ({layer.digest}, {layer.size} bytes)")
        data = await client.download_blob(repository, layer.digest, image.token)
        if data is None:
            raise BlobDownloadError(f"Failed to download layer {layer.digest}", layer.digest)
        layers.append(data)
    return layers


async def build_image_tar(
    client: RegistryClient, image: ResolvedImage, mtime: int = 0
) -> bytes:
    """Assemble the complete archive in memory.

    Args:
        client: Client bound to the image's registry
        image: Resolved image
        mtime: Modification time for every entry

    Returns:
        Archive bytes

    Raises:
        BlobDownloadError: If any layer cannot be downloaded
    """
    layers = await download_layers(client, image)

    files = [
        ("manifest.json", image.load_manifest),
        (image.config_name, image.config_data),
    ]
    files.extend(zip(image.layer_names, layers))
    return create_tar_archive(files, mtime)
