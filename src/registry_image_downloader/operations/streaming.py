"""Streaming archive assembly.

The archive is produced by an async generator. Each ``yield`` suspends
until the consumer asks for the next chunk, so a registry response is
never read faster than the consumer writes it out, and only one chunk
is held at a time. If a layer fails the generator raises before the end
of archive blocks, so a truncated stream never looks complete.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import AsyncIterator

import aiohttp

from ..core.registry_client import RegistryClient
from ..exceptions import BlobDownloadError
from ..models import BlobRef
from ..tar.models import TarEntry
from ..tar.writer import END_OF_ARCHIVE, create_tar_header, encode_file, tar_padding
from .images import ResolvedImage

logger = logging.getLogger(__name__)


async def stream_layer(
    client: RegistryClient,
    image: ResolvedImage,
    layer: BlobRef,
    name: str,
    mtime: int,
) -> AsyncIterator[bytes]:
    """Relay one layer blob as a tar entry.

    The header needs the size up front, so the registry's Content-Length
    is required and the relayed byte count must match it.

    Raises:
        BlobDownloadError: If the blob is unavailable, has no length, or
            its body ends early or runs long
    """
    digest = layer.digest
    async with client.open_blob(image.reference.repository, digest, image.token) as resp:
        if resp is None:
            raise BlobDownloadError(f"Failed to download layer {digest}", digest)

        size = resp.content_length
        if not size:
            raise BlobDownloadError(
                f"Registry reported no Content-Length for layer {digest}", digest
            )

        logger.info(f"Streaming {name} ({digest}, {size} bytes)")
        yield create_tar_header(TarEntry(name=name, size=size, mtime=mtime))

        relayed = 0
        try:
            async for chunk in resp.content.iter_chunked(client.config.chunk_size):
                relayed += len(chunk)
                if relayed > size:
                    raise BlobDownloadError(
                        f"Layer {digest} is longer than its Content-Length", digest
                    )
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BlobDownloadError(f"Layer {digest} interrupted: {e}", digest) from e

        if relayed != size:
            raise BlobDownloadError(
                f"Layer {digest} ended after {relayed} of {size} bytes", digest
            )

    padding = tar_padding(size)
    if padding:
        yield padding


async def iter_image_tar(
    client: RegistryClient, image: ResolvedImage, mtime: int | None = None
) -> AsyncIterator[bytes]:
    """Yield the archive chunk by chunk.

    Args:
        client: Client bound to the image's registry
        image: Resolved image (manifest and config already fetched)
        mtime: Modification time for every entry, defaults to now

    Yields:
        Archive bytes in order

    Raises:
        BlobDownloadError: If any layer cannot be relayed completely
    """
    if mtime is None:
        mtime = int(time.time())

    for chunk in encode_file("manifest.json", image.load_manifest, mtime):
        yield chunk
    for chunk in encode_file(image.config_name, image.config_data, mtime):
        yield chunk

    for layer, name in zip(image.manifest.layers, image.layer_names):
        # aclosing releases the registry response as soon as we are closed
        async with aclosing(stream_layer(client, image, layer, name, mtime)) as chunks:
            async for chunk in chunks:
                yield chunk

    yield END_OF_ARCHIVE
