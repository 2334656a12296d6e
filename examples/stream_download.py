"""Example usage of the streaming and buffered downloads."""

import asyncio
import logging
import sys

import aiofiles

# Add parent directory to path
sys.path.insert(0, "src")

from registry_image_downloader import (
    RegistryError,
    archive_filename,
    download_image_tar,
    parse_image_name,
    stream_image_tar,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def stream_to_file(image: str, platform: str) -> None:
    """Stream a multi-arch image straight to disk."""
    path = archive_filename(parse_image_name(image))
    written = 0

    async with aiofiles.open(path, "wb") as f:
        async for chunk in stream_image_tar(image, platform):
            await f.write(chunk)
            written += len(chunk)

    logger.info(f"Wrote {written:,} bytes to {path}")


async def buffered(image: str) -> None:
    """Small images can be assembled in memory."""
    data = await download_image_tar(image)
    logger.info(f"{image}: {len(data):,} byte archive")


async def main():
    try:
        await buffered("hello-world")
        await stream_to_file("alpine:3.19", "linux/arm64/v8")
    except RegistryError as e:
        logger.error(f"Registry error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
