"""Command line interface: download an image into a docker-load tar file."""

import argparse
import asyncio
import logging
import os
import sys
from contextlib import aclosing

import aiofiles
import aiofiles.os

from .exceptions import RegistryError
from .registry import DEFAULT_PLATFORM, download_image_tar, stream_image_tar
from .utils.logging import setup_logging
from .utils.reference import archive_filename, parse_image_name

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="registry-image-downloader",
        description="Download a container image from a Registry API v2 into a "
        "tar archive that docker load accepts.",
    )
    p.add_argument("image", help="Image reference, e.g. nginx:1.25 or host:5000/team/app:v2")
    p.add_argument(
        "--platform", "-p",
        default=DEFAULT_PLATFORM,
        help=f"Platform as os/arch[/variant] (default: {DEFAULT_PLATFORM})",
    )
    p.add_argument(
        "--username", "-u",
        default=os.getenv("REGISTRY_USERNAME"),
        help="Registry username (default: $REGISTRY_USERNAME)",
    )
    p.add_argument(
        "--password",
        default=os.getenv("REGISTRY_PASSWORD"),
        help="Registry password (default: $REGISTRY_PASSWORD)",
    )
    p.add_argument(
        "--output", "-o",
        help="Output file (default: <repository>_<tag>.tar)",
    )
    p.add_argument(
        "--buffered",
        action="store_true",
        help="Assemble the whole archive in memory before writing",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return p.parse_args(argv)


async def write_archive(args: argparse.Namespace, output: str) -> None:
    """Write the archive to ``output`` via a temporary ``.part`` file.

    The final name only appears once the archive is complete.
    """
    partial = f"{output}.part"
    try:
        async with aiofiles.open(partial, "wb") as f:
            if args.buffered:
                await f.write(
                    await download_image_tar(
                        args.image, args.platform, args.username, args.password
                    )
                )
            else:
                chunks = stream_image_tar(
                    args.image, args.platform, args.username, args.password
                )
                async with aclosing(chunks):
                    async for chunk in chunks:
                        await f.write(chunk)
    except BaseException:
        if await aiofiles.os.path.exists(partial):
            await aiofiles.os.remove(partial)
        raise
    await aiofiles.os.replace(partial, output)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        output = args.output or archive_filename(parse_image_name(args.image))
        asyncio.run(write_archive(args, output))
    except (RegistryError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    logger.info(f"Saved {args.image} ({args.platform}) to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
