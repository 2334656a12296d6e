"""Platform string parsing and manifest list resolution."""

from ..exceptions import MalformedReferenceError
from ..models import ManifestList, Platform

# Operating systems whose images are acceptable for a requested OS
OS_COMPATIBILITY: dict[str, tuple[str, ...]] = {
    "linux": ("linux",),
    "windows": ("windows",),
    "darwin": ("darwin", "linux"),
}


def parse_platform(platform: str) -> Platform:
    """Parse an ``os/arch[/variant]`` platform string.

    Args:
        platform: Platform string (e.g., "linux/amd64", "linux/arm/v7")

    Returns:
        Platform

    Raises:
        MalformedReferenceError: If the string is not os/arch[/variant]
    """
    parts = platform.strip().split("/")
    if len(parts) not in (2, 3) or not all(parts):
        raise MalformedReferenceError(
            f"Invalid platform {platform!r}, expected os/arch[/variant]"
        )
    return Platform(
        os=parts[0],
        architecture=parts[1],
        variant=parts[2] if len(parts) == 3 else None,
    )


def _exact_match(wanted: Platform, candidate: Platform) -> bool:
    if candidate.os != wanted.os or candidate.architecture != wanted.architecture:
        return False
    return not wanted.variant or candidate.variant == wanted.variant


def select_platform_manifest(manifest: ManifestList, wanted: Platform) -> str | None:
    """Select the child manifest that best matches a platform.

    Tiers, first hit wins:
    1. os and architecture equal (variant too, when one is requested)
    2. architecture equal and os in the compatibility table
    3. the first child without platform information whose media type
       is a manifest type

    Args:
        manifest: Manifest list
        wanted: Requested platform

    Returns:
        Digest of the selected child, or None when nothing matches
    """
    children = manifest.manifests

    for child in children:
        if child.platform and _exact_match(wanted, child.platform):
            return child.digest

    compatible = OS_COMPATIBILITY.get(wanted.os, (wanted.os,))
    for child in children:
        p = child.platform
        if p and p.os in compatible and p.architecture == wanted.architecture:
            return child.digest

    for child in children:
        if child.platform is None and "manifest" in child.media_type:
            return child.digest

    return None
