"""Image reference parsing."""

import re

from ..core.types import DEFAULT_REGISTRY, DOCKER_HUB_ALIASES
from ..exceptions import MalformedReferenceError
from ..models import ImageReference

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def parse_image_name(image: str) -> ImageReference:
    """이미지 참조 문자열을 레지스트리, 저장소, 태그로 분리합니다.

    Args:
        image: 이미지 참조 문자열
            - 기본 이미지: "nginx"
            - 네임스페이스와 태그: "library/nginx:1.25"
            - 레지스트리 포함: "myregistry.example.com:5000/team/app:v2"

    Returns:
        ImageReference: 파싱된 참조

    Raises:
        MalformedReferenceError: 저장소/태그로 분리할 수 없는 경우

    Examples:
        ref = parse_image_name("nginx")
        # 결과: ImageReference("registry-1.docker.io", "library/nginx", "latest")

        ref = parse_image_name("localhost:5000/myapp:v1")
        # 결과: ImageReference("localhost:5000", "myapp", "v1")
    """
    image = image.strip()
    if not image:
        raise MalformedReferenceError("Image reference is empty")
    if "@" in image:
        raise MalformedReferenceError(
            f"Digest references are not supported: {image}"
        )

    # Only the last path segment can carry a tag; a ':' before the last
    # '/' belongs to a registry port
    head, slash, last = image.rpartition("/")
    tag = "latest"
    if ":" in last:
        last, tag = last.rsplit(":", 1)
        if not tag:
            raise MalformedReferenceError(f"Empty tag in image reference: {image}")
    repository = f"{head}{slash}{last}"

    registry = DEFAULT_REGISTRY
    first, sep, rest = repository.partition("/")
    if sep and ("." in first or ":" in first):
        registry = first
        repository = rest
    if registry in DOCKER_HUB_ALIASES:
        registry = DEFAULT_REGISTRY

    if not repository or any(not part for part in repository.split("/")):
        raise MalformedReferenceError(f"Invalid repository in image reference: {image}")

    if "/" not in repository and registry == DEFAULT_REGISTRY:
        repository = f"library/{repository}"

    return ImageReference(registry=registry, repository=repository, tag=tag)


def archive_filename(reference: ImageReference) -> str:
    """Build a filesystem and header safe archive name.

    Args:
        reference: Parsed image reference

    Returns:
        ``<repository>_<tag>.tar`` with unsafe characters replaced by ``_``
    """
    stem = f"{reference.repository}_{reference.tag}"
    return f"{_UNSAFE_FILENAME_CHARS.sub('_', stem)}.tar"
