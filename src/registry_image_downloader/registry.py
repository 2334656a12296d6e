"""Async functional image download operations."""

from contextlib import aclosing
from typing import AsyncIterator

from .core.registry_client import RegistryClient
from .core.types import RegistryConfig
from .operations.archive import build_image_tar
from .operations.images import resolve_image
from .operations.streaming import iter_image_tar
from .utils.platform import parse_platform
from .utils.reference import parse_image_name

DEFAULT_PLATFORM = "linux/amd64"


async def download_image_tar(
    image: str,
    platform: str = DEFAULT_PLATFORM,
    username: str | None = None,
    password: str | None = None,
    *,
    config: RegistryConfig | None = None,
) -> bytes:
    """이미지를 내려받아 docker load 호환 tar 아카이브를 메모리에 생성합니다.

    Args:
        image: 이미지 참조 (예: "nginx", "myregistry.example.com:5000/team/app:v2")
        platform: 대상 플랫폼 (예: "linux/amd64", "linux/arm/v7")
        username: 레지스트리 사용자 이름 (선택사항)
        password: 레지스트리 비밀번호 (선택사항)
        config: 레지스트리 설정 (선택사항, 기본값은 참조의 레지스트리에서 생성)

    Returns:
        bytes: 완성된 tar 아카이브

    Raises:
        MalformedReferenceError: 이미지 참조 또는 플랫폼 형식이 잘못된 경우
        ManifestNotFoundError: 매니페스트를 가져올 수 없는 경우
        PlatformNotAvailableError: 요청한 플랫폼의 매니페스트가 없는 경우
        BlobDownloadError: config 또는 레이어 다운로드 실패 시

    Examples:
        data = await download_image_tar("hello-world:latest")
        Path("hello-world.tar").write_bytes(data)
    """
    reference = parse_image_name(image)
    wanted = parse_platform(platform)
    config = config or RegistryConfig.for_registry(reference.registry)

    async with RegistryClient(config) as client:
        resolved = await resolve_image(client, reference, wanted, username, password)
        return await build_image_tar(client, resolved)


async def stream_image_tar(
    image: str,
    platform: str = DEFAULT_PLATFORM,
    username: str | None = None,
    password: str | None = None,
    *,
    config: RegistryConfig | None = None,
    mtime: int | None = None,
) -> AsyncIterator[bytes]:
    """이미지를 tar 아카이브 청크 스트림으로 내려받습니다.

    레이어 전체를 메모리에 올리지 않고 레지스트리 응답을 그대로 전달합니다.
    소비자가 다음 청크를 요청할 때까지 레지스트리 읽기가 멈추며,
    제너레이터를 일찍 닫으면(aclose) 진행 중인 연결이 즉시 해제됩니다.

    Args:
        image: 이미지 참조 (예: "nginx:1.25")
        platform: 대상 플랫폼 (예: "linux/arm64")
        username: 레지스트리 사용자 이름 (선택사항)
        password: 레지스트리 비밀번호 (선택사항)
        config: 레지스트리 설정 (선택사항)
        mtime: tar 엔트리 수정 시간 (선택사항, 기본값은 현재 시간)

    Yields:
        bytes: 순서대로 이어 붙이면 완성되는 아카이브 청크

    Raises:
        MalformedReferenceError: 이미지 참조 또는 플랫폼 형식이 잘못된 경우
        ManifestNotFoundError: 매니페스트를 가져올 수 없는 경우
        PlatformNotAvailableError: 요청한 플랫폼의 매니페스트가 없는 경우
        BlobDownloadError: 다운로드 실패 시 (종료 블록 전에 발생)

    Examples:
        async with aiofiles.open("nginx.tar", "wb") as f:
            async for chunk in stream_image_tar("nginx", "linux/arm64"):
                await f.write(chunk)
    """
    reference = parse_image_name(image)
    wanted = parse_platform(platform)
    config = config or RegistryConfig.for_registry(reference.registry)

    async with RegistryClient(config) as client:
        resolved = await resolve_image(client, reference, wanted, username, password)
        async with aclosing(iter_image_tar(client, resolved, mtime)) as chunks:
            async for chunk in chunks:
                yield chunk
