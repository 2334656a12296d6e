"""Tests for the registry client against a fake registry."""

import pytest

from registry_image_downloader.core.registry_client import (
    RegistryClient,
    parse_bearer_challenge,
)
from registry_image_downloader.core.types import (
    DOCKER_HUB_AUTH_URL,
    MANIFEST_ACCEPT_TYPES,
    RegistryConfig,
)
from registry_image_downloader.models import ImageManifest, ManifestList

from tests.helpers import TEST_TOKEN

REPOSITORY = "library/hello-world"


class TestRegistryConfig:
    def test_docker_hub_uses_fixed_token_endpoint(self):
        config = RegistryConfig.for_registry("registry-1.docker.io")
        assert config.base_url == "https://registry-1.docker.io"
        assert config.auth_url == DOCKER_HUB_AUTH_URL
        assert config.auth_service == "registry.docker.io"

    def test_custom_registry_discovers_token_endpoint(self):
        config = RegistryConfig.for_registry("ghcr.io", timeout=5)
        assert config.base_url == "https://ghcr.io"
        assert config.auth_url is None
        assert config.timeout == 5


class TestBearerChallenge:
    def test_bearer(self):
        challenge = parse_bearer_challenge(
            'Bearer realm="https://auth.example.com/token",service="example"'
        )
        assert challenge == {"realm": "https://auth.example.com/token", "service": "example"}

    def test_basic_is_not_bearer(self):
        assert parse_bearer_challenge('Basic realm="registry"') is None


class TestAuthToken:
    @pytest.mark.asyncio
    async def test_anonymous_token(self, fake_registry):
        async with RegistryClient(fake_registry.config()) as client:
            token = await client.get_auth_token(REPOSITORY)

        assert token == TEST_TOKEN
        request = fake_registry.token_requests[0]
        assert request["query"] == {
            "scope": f"repository:{REPOSITORY}:pull",
            "service": "registry.docker.io",
        }
        assert request["username"] is None

    @pytest.mark.asyncio
    async def test_credentials_sent_as_basic_auth(self, fake_registry):
        async with RegistryClient(fake_registry.config()) as client:
            await client.get_auth_token(REPOSITORY, "alice", "secret")

        request = fake_registry.token_requests[0]
        assert request["username"] == "alice"
        assert request["password"] == "secret"

    @pytest.mark.asyncio
    async def test_username_without_password_is_anonymous(self, fake_registry):
        async with RegistryClient(fake_registry.config()) as client:
            await client.get_auth_token(REPOSITORY, "alice", None)

        assert fake_registry.token_requests[0]["username"] is None

    @pytest.mark.asyncio
    async def test_rejected_token_returns_none(self, fake_registry):
        fake_registry.token_status = 401
        async with RegistryClient(fake_registry.config()) as client:
            assert await client.get_auth_token(REPOSITORY) is None

    @pytest.mark.asyncio
    async def test_unreachable_token_endpoint_returns_none(self, fake_registry):
        config = fake_registry.config(auth_url="http://127.0.0.1:1/token")
        async with RegistryClient(config) as client:
            assert await client.get_auth_token(REPOSITORY) is None

    @pytest.mark.asyncio
    async def test_token_endpoint_from_challenge(self, fake_registry):
        fake_registry.challenge = (
            f'Bearer realm="{fake_registry.url}/token",service="fake-registry"'
        )
        config = RegistryConfig(url=fake_registry.url)
        async with RegistryClient(config) as client:
            token = await client.get_auth_token("team/app")

        assert token == TEST_TOKEN
        assert fake_registry.token_requests[0]["query"]["service"] == "fake-registry"

    @pytest.mark.asyncio
    async def test_no_challenge_means_no_token(self, fake_registry):
        config = RegistryConfig(url=fake_registry.url)
        async with RegistryClient(config) as client:
            assert await client.get_auth_token("team/app") is None

        assert fake_registry.token_requests == []


class TestManifest:
    @pytest.mark.asyncio
    async def test_get_image_manifest(self, fake_registry):
        fake_registry.add_image(REPOSITORY, "latest", [b"layer"])

        async with RegistryClient(fake_registry.config()) as client:
            manifest = await client.get_manifest(REPOSITORY, "latest")

        assert isinstance(manifest, ImageManifest)
        assert len(manifest.layers) == 1

    @pytest.mark.asyncio
    async def test_accept_header_lists_all_types_in_order(self, fake_registry):
        fake_registry.add_image(REPOSITORY, "latest", [])

        async with RegistryClient(fake_registry.config()) as client:
            await client.get_manifest(REPOSITORY, "latest")

        accepted = [t.strip() for t in fake_registry.accept_headers[0].split(",")]
        assert accepted == list(MANIFEST_ACCEPT_TYPES)

    @pytest.mark.asyncio
    async def test_get_manifest_list(self, fake_registry):
        image = fake_registry.add_image(REPOSITORY, "amd64-only", [])
        fake_registry.add_manifest_list(
            REPOSITORY, "latest", [({"os": "linux", "architecture": "amd64"}, image)]
        )

        async with RegistryClient(fake_registry.config()) as client:
            manifest = await client.get_manifest(REPOSITORY, "latest")

        assert isinstance(manifest, ManifestList)

    @pytest.mark.asyncio
    async def test_missing_manifest_returns_none(self, fake_registry):
        async with RegistryClient(fake_registry.config()) as client:
            assert await client.get_manifest(REPOSITORY, "nope") is None

    @pytest.mark.asyncio
    async def test_unparsable_manifest_returns_none(self, fake_registry):
        fake_registry.manifests[(REPOSITORY, "broken")] = (b"{not json", "application/json")

        async with RegistryClient(fake_registry.config()) as client:
            assert await client.get_manifest(REPOSITORY, "broken") is None

    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self, fake_registry):
        fake_registry.require_token = True
        fake_registry.add_image(REPOSITORY, "latest", [])

        async with RegistryClient(fake_registry.config()) as client:
            assert await client.get_manifest(REPOSITORY, "latest") is None
            assert await client.get_manifest(REPOSITORY, "latest", TEST_TOKEN) is not None


class TestBlobs:
    @pytest.mark.asyncio
    async def test_download_blob(self, fake_registry):
        digest = fake_registry.add_blob(b"blob data")

        async with RegistryClient(fake_registry.config()) as client:
            assert await client.download_blob(REPOSITORY, digest) == b"blob data"

    @pytest.mark.asyncio
    async def test_missing_blob_returns_none(self, fake_registry):
        async with RegistryClient(fake_registry.config()) as client:
            assert await client.download_blob(REPOSITORY, "sha256:missing") is None

    @pytest.mark.asyncio
    async def test_open_blob_exposes_length_and_body(self, fake_registry):
        digest = fake_registry.add_blob(b"x" * 1000)

        async with RegistryClient(fake_registry.config(chunk_size=100)) as client:
            async with client.open_blob(REPOSITORY, digest) as resp:
                assert resp.content_length == 1000
                chunks = [c async for c in resp.content.iter_chunked(100)]

        assert b"".join(chunks) == b"x" * 1000

    @pytest.mark.asyncio
    async def test_open_blob_unreachable_yields_none(self):
        config = RegistryConfig(url="http://127.0.0.1:1")
        async with RegistryClient(config) as client:
            async with client.open_blob(REPOSITORY, "sha256:any") as resp:
                assert resp is None
