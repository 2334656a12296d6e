"""Fake Registry API v2 server used by the tests."""

import base64
import hashlib
import json

from aiohttp import web

from registry_image_downloader.core.types import (
    MEDIA_TYPE_DOCKER_MANIFEST,
    MEDIA_TYPE_DOCKER_MANIFEST_LIST,
    RegistryConfig,
)

TEST_TOKEN = "test-token"


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


class FakeRegistry:
    """In-process Registry API v2 with a token endpoint."""

    def __init__(self) -> None:
        self.url = ""
        self.manifests: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.blobs: dict[str, bytes] = {}
        self.chunked_blobs: set[str] = set()
        self.truncated_blobs: dict[str, int] = {}
        self.require_token = False
        self.token_status = 200
        self.challenge: str | None = None
        self.token_requests: list[dict] = []
        self.requests: list[str] = []
        self.accept_headers: list[str] = []

        self.app = web.Application()
        self.app.router.add_get("/token", self.handle_token)
        self.app.router.add_get("/v2/", self.handle_base)
        self.app.router.add_get(
            "/v2/{repository:.+}/manifests/{reference}", self.handle_manifest
        )
        self.app.router.add_get(
            "/v2/{repository:.+}/blobs/{digest}", self.handle_blob
        )

    def config(self, **kwargs) -> RegistryConfig:
        """Client configuration pointing at this registry."""
        kwargs.setdefault("auth_url", f"{self.url}/token")
        kwargs.setdefault("auth_service", "registry.docker.io")
        return RegistryConfig(url=self.url, **kwargs)

    def add_blob(self, data: bytes, chunked: bool = False) -> str:
        digest = sha256_digest(data)
        self.blobs[digest] = data
        if chunked:
            self.chunked_blobs.add(digest)
        return digest

    def truncate_blob(self, digest: str, sent: int) -> None:
        """Serve only the first ``sent`` bytes of a blob, then drop the connection.

        The full Content-Length is still declared.
        """
        self.truncated_blobs[digest] = sent

    def add_manifest(
        self,
        repository: str,
        reference: str,
        manifest: dict,
        media_type: str = MEDIA_TYPE_DOCKER_MANIFEST,
    ) -> str:
        body = json.dumps(manifest).encode("utf-8")
        digest = sha256_digest(body)
        self.manifests[(repository, reference)] = (body, media_type)
        self.manifests[(repository, digest)] = (body, media_type)
        return digest

    def add_image(
        self,
        repository: str,
        tag: str,
        layers: list[bytes],
        config: dict | None = None,
        chunked: bool = False,
    ) -> dict:
        """Register config and layer blobs plus an image manifest."""
        config_data = json.dumps(
            config or {"architecture": "amd64", "os": "linux", "rootfs": {}}
        ).encode("utf-8")
        manifest = {
            "schemaVersion": 2,
            "mediaType": MEDIA_TYPE_DOCKER_MANIFEST,
            "config": {
                "mediaType": "application/vnd.docker.container.image.v1+json",
                "size": len(config_data),
                "digest": self.add_blob(config_data),
            },
            "layers": [
                {
                    "mediaType": "application/vnd.docker.image.rootfs.diff.tar.gzip",
                    "size": len(layer),
                    "digest": self.add_blob(layer, chunked),
                }
                for layer in layers
            ],
        }
        self.add_manifest(repository, tag, manifest)
        return manifest

    def add_manifest_list(
        self, repository: str, tag: str, children: list[tuple[dict | None, dict]]
    ) -> dict:
        """Register a manifest list over (platform, image manifest) pairs."""
        entries = []
        for index, (platform, manifest) in enumerate(children):
            digest = self.add_manifest(repository, f"child-{index}", manifest)
            entry = {
                "mediaType": MEDIA_TYPE_DOCKER_MANIFEST,
                "size": len(json.dumps(manifest)),
                "digest": digest,
            }
            if platform is not None:
                entry["platform"] = platform
            entries.append(entry)

        manifest_list = {
            "schemaVersion": 2,
            "mediaType": MEDIA_TYPE_DOCKER_MANIFEST_LIST,
            "manifests": entries,
        }
        self.add_manifest(repository, tag, manifest_list, MEDIA_TYPE_DOCKER_MANIFEST_LIST)
        return manifest_list

    def blob_requests(self) -> list[str]:
        return [path for path in self.requests if "/blobs/" in path]

    def _authorized(self, request: web.Request) -> bool:
        if not self.require_token:
            return True
        return request.headers.get("Authorization") == f"Bearer {TEST_TOKEN}"

    async def handle_token(self, request: web.Request) -> web.Response:
        username = password = None
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Basic "):
            username, _, password = base64.b64decode(auth[6:]).decode("utf-8").partition(":")
        self.token_requests.append(
            {"query": dict(request.query), "username": username, "password": password}
        )

        if self.token_status != 200:
            return web.json_response({"errors": []}, status=self.token_status)
        return web.json_response({"token": TEST_TOKEN})

    async def handle_base(self, request: web.Request) -> web.Response:
        if self.challenge:
            return web.Response(
                status=401, headers={"WWW-Authenticate": self.challenge}
            )
        return web.json_response({})

    async def handle_manifest(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        self.accept_headers.append(request.headers.get("Accept", ""))
        if not self._authorized(request):
            return web.Response(status=401)

        key = (request.match_info["repository"], request.match_info["reference"])
        if key not in self.manifests:
            return web.json_response({"errors": ["MANIFEST_UNKNOWN"]}, status=404)
        body, media_type = self.manifests[key]
        return web.Response(body=body, content_type=media_type)

    async def handle_blob(self, request: web.Request) -> web.StreamResponse:
        self.requests.append(request.path)
        if not self._authorized(request):
            return web.Response(status=401)

        digest = request.match_info["digest"]
        if digest not in self.blobs:
            return web.json_response({"errors": ["BLOB_UNKNOWN"]}, status=404)

        data = self.blobs[digest]
        if digest in self.truncated_blobs:
            response = web.StreamResponse()
            response.content_type = "application/octet-stream"
            response.content_length = len(data)
            await response.prepare(request)
            await response.write(data[: self.truncated_blobs[digest]])
            request.transport.close()
            return response

        if digest not in self.chunked_blobs:
            return web.Response(body=data, content_type="application/octet-stream")

        response = web.StreamResponse()
        response.content_type = "application/octet-stream"
        response.enable_chunked_encoding()
        await response.prepare(request)
        await response.write(data)
        await response.write_eof()
        return response
