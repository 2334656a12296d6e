"""Docker Registry API v2 async client implementation."""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiohttp

from ..exceptions import AuthenticationError
from ..models import Manifest, ManifestList, Platform, parse_manifest
from ..utils.platform import select_platform_manifest
from .session import create_session, parse_json_response
from .types import MANIFEST_ACCEPT_TYPES, RegistryConfig

logger = logging.getLogger(__name__)

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')

# Errors a request can raise before or while the body is read
_REQUEST_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


def parse_bearer_challenge(header: str) -> dict[str, str] | None:
    """Parse a ``WWW-Authenticate: Bearer ...`` challenge.

    Args:
        header: Raw header value

    Returns:
        Challenge parameters (realm, service, scope) or None if the
        challenge is not a Bearer challenge
    """
    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return dict(_CHALLENGE_PARAM.findall(params))


class RegistryClient:
    """Docker Registry API v2 async client for pulling images.

    One client is bound to one registry and owns one aiohttp session.
    Network failures never raise out of the public methods: they are
    logged and reported as ``None`` so the caller decides what is fatal.
    """

    def __init__(self, config: RegistryConfig) -> None:
        """Initialize the registry client.

        Args:
            config: Registry configuration
        """
        self.config = config
        self.registry_url = config.base_url
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "RegistryClient":
        """Enter async context manager."""
        if not self.session:
            self.session = await create_session(self.config)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def get_auth_token(
        self,
        repository: str,
        username: str | None = None,
        password: str | None = None,
    ) -> str | None:
        """Request a pull-scoped bearer token for a repository.

        Credentials are sent as HTTP Basic auth only when both username
        and password are given.

        Args:
            repository: Repository name (e.g., library/nginx)
            username: Optional registry username
            password: Optional registry password

        Returns:
            Bearer token, or None to proceed unauthenticated
        """
        try:
            return await self._request_token(repository, username, password)
        except AuthenticationError as e:
            logger.warning(f"Proceeding without token for {repository}: {e}")
            return None

    async def _request_token(
        self, repository: str, username: str | None, password: str | None
    ) -> str | None:
        auth_url = self.config.auth_url
        service = self.config.auth_service

        if auth_url is None:
            challenge = await self._discover_challenge()
            if challenge is None:
                logger.debug(f"{self.registry_url} does not require a token")
                return None
            auth_url = challenge.get("realm")
            service = challenge.get("service", service)
            if not auth_url:
                raise AuthenticationError("Bearer challenge has no realm")

        params = {"scope": f"repository:{repository}:pull"}
        if service:
            params["service"] = service

        headers = {"Accept": "application/json"}
        if username and password:
            headers["Authorization"] = aiohttp.BasicAuth(username, password).encode()

        try:
            async with self.session.get(
                auth_url, params=params, headers=headers
            ) as resp:
                if not resp.ok:
                    raise AuthenticationError(
                        f"Token endpoint returned {resp.status}"
                    )
                data = await parse_json_response(resp)
        except _REQUEST_ERRORS as e:
            raise AuthenticationError(f"Token request failed: {e}") from e
        except ValueError as e:
            raise AuthenticationError(str(e)) from e

        token = None
        if isinstance(data, dict):
            token = data.get("token") or data.get("access_token")
        if not token:
            raise AuthenticationError("Token endpoint returned no token")
        return token

    async def _discover_challenge(self) -> dict[str, str] | None:
        """Probe /v2/ and return the Bearer challenge, if any."""
        try:
            async with self.session.get(f"{self.registry_url}/v2/") as resp:
                if resp.status != 401:
                    return None
                header = resp.headers.get("WWW-Authenticate", "")
        except _REQUEST_ERRORS as e:
            raise AuthenticationError(f"Registry probe failed: {e}") from e
        return parse_bearer_challenge(header)

    def _headers(self, token: str | None) -> dict[str, str]:
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def get_manifest(
        self,
        repository: str,
        reference: str,
        token: str | None = None,
    ) -> Manifest | None:
        """Retrieve a manifest from the registry.

        Args:
            repository: Repository name
            reference: Tag or digest reference
            token: Optional bearer token

        Returns:
            Parsed manifest, or None if it could not be fetched or parsed
        """
        url = f"{self.registry_url}/v2/{repository}/manifests/{reference}"
        headers = self._headers(token)
        headers["Accept"] = ", ".join(MANIFEST_ACCEPT_TYPES)
        logger.debug(f"GET {url}")

        try:
            async with self.session.get(url, headers=headers) as resp:
                if not resp.ok:
                    logger.error(
                        f"Manifest fetch failed for {repository}:{reference}: "
                        f"{resp.status}"
                    )
                    return None
                data = await parse_json_response(resp)
                return parse_manifest(data, resp.content_type)
        except _REQUEST_ERRORS as e:
            logger.error(f"Manifest request for {repository}:{reference} failed: {e}")
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Invalid manifest for {repository}:{reference}: {e}")
        return None

    def select_platform_manifest(
        self, manifest: ManifestList, platform: Platform
    ) -> str | None:
        """Pick the child manifest digest for a platform (see utils.platform)."""
        return select_platform_manifest(manifest, platform)

    @asynccontextmanager
    async def open_blob(
        self,
        repository: str,
        digest: str,
        token: str | None = None,
    ) -> AsyncIterator[aiohttp.ClientResponse | None]:
        """Open a blob for streaming.

        The response body is not read; callers relay it from
        ``response.content``. Leaving the context releases the
        connection, also when the caller stops reading early.

        Args:
            repository: Repository name
            digest: Blob digest
            token: Optional bearer token

        Yields:
            The open response, or None if the blob is not available
        """
        url = f"{self.registry_url}/v2/{repository}/blobs/{digest}"
        headers = self._headers(token)
        # Relay stored bytes as-is so Content-Length matches what we write
        headers["Accept-Encoding"] = "identity"
        logger.debug(f"GET {url}")

        response = None
        try:
            response = await self.session.get(url, headers=headers)
        except _REQUEST_ERRORS as e:
            logger.error(f"Blob request for {digest} failed: {e}")

        if response is None:
            yield None
            return

        async with response:
            if not response.ok:
                logger.error(f"Blob download failed for {digest}: {response.status}")
                yield None
            else:
                yield response

    async def download_blob(
        self,
        repository: str,
        digest: str,
        token: str | None = None,
    ) -> bytes | None:
        """Download a whole blob into memory.

        Args:
            repository: Repository name
            digest: Blob digest
            token: Optional bearer token

        Returns:
            Blob bytes, or None if the download failed
        """
        async with self.open_blob(repository, digest, token) as resp:
            if resp is None:
                return None
            try:
                return await resp.read()
            except _REQUEST_ERRORS as e:
                logger.error(f"Blob download for {digest} interrupted: {e}")
                return None
