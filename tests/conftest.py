"""Test configuration and fixtures."""

import pytest_asyncio
from aiohttp.test_utils import TestServer

from tests.helpers import FakeRegistry


@pytest_asyncio.fixture
async def fake_registry():
    """Running fake registry."""
    registry = FakeRegistry()
    server = TestServer(registry.app)
    await server.start_server()
    registry.url = f"http://{server.host}:{server.port}"
    yield registry
    await server.close()
