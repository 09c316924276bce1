"""Test configuration and fixtures."""

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from model_metadata_collector.config import CollectorConfig
from tests.helpers import FakeRegistry


@pytest.fixture
def output_dir(tmp_path):
    """Per-test output directory."""
    return tmp_path / "output"


@pytest.fixture
def config(output_dir):
    """Collector configuration writing into the per-test output directory."""
    return CollectorConfig(output_dir=output_dir, max_concurrent=3, timeout=10)


@pytest.fixture
def fake_registry():
    """Anonymous in-process registry."""
    return FakeRegistry()


@pytest_asyncio.fixture
async def registry_host(fake_registry):
    """Serve ``fake_registry`` on a local port and return its ``host:port``."""
    server = TestServer(fake_registry.app())
    await server.start_server()
    try:
        yield f"{server.host}:{server.port}"
    finally:
        await server.close()
