"""Pytest integration: a session-wide test server.

Configure the shared server from a ``conftest.py`` and request the fixture::

    ServerRegistry.configure({"port": 27999, "name": "myapp"})

    def test_insert(mongo_test_server):
        client = MongoClient("localhost", mongo_test_server.port)
"""

from contextlib import contextmanager
from typing import Iterator, Optional, Type

import pytest

from mongo_test_server.config.logging import configure_logging
from mongo_test_server.config.settings import Settings
from mongo_test_server.management.mongod import Mongod
from mongo_test_server.management.server_registry import ServerRegistry


@contextmanager
def managed_server(
    registry: Type[ServerRegistry] = ServerRegistry,
) -> Iterator[Optional[Mongod]]:
    """Start the registry's server for the duration of the block."""
    if not registry.is_configured():
        registry.configure()
    server = registry.start_server()
    try:
        yield server
    finally:
        registry.stop_server()


@pytest.fixture(scope="session")
def mongo_test_server() -> Iterator[Optional[Mongod]]:
    settings = Settings()
    configure_logging(
        level=settings.logging.level,
        log_file=settings.logging.file_path,
        json_logs=settings.logging.json_format,
    )
    if ServerRegistry.settings is None:
        ServerRegistry.settings = settings.server
    with managed_server() as server:
        yield server
