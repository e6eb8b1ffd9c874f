"""Readiness probes: can a client reach the server yet?"""

import importlib.util
import socket
from typing import Optional

from mongo_test_server.exceptions import MisconfigurationError


class ReadinessProbe:
    """Opens a connection to the server and closes it again.

    ``check`` returns on success and raises on any connection error.
    """

    def check(self, host: str, port: int) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class SocketProbe(ReadinessProbe):
    """Plain TCP connect; enough to know the server is listening."""

    def __init__(self, timeout: float = 1.0):
        self.timeout = timeout

    def check(self, host: str, port: int) -> None:
        with socket.create_connection((host, port), timeout=self.timeout):
            pass


class PyMongoProbe(ReadinessProbe):
    """Round-trips a ``ping`` command through the official driver.

    Against a closed port the driver blocks for the full server selection
    timeout on every attempt, so both timeouts stay short.
    """

    def __init__(self, timeout_ms: int = 100):
        self.timeout_ms = timeout_ms

    def check(self, host: str, port: int) -> None:
        import pymongo

        client = pymongo.MongoClient(
            host,
            port,
            serverSelectionTimeoutMS=self.timeout_ms,
            connectTimeoutMS=self.timeout_ms,
        )
        try:
            client.admin.command("ping")
        finally:
            client.close()


def pymongo_available() -> bool:
    return importlib.util.find_spec("pymongo") is not None


def resolve_probe(probe: Optional[ReadinessProbe] = None) -> ReadinessProbe:
    """Pick the probe used to confirm startup.

    Args:
        probe: Explicitly configured probe, used as is

    Returns:
        ReadinessProbe: The configured probe, else one backed by pymongo

    Raises:
        MisconfigurationError: No probe configured and no driver installed
    """
    if probe is not None:
        return probe
    if pymongo_available():
        return PyMongoProbe()
    raise MisconfigurationError(
        "No mongo driver available to check the server connection",
        "Install pymongo (pip install mongo-test-server[pymongo]) "
        "or configure a probe, e.g. probe=SocketProbe()",
    )
