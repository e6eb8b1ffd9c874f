"""Disposable mongod servers for automated tests."""

from .__version__ import __version__
from .exceptions import (
    LaunchError,
    MisconfigurationError,
    ReadinessTimeoutError,
    ServerError,
)
from .management import (
    Mongod,
    PyMongoProbe,
    RamDiskStorage,
    ReadinessProbe,
    ServerRegistry,
    ServerState,
    SocketProbe,
    TmpStorage,
)

__all__ = [
    "__version__",
    "Mongod",
    "ServerState",
    "ServerRegistry",
    "ReadinessProbe",
    "SocketProbe",
    "PyMongoProbe",
    "TmpStorage",
    "RamDiskStorage",
    "ServerError",
    "LaunchError",
    "ReadinessTimeoutError",
    "MisconfigurationError",
]
