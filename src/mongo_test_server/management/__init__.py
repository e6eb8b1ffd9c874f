"""Server management package for test server lifecycle control."""

from .mongod import Mongod, ServerState
from .probes import PyMongoProbe, ReadinessProbe, SocketProbe, resolve_probe
from .process_launcher import ProcessLauncher
from .process_monitor import ProcessMonitor
from .server_registry import ServerRegistry
from .state_flags import StateFlags
from .storage import RamDiskStorage, StorageBackend, TmpStorage

__all__ = [
    "Mongod",
    "ServerState",
    "ServerRegistry",
    "ProcessLauncher",
    "ProcessMonitor",
    "StateFlags",
    "StorageBackend",
    "TmpStorage",
    "RamDiskStorage",
    "ReadinessProbe",
    "SocketProbe",
    "PyMongoProbe",
    "resolve_probe",
]
