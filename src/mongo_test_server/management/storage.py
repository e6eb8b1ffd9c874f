"""Storage directories holding a test server's data, log and flag files."""

import os
import shutil
import sys
import tempfile
from pathlib import Path

from mongo_test_server.config.logging import get_logger

logger = get_logger(__name__)


class StorageBackend:
    """One directory dedicated to a single server instance.

    Subclasses only choose the filesystem the directory lives on.
    """

    medium = "disk"

    def __init__(self, name: str, instance_id: str):
        self.name = name
        self.instance_id = instance_id
        self.path = self.root() / f"mongo_test_server_{name}_{instance_id}"

    @classmethod
    def root(cls) -> Path:
        raise NotImplementedError

    def create(self) -> Path:
        """Create the directory; an existing one is left as is."""
        self.path.mkdir(parents=True, exist_ok=True)
        logger.debug("Storage created", medium=self.medium, path=str(self.path))
        return self.path

    def delete(self) -> None:
        """Remove the directory recursively; a missing one is ignored."""
        if self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug("Storage deleted", medium=self.medium, path=str(self.path))

    def exists(self) -> bool:
        return self.path.is_dir()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self.path)!r})"


class TmpStorage(StorageBackend):
    """Storage under the system temporary directory."""

    medium = "tmp disk"

    @classmethod
    def root(cls) -> Path:
        return Path(tempfile.gettempdir())


class RamDiskStorage(StorageBackend):
    """Storage on a RAM-backed filesystem (tmpfs)."""

    medium = "ram disk"
    RAM_DISK_ROOT = Path("/dev/shm")

    @classmethod
    def root(cls) -> Path:
        return cls.RAM_DISK_ROOT

    @staticmethod
    def supported() -> bool:
        """Check whether this host offers a writable RAM-backed filesystem."""
        root = RamDiskStorage.RAM_DISK_ROOT
        return (
            sys.platform.startswith("linux")
            and root.is_dir()
            and os.access(root, os.W_OK | os.X_OK)
        )
