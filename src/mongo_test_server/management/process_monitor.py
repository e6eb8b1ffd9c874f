"""Process table queries for locating a test server's processes."""

from pathlib import Path
from typing import List, Sequence, Union

import psutil

from mongo_test_server.config.logging import get_logger

logger = get_logger(__name__)


def matches_instance(cmdline: Sequence[str], port: int, storage_path: str) -> bool:
    """Check whether a command line belongs to the instance on ``port``/``storage_path``.

    The port has to appear as its own argument so that 2701 never matches
    27017; the storage path only has to appear inside one (``--logpath``
    embeds it too).
    """
    if not cmdline:
        return False
    return str(port) in cmdline and any(storage_path in arg for arg in cmdline)


class ProcessMonitor:
    """Finds and kills server processes through psutil."""

    def find_pids(self, port: int, storage_path: Union[str, Path]) -> List[int]:
        """Get PIDs of live processes started for this port and storage.

        Args:
            port: Server port
            storage_path: Storage directory of the instance

        Returns:
            List[int]: Matching process IDs, possibly empty
        """
        storage = str(storage_path)
        pids = []
        for process in psutil.process_iter(["pid", "cmdline", "status"]):
            try:
                info = process.info
                if info.get("status") == psutil.STATUS_ZOMBIE:
                    continue
                if matches_instance(info.get("cmdline") or [], port, storage):
                    pids.append(info["pid"])
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return pids

    def kill(self, pids: Sequence[int]) -> List[int]:
        """Send SIGKILL to every PID; vanished processes are skipped.

        Returns:
            List[int]: PIDs that were signalled
        """
        killed = []
        for pid in pids:
            try:
                psutil.Process(pid).kill()
                killed.append(pid)
            except psutil.NoSuchProcess:
                logger.debug("Process already gone", pid=pid)
            except psutil.AccessDenied as e:
                logger.warning("Cannot kill process", pid=pid, error=str(e))
        return killed
