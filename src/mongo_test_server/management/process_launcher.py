"""Background execution of the server binary."""

import os
import shlex
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import List, Optional

from mongo_test_server.config.logging import get_logger

from .state_flags import StateFlags

logger = get_logger(__name__)


def read_text(path: Path, missing: str) -> str:
    try:
        return Path(path).read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return missing


class ProcessLauncher:
    """Runs one server command on a background thread.

    The thread owns the child process and waits for it to exit. If the exit
    was not requested through the ``killed`` flag, it leaves a report in the
    ``error`` flag and marks the instance killed so the readiness loop stops
    waiting for a process that is gone.
    """

    def __init__(self, flags: StateFlags, log_path: Path, label: str = "mongod"):
        self.flags = flags
        self.log_path = Path(log_path)
        self.label = label
        self.process: Optional[subprocess.Popen] = None
        self.returncode: Optional[int] = None
        self.thread: Optional[threading.Thread] = None

    def launch(self, argv: List[str]) -> threading.Thread:
        """Start ``argv`` without blocking the caller.

        Args:
            argv: Server command line

        Returns:
            threading.Thread: The thread waiting on the child process
        """
        self.thread = threading.Thread(
            target=self.run,
            args=(list(argv),),
            daemon=True,
            name=f"{self.label}-launcher",
        )
        self.thread.start()
        return self.thread

    def run(self, argv: List[str]) -> str:
        """Execute ``argv`` and wait for it to exit.

        Standard error goes to a dedicated capture file so launch failures can
        be told apart from the server's own log output.

        Returns:
            str: Whatever the process wrote to standard output
        """
        command = shlex.join(argv)
        fd, error_path = tempfile.mkstemp(prefix="mongo_test_server_", suffix=".err")
        os.close(fd)
        output = ""
        try:
            try:
                with open(error_path, "wb") as stderr:
                    self.process = subprocess.Popen(
                        argv,
                        stdout=subprocess.PIPE,
                        stderr=stderr,
                        stdin=subprocess.DEVNULL,
                        start_new_session=True,
                    )
                    logger.info(
                        "Server process started",
                        pid=self.process.pid,
                        command=command,
                    )
                    stdout, _ = self.process.communicate()
                    output = stdout.decode("utf-8", errors="replace")
                    self.returncode = self.process.returncode
            except OSError as e:
                with open(error_path, "a") as stderr:
                    stderr.write(f"{e}\n")
                self.returncode = None

            if self.returncode != 0 and not self.flags.killed:
                self._record_failure(command, Path(error_path))
            else:
                logger.debug(
                    "Server process exited", command=command, returncode=self.returncode
                )
        finally:
            Path(error_path).unlink(missing_ok=True)

        return output

    def _record_failure(self, command: str, error_path: Path) -> None:
        report = "\n".join(
            [
                f"<{self.__class__.__name__}> Error executing command: {command}",
                f"<{self.__class__.__name__}> Exit status: {self.returncode}",
                f"<{self.__class__.__name__}> Result is: "
                + read_text(self.log_path, "No mongo log on disk"),
                f"<{self.__class__.__name__}> Error is: "
                + read_text(error_path, "No error file on disk"),
            ]
        )
        logger.error(
            "Server process failed", command=command, returncode=self.returncode
        )
        try:
            self.flags.record_error(report)
            self.flags.killed = True
        except OSError as e:
            # storage was torn down underneath us
            logger.warning("Could not record launch failure", error=str(e))

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the launch thread; returns True once it has finished."""
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()
