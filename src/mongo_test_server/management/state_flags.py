"""Marker files shared between the coordinator and the launch thread.

The server runs in its own OS process, so the only state both sides agree on
is what sits in the storage directory. Each flag is the presence of a file:

- ``started``: the readiness loop saw (or expects to see) the server answer.
- ``killed``: shutdown was requested, or the process died on its own.
- ``error``: the launch failed; the file holds the diagnostic report.

The launcher only ever sets ``killed`` and ``error``. The readiness loop reads
those two and writes ``started``. The coordinator may touch all three.
"""

from pathlib import Path
from typing import Optional

STARTED = "started"
KILLED = "killed"
ERROR = "error"


class StateFlags:
    """Presence-only flag files inside a storage directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _flag(self, name: str) -> Path:
        return self.directory / name

    def _set(self, name: str, value: bool) -> None:
        # a deleted storage directory must not be recreated by a late writer
        if not self.directory.is_dir():
            return
        if value:
            self._flag(name).touch()
        else:
            self._flag(name).unlink(missing_ok=True)

    @property
    def started(self) -> bool:
        return self.directory.is_dir() and self._flag(STARTED).exists()

    @started.setter
    def started(self, value: bool) -> None:
        self._set(STARTED, value)

    @property
    def killed(self) -> bool:
        return not self.directory.is_dir() or self._flag(KILLED).exists()

    @killed.setter
    def killed(self, value: bool) -> None:
        self._set(KILLED, value)

    @property
    def error(self) -> bool:
        return self._flag(ERROR).exists()

    @property
    def error_report(self) -> Optional[str]:
        try:
            return self._flag(ERROR).read_text(errors="replace")
        except OSError:
            return None

    def record_error(self, report: str) -> None:
        """Write the failure report so a reader never sees it half-written."""
        if not self.directory.is_dir():
            return
        pending = self._flag(f".{ERROR}.tmp")
        pending.write_text(report)
        pending.replace(self._flag(ERROR))

    def reset(self) -> None:
        for name in (STARTED, KILLED, ERROR):
            self._set(name, False)
