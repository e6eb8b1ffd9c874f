"""Lifecycle coordinator for one disposable mongod test server."""

import random
import shlex
import shutil
import time
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from mongo_test_server import documents
from mongo_test_server.config.logging import get_logger, log_performance
from mongo_test_server.config.settings import ServerSettings
from mongo_test_server.exceptions import (
    LaunchError,
    MisconfigurationError,
    ReadinessTimeoutError,
    ServerError,
)

from .probes import ReadinessProbe, resolve_probe
from .process_launcher import ProcessLauncher
from .process_monitor import ProcessMonitor
from .state_flags import StateFlags
from .storage import RamDiskStorage, StorageBackend, TmpStorage

logger = get_logger(__name__)

LOCALHOST = documents.LOCALHOST
LAUNCHER_JOIN_TIMEOUT = 2.0


class ServerState(Enum):
    """Where a coordinator is in its lifecycle."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERRORED = "errored"


def generate_instance_id() -> str:
    return f"{int(time.time())}_{random.randint(100000, 900000)}"


class Mongod:
    """Starts, watches and tears down one mongod for a test run.

    Everything the server writes lives in a private storage directory named
    after the instance id, and the server is started with flags that trade
    durability for startup speed. Never point this at data you care about.

    Example:
        server = Mongod(port=27999, name="acceptance")
        server.probe = SocketProbe()
        with server:
            client = MongoClient("localhost", server.port)
    """

    # attributes ServerRegistry.configure() may assign
    CONFIGURABLE = (
        "port",
        "path",
        "name",
        "use_ram_disk",
        "oplog_size",
        "probe",
        "startup_retries",
        "retry_interval",
        "log_tail_lines",
    )

    def __init__(
        self,
        port: Optional[int] = None,
        name: Optional[str] = None,
        path: Optional[str] = None,
        settings: Optional[ServerSettings] = None,
    ):
        """Initialize the coordinator; nothing is started or created yet.

        Args:
            port: TCP port (default from settings, 27017)
            name: Logical name seeding the database name (default: random)
            path: mongod binary (default: looked up on PATH)
            settings: Defaults for everything not passed explicitly
        """
        self.settings = settings or ServerSettings()
        self.instance_id = generate_instance_id()
        self.port = port if port is not None else self.settings.port
        self._name = name or self.settings.name
        self._path = path or self.settings.path
        self.use_ram_disk = self.settings.use_ram_disk
        self.oplog_size = self.settings.oplog_size
        self.startup_retries = self.settings.startup_retries
        self.retry_interval = self.settings.retry_interval
        self.log_tail_lines = self.settings.log_tail_lines
        self.probe: Optional[ReadinessProbe] = None

        self.state = ServerState.NOT_STARTED
        self.process_monitor = ProcessMonitor()
        self._storage: Optional[StorageBackend] = None
        self._flags: Optional[StateFlags] = None
        self._launcher: Optional[ProcessLauncher] = None
        self._configured = True

    # -- configuration -----------------------------------------------------

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: Any) -> None:
        try:
            port = int(value)
        except (TypeError, ValueError):
            raise MisconfigurationError(f"Invalid port number: {value!r}")
        if not 1 <= port <= 65535:
            raise MisconfigurationError(f"Invalid port number: {port}")
        self._port = port

    @property
    def path(self) -> str:
        if not self._path:
            self._path = shutil.which("mongod") or "mongod"
        return self._path

    @path.setter
    def path(self, value: Optional[str]) -> None:
        self._path = value

    @property
    def name(self) -> str:
        if not self._name:
            self._name = str(random.randint(100000, 900000))
        return self._name

    @name.setter
    def name(self, value: Optional[str]) -> None:
        self._name = value

    @property
    def use_ram_disk(self) -> bool:
        return self._use_ram_disk

    @use_ram_disk.setter
    def use_ram_disk(self, value: bool) -> None:
        self._use_ram_disk = bool(value) and RamDiskStorage.supported()

    @property
    def configured(self) -> bool:
        return self._configured

    # -- storage -----------------------------------------------------------

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            storage_class = RamDiskStorage if self.use_ram_disk else TmpStorage
            self._storage = storage_class(self.name, self.instance_id)
            logger.info(
                f"Using {self._storage.medium} storage",
                name=self.name,
                path=str(self._storage.path),
            )
        return self._storage

    @property
    def flags(self) -> StateFlags:
        if self._flags is None:
            self._flags = StateFlags(self.storage.path)
        return self._flags

    @property
    def mongo_storage(self) -> str:
        return str(self.storage.path)

    @property
    def mongo_log(self) -> str:
        return str(self.storage.path / "mongo_log")

    @property
    def database_name(self) -> str:
        return documents.database_name(self.name)

    def before_start(self) -> None:
        self.storage.create()

    def after_stop(self) -> None:
        self.storage.delete()

    # -- command line ------------------------------------------------------

    @property
    def cmd_line(self) -> List[str]:
        """Build the server argv from the current settings.

        Durability and security are switched off to make startup fast and
        keep files small. Unsafe for anything but tests.
        """
        return [
            self.path,
            "--port", str(self.port),
            "--profile", "2",
            "--dbpath", self.mongo_storage,
            "--syncdelay", "0",
            "--nojournal",
            "--noauth",
            "--nohttpinterface",
            "--nssize", "1",
            "--oplogSize", str(self.oplog_size),
            "--smallfiles",
            "--logpath", self.mongo_log,
        ]

    @property
    def mongo_cmd_line(self) -> str:
        return shlex.join(self.cmd_line)

    # -- status ------------------------------------------------------------

    def pids(self) -> List[int]:
        return self.process_monitor.find_pids(self.port, self.mongo_storage)

    def is_running(self) -> bool:
        """Check the process table, not the flags, for this instance."""
        return bool(self.pids())

    def is_started(self) -> bool:
        return self.flags.started

    def is_killed(self) -> bool:
        return self.flags.killed

    def has_error(self) -> bool:
        return self.flags.error

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> "Mongod":
        """Start the server and block until it accepts connections.

        Does nothing if the server is already started.

        Returns:
            Mongod: self, ready for use

        Raises:
            LaunchError: The server process exited during startup
            ReadinessTimeoutError: The server never answered the probe
            MisconfigurationError: No readiness probe could be resolved
        """
        if self.is_started():
            return self
        if self.state is ServerState.ERRORED:
            raise ServerError(
                f"Server '{self.name}' on port {self.port} already failed to start",
                "Configure a new Mongod instead of restarting a failed one",
            )

        if self.pids():
            # leftovers of an earlier start whose flags were lost
            self.stop()

        started_at = time.time()
        self.state = ServerState.STARTING
        self.before_start()
        self.flags.reset()

        try:
            probe = resolve_probe(self.probe)
        except MisconfigurationError as e:
            self._fail(e)

        logger.info(
            "Starting test server",
            name=self.name,
            port=self.port,
            instance_id=self.instance_id,
        )
        self._launcher = ProcessLauncher(
            self.flags, Path(self.mongo_log), label=f"mongod-{self.instance_id}"
        )
        self._launcher.launch(self.cmd_line)

        self.wait_until_ready(probe)

        self.state = ServerState.RUNNING
        log_performance(
            logger,
            "server_start",
            (time.time() - started_at) * 1000,
            name=self.name,
            port=self.port,
        )
        return self

    def wait_until_ready(self, probe: Optional[ReadinessProbe] = None) -> None:
        """Poll the probe until the server answers or startup is abandoned.

        ``started`` is written before every attempt. A death reported by the
        launch thread wins over a successful probe in the same round.

        Args:
            probe: Probe already resolved by ``start``; resolved here otherwise
        """
        if probe is None:
            try:
                probe = resolve_probe(self.probe)
            except MisconfigurationError as e:
                self._fail(e)

        retries = self.startup_retries
        while True:
            self.flags.started = True
            failure: Optional[Exception] = None
            try:
                probe.check(LOCALHOST, self.port)
            except MisconfigurationError as e:
                self._fail(e)
            except Exception as e:
                failure = e

            launch_failed = self.flags.killed or self.flags.error
            if failure is None and not launch_failed:
                logger.info("Test server is ready", port=self.port, name=self.name)
                return

            if launch_failed:
                self._abort(
                    LaunchError,
                    "Mongo server process exited during startup",
                    failure,
                )
            if retries <= 0:
                self._abort(
                    ReadinessTimeoutError,
                    f"Mongo server did not accept connections after "
                    f"{self.startup_retries} retries",
                    failure,
                )

            retries -= 1
            logger.debug(
                "Waiting for test server",
                port=self.port,
                retries_left=retries,
                error=str(failure),
            )
            time.sleep(self.retry_interval)

    def stop(self) -> "Mongod":
        """Kill the server processes and delete the storage. Never raises.

        Returns:
            Mongod: self
        """
        if self.state is not ServerState.ERRORED:
            self.state = ServerState.STOPPING

        try:
            pids = self.pids()
            launched = self._launcher.process if self._launcher else None
            if launched is not None and launched.poll() is None and launched.pid not in pids:
                pids.append(launched.pid)

            self.flags.killed = True
            self.flags.started = False
            killed = self.process_monitor.kill(pids)

            if self._launcher is not None and not self._launcher.join(
                LAUNCHER_JOIN_TIMEOUT
            ):
                logger.warning(
                    "Launcher thread still alive after stop", port=self.port
                )
            if killed:
                logger.info("Test server stopped", port=self.port, pids=killed)
        except Exception as e:
            logger.warning("Error stopping test server", port=self.port, error=str(e))
        finally:
            self.after_stop()

        if self.state is not ServerState.ERRORED:
            self.state = ServerState.STOPPED
        return self

    def _fail(self, error: ServerError) -> None:
        self.flags.started = False
        self.stop()
        self.state = ServerState.ERRORED
        logger.error("Test server misconfigured", port=self.port, error=error.message)
        raise error

    def _abort(
        self,
        error_class: Type[ServerError],
        message: str,
        cause: Optional[Exception],
    ) -> None:
        self.flags.started = False

        prefix = f"<{self.__class__.__name__}>"
        probe_error = str(cause) if cause is not None else "probe succeeded after the process died"
        error_report = self.flags.error_report
        log_tail = self._log_tail()

        lines = [
            f"{prefix} cmd was: {self.mongo_cmd_line}",
            f"{prefix} ERROR: Failed to connect to mongo database: {probe_error}",
        ]
        if error_report:
            lines.extend(f"{prefix} {line}" for line in error_report.splitlines())
        if log_tail is None:
            lines.append(f"No mongo log on disk at {self.mongo_log}")
        else:
            lines.extend(f"{prefix} {line}" for line in log_tail)

        details: Dict[str, Any] = {
            "command": self.mongo_cmd_line,
            "probe_error": probe_error,
            "error_report": error_report,
            "log_tail": log_tail or [],
        }

        self.stop()
        self.state = ServerState.ERRORED
        logger.error(message, port=self.port, name=self.name, probe_error=probe_error)
        raise error_class(
            "\n".join([message] + lines),
            "Check the server log lines above for the cause",
            details=details,
        ) from cause

    def _log_tail(self) -> Optional[List[str]]:
        try:
            with open(self.mongo_log, "rb") as f:
                tail = deque(f, maxlen=self.log_tail_lines) if self.log_tail_lines else []
        except OSError:
            return None
        return [line.decode("utf-8", errors="replace").rstrip("\n") for line in tail]

    # -- client configuration ------------------------------------------------

    def mongoid_options(self, **overrides: Any) -> Dict[str, Any]:
        return documents.mongoid_options(self.port, self.name, **overrides)

    def mongoid3_options(self, **overrides: Any) -> Dict[str, Any]:
        return documents.mongoid3_options(self.port, self.name, **overrides)

    def mongoid_yml(self, **overrides: Any) -> str:
        return documents.mongoid_yml(self.port, self.name, **overrides)

    def mongoid3_yml(self, **overrides: Any) -> str:
        return documents.mongoid3_yml(self.port, self.name, **overrides)

    def __enter__(self) -> "Mongod":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return (
            f"Mongod(name={self.name!r}, port={self.port}, "
            f"state={self.state.value})"
        )
