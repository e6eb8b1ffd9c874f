"""End-to-end lifecycle tests against a fake mongod binary."""

import time
from pathlib import Path

import pytest

from mongo_test_server.exceptions import LaunchError, ReadinessTimeoutError
from mongo_test_server.management.mongod import ServerState
from mongo_test_server.management.server_registry import ServerRegistry
from mongo_test_server.management.probes import SocketProbe


def test_acceptance_scenario(fake_mongod):
    """Test the registry-driven acceptance server from start to stop."""
    server = ServerRegistry.configure(
        {"port": 27999, "name": "acceptance", "path": fake_mongod()},
        lambda s: setattr(s, "probe", SocketProbe(timeout=0.5)),
    )

    try:
        assert ServerRegistry.start_server() is server

        storage = Path(server.mongo_storage)
        assert server.state is ServerState.RUNNING
        assert storage.is_dir()
        assert (storage / "started").exists()
        assert not (storage / "killed").exists()
        assert server.is_running()
        assert server.mongoid_options() == {
            "host": "localhost",
            "port": 27999,
            "database": "acceptance_test_db",
            "use_utc": False,
            "use_activesupport_time_zone": True,
        }
        assert "waiting for connections" in Path(server.mongo_log).read_text()
    finally:
        ServerRegistry.stop_server()

    assert not server.is_running()
    assert not storage.exists()


def test_start_twice_runs_one_server(make_server, free_port):
    """Test that a second start leaves a single server process."""
    server = make_server(free_port)

    server.start()
    first_pids = server.pids()
    server.start()

    assert len(first_pids) == 1
    assert server.pids() == first_pids


def test_start_stop_then_not_running(make_server, free_port):
    """Test that stop kills the process and removes storage."""
    server = make_server(free_port)
    server.start()
    storage = Path(server.mongo_storage)

    server.stop()
    server.stop()

    assert server.is_running() is False
    assert server.state is ServerState.STOPPED
    assert not storage.exists()


def test_two_servers_do_not_interfere(make_server, free_port_factory):
    """Test that stopping one server leaves another running."""
    first = make_server(free_port_factory(), name="first")
    first.start()

    second_port = free_port_factory()
    assert second_port != first.port
    second = make_server(second_port, name="second")
    second.start()

    assert first.pids() and second.pids()
    assert set(first.pids()).isdisjoint(second.pids())

    first.stop()

    assert not first.is_running()
    assert second.is_running()


def test_failing_binary_raises_launch_error(make_server, free_port):
    """Test that a binary exiting with an error raises LaunchError."""
    server = make_server(free_port, mode="fail")

    with pytest.raises(LaunchError) as exc_info:
        server.start()

    message = str(exc_info.value)
    assert server.mongo_cmd_line in message
    assert "unrecognized option --nohttpinterface" in message
    assert server.state is ServerState.ERRORED
    assert not Path(server.mongo_storage).exists()


def test_unresponsive_server_times_out(make_server, free_port):
    """Test that a server that never listens times out within budget."""
    server = make_server(free_port, mode="hang")
    server.startup_retries = 10
    server.retry_interval = 0.2

    started_at = time.monotonic()
    with pytest.raises(ReadinessTimeoutError) as exc_info:
        server.start()
    elapsed = time.monotonic() - started_at

    assert elapsed < 10 * 0.2 + 5
    assert "fake mongod starting" in str(exc_info.value)
    assert not server.is_running()
    assert not Path(server.mongo_storage).exists()


def test_missing_binary_raises_launch_error(make_server, free_port, tmp_path):
    """Test that a nonexistent binary raises LaunchError."""
    server = make_server(free_port)
    server.path = str(tmp_path / "no-such-mongod")

    with pytest.raises(LaunchError) as exc_info:
        server.start()

    assert "no-such-mongod" in exc_info.value.details["error_report"]


def test_default_probe_keeps_readiness_budget(make_server, free_port):
    """Test that the driver-backed default probe times out within budget."""
    pytest.importorskip("pymongo")
    server = make_server(free_port, mode="hang")
    server.probe = None

    started_at = time.monotonic()
    with pytest.raises(ReadinessTimeoutError):
        server.start()
    elapsed = time.monotonic() - started_at

    assert elapsed < 10 * 0.5 + 3
    assert not server.is_running()
