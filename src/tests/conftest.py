"""Pytest configuration and shared fixtures."""

import socket
import sys
import tempfile
from pathlib import Path

import pytest

from mongo_test_server.management.mongod import Mongod
from mongo_test_server.management.probes import SocketProbe
from mongo_test_server.management.server_registry import ServerRegistry

# Stand-in for mongod: accepts the real flag set, logs to --logpath and
# listens on --port. --mode picks how it misbehaves.
FAKE_MONGOD_SOURCE = '''
import argparse
import socket
import sys
import time

parser = argparse.ArgumentParser()
parser.add_argument("--mode", default="serve")
parser.add_argument("--port", type=int, required=True)
parser.add_argument("--logpath", required=True)
args, _ = parser.parse_known_args()

with open(args.logpath, "a") as log:
    log.write("fake mongod starting on port %d\\n" % args.port)

if args.mode == "fail":
    sys.stderr.write("ERROR: unrecognized option --nohttpinterface\\n")
    sys.exit(2)

if args.mode == "hang":
    while True:
        time.sleep(1)

server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
server.bind(("127.0.0.1", args.port))
server.listen(16)
with open(args.logpath, "a") as log:
    log.write("waiting for connections on port %d\\n" % args.port)
while True:
    conn, _ = server.accept()
    conn.close()
'''


@pytest.fixture(autouse=True)
def isolated_tempdir(tmp_path, monkeypatch):
    """Keep storage directories and capture files inside the test's tmp_path."""
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    return temp_root


@pytest.fixture(autouse=True)
def clean_registry():
    ServerRegistry._server = None
    ServerRegistry.settings = None
    yield
    ServerRegistry.reset()
    ServerRegistry.settings = None


def pick_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    return pick_free_port()


@pytest.fixture
def free_port_factory():
    return pick_free_port


@pytest.fixture
def fake_mongod(tmp_path):
    """Build an executable that behaves like mongod in the given mode."""
    script = tmp_path / "fake_mongod.py"
    script.write_text(FAKE_MONGOD_SOURCE)

    def factory(mode: str = "serve") -> str:
        wrapper = tmp_path / f"mongod-{mode}"
        wrapper.write_text(
            f'#!/bin/sh\nexec "{sys.executable}" "{script}" --mode {mode} "$@"\n'
        )
        wrapper.chmod(0o755)
        return str(wrapper)

    return factory


@pytest.fixture
def make_server(fake_mongod):
    """Create servers backed by the fake binary; all are stopped afterwards."""
    servers = []

    def factory(port: int, mode: str = "serve", name: str = "fixture") -> Mongod:
        server = Mongod(port=port, name=name, path=fake_mongod(mode))
        server.probe = SocketProbe(timeout=0.5)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()


@pytest.fixture
def storage_dir(tmp_path) -> Path:
    directory = tmp_path / "storage"
    directory.mkdir()
    return directory
