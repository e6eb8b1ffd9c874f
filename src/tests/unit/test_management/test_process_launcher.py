"""Tests for the background process launcher."""

import sys
import tempfile
from pathlib import Path

import pytest

from mongo_test_server.management.process_launcher import ProcessLauncher
from mongo_test_server.management.state_flags import StateFlags


@pytest.fixture
def flags(storage_dir):
    return StateFlags(storage_dir)


@pytest.fixture
def launcher(flags, storage_dir):
    return ProcessLauncher(flags, storage_dir / "mongo_log")


def leftover_capture_files():
    return list(Path(tempfile.gettempdir()).glob("mongo_test_server_*.err"))


class TestProcessLauncher:
    """Test the ProcessLauncher class."""

    def test_successful_command_leaves_no_error(self, launcher, flags):
        """Test that a clean exit records no error."""
        output = launcher.run([sys.executable, "-c", "print('listening')"])

        assert output.strip() == "listening"
        assert launcher.returncode == 0
        assert not flags.error
        assert not flags.killed
        assert leftover_capture_files() == []

    def test_failed_command_records_error_and_kills(self, launcher, flags, storage_dir):
        """Test that a failing command records a report and sets killed."""
        (storage_dir / "mongo_log").write_text("exception in initAndListen\n")
        argv = [
            sys.executable,
            "-c",
            "import sys; sys.stderr.write('bad option --smallfiles'); sys.exit(3)",
        ]

        launcher.run(argv)

        assert launcher.returncode == 3
        assert flags.error
        assert flags.killed
        report = flags.error_report
        assert "Error executing command:" in report
        assert "sys.exit(3)" in report
        assert "exception in initAndListen" in report
        assert "bad option --smallfiles" in report
        assert leftover_capture_files() == []

    def test_failure_without_log_mentions_missing_log(self, launcher, flags):
        """Test the failure report when no server log exists."""
        launcher.run([sys.executable, "-c", "raise SystemExit(1)"])

        assert "No mongo log on disk" in flags.error_report

    def test_deliberate_kill_is_not_an_error(self, launcher, flags):
        """Test that a failure after a requested kill is not reported."""
        flags.killed = True

        launcher.run([sys.executable, "-c", "raise SystemExit(9)"])

        assert launcher.returncode == 9
        assert not flags.error

    def test_missing_binary_is_a_launch_failure(self, launcher, flags, tmp_path):
        """Test that an unstartable binary is reported as a failure."""
        launcher.run([str(tmp_path / "no-such-mongod"), "--port", "27017"])

        assert launcher.returncode is None
        assert flags.error
        assert flags.killed
        assert "no-such-mongod" in flags.error_report

    def test_failure_after_storage_removed_is_ignored(self, launcher, flags, storage_dir):
        """Test that a failure after storage removal writes nothing."""
        storage_dir.rmdir()

        launcher.run([sys.executable, "-c", "raise SystemExit(1)"])

        assert not storage_dir.exists()

    def test_launch_runs_in_background(self, launcher, flags):
        """Test that launch returns a running background thread."""
        thread = launcher.launch(
            [sys.executable, "-c", "import sys; sys.exit(4)"]
        )

        assert thread.daemon
        assert launcher.join(timeout=10)
        assert launcher.returncode == 4
        assert flags.killed

    def test_join_without_launch(self, launcher):
        """Test join before any launch."""
        assert launcher.join(timeout=0) is True
