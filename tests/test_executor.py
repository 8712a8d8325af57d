"""Process spawner: tagged results from a Popen-driven shell."""

import os
import signal
import subprocess as sp
import time

import pytest
from unittest.mock import patch

from helpers import mock_popen

from cmdguard.commands.executor import (
    OutputLimitExceeded, ProcessExited, ProcessSpawner, ProcessTimedOut, SpawnFailed
)

POPEN = "cmdguard.commands.executor.subprocess.Popen"
KILLPG = "cmdguard.commands.executor.os.killpg"


class TestSpawnResults:

    def test_exit_is_reported_with_decoded_output(self):
        spawner = ProcessSpawner()
        process = mock_popen(b"hello\n", b"warn\n", 3)
        with patch(POPEN, return_value=process) as mock_popen_cls:
            result = spawner.spawn("make test", cwd="/tmp", env={"A": "1"}, timeout_ms=1500)

        assert result == ProcessExited("hello\n", "warn\n", 3)
        args, kwargs = mock_popen_cls.call_args
        assert args[0] == "make test"
        assert kwargs["shell"] is True
        assert kwargs["stdout"] == sp.PIPE
        assert kwargs["stderr"] == sp.PIPE
        assert kwargs["start_new_session"] is True
        assert kwargs["cwd"] == "/tmp"
        assert kwargs["env"] == {"A": "1"}
        assert 0 < process.wait.call_args[1]["timeout"] <= 1.5

    def test_default_timeout_applies(self):
        spawner = ProcessSpawner(default_timeout_ms=2000)
        process = mock_popen()
        with patch(POPEN, return_value=process):
            spawner.spawn("true")
        assert 1.0 < process.wait.call_args[1]["timeout"] <= 2.0

    def test_timeout_kills_group_and_keeps_partial_output(self):
        spawner = ProcessSpawner()
        process = mock_popen(b"partial", wait_effect=[sp.TimeoutExpired("sleep 10", 1), -9])
        with patch(POPEN, return_value=process), patch(KILLPG) as mock_killpg:
            result = spawner.spawn("sleep 10", timeout_ms=1000)

        assert isinstance(result, ProcessTimedOut)
        assert result.timeout_ms == 1000
        assert result.stdout == "partial"
        assert result.stderr == ""
        mock_killpg.assert_called_once_with(process.pid, signal.SIGKILL)

    def test_os_error_is_spawn_failure(self):
        spawner = ProcessSpawner()
        error = FileNotFoundError("no such directory: /missing")
        with patch(POPEN, side_effect=error):
            result = spawner.spawn("ls", cwd="/missing")

        assert isinstance(result, SpawnFailed)
        assert result.error is error
        assert "/missing" in result.message

    def test_output_over_ceiling_kills_and_fails(self):
        spawner = ProcessSpawner(max_buffer_bytes=4)
        process = mock_popen(b"too much output")
        with patch(POPEN, return_value=process), patch(KILLPG) as mock_killpg:
            result = spawner.spawn("cat big.log")

        assert isinstance(result, SpawnFailed)
        assert isinstance(result.error, OutputLimitExceeded)
        assert "stdout" in result.message
        mock_killpg.assert_called_once_with(process.pid, signal.SIGKILL)

    def test_stderr_over_ceiling_is_named(self):
        spawner = ProcessSpawner(max_buffer_bytes=4)
        with patch(POPEN, return_value=mock_popen(b"ok", b"far too noisy")), patch(KILLPG):
            result = spawner.spawn("make")
        assert isinstance(result, SpawnFailed)
        assert "stderr" in result.message

    def test_interrupt_kills_group_and_propagates(self):
        spawner = ProcessSpawner()
        process = mock_popen(wait_effect=[KeyboardInterrupt(), -2])
        with patch(POPEN, return_value=process), patch(KILLPG) as mock_killpg:
            with pytest.raises(KeyboardInterrupt):
                spawner.spawn("sleep 10")
        mock_killpg.assert_called_once_with(process.pid, signal.SIGKILL)

    def test_undecodable_bytes_are_replaced(self):
        spawner = ProcessSpawner()
        with patch(POPEN, return_value=mock_popen(b"\xff\xfeok")):
            result = spawner.spawn("cat blob")
        assert result.stdout.endswith("ok")


def _is_zombie(pid):
    try:
        with open(f"/proc/{pid}/stat") as f:
            return f.read().rsplit(")", 1)[1].split()[0] == "Z"
    except (FileNotFoundError, IndexError):
        return False


def _process_gone(pid, within=3.0):
    deadline = time.monotonic() + within
    while time.monotonic() < deadline:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        # Killed but not yet reaped by its new parent
        if _is_zombie(pid):
            return True
        time.sleep(0.05)
    return False


@pytest.mark.integration
class TestRealShell:

    def test_echo(self):
        result = ProcessSpawner().spawn("echo hello")
        assert result == ProcessExited("hello\n", "", 0)

    def test_nonzero_exit(self):
        result = ProcessSpawner().spawn("exit 3")
        assert isinstance(result, ProcessExited)
        assert result.exit_code == 3

    def test_timeout(self):
        result = ProcessSpawner().spawn("sleep 5", timeout_ms=100)
        assert isinstance(result, ProcessTimedOut)

    def test_timeout_kills_child_processes(self, tmp_path):
        pid_file = tmp_path / "child.pid"
        result = ProcessSpawner().spawn(f"sleep 30 & echo $! > {pid_file}; wait", timeout_ms=500)

        assert isinstance(result, ProcessTimedOut)
        assert _process_gone(int(pid_file.read_text().strip()))

    def test_endless_output_stops_at_ceiling(self):
        started = time.monotonic()
        result = ProcessSpawner().spawn("yes", timeout_ms=10000, max_buffer_bytes=1024)

        assert isinstance(result, SpawnFailed)
        assert isinstance(result.error, OutputLimitExceeded)
        assert time.monotonic() - started < 5

    def test_ceiling_is_enforced_while_still_running(self):
        result = ProcessSpawner().spawn("head -c 5000 /dev/zero; sleep 5",
                                        timeout_ms=3000, max_buffer_bytes=1024)
        assert isinstance(result, SpawnFailed)
