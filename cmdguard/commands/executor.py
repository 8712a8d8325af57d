"""Process spawning for cmdguard."""

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import IO, Dict, List, Optional, Union

from ..constants import DEFAULT_MAX_BUFFER_BYTES, DEFAULT_TIMEOUT_MS
from ..utils.logging import logger

_READ_CHUNK = 65536
_POLL_INTERVAL = 0.05
# Bounds the wait for a pipe held open by a child that escaped the group
_JOIN_TIMEOUT = 1.0


@dataclass(frozen=True)
class ProcessExited:
    """The process ran to completion, with any exit code."""
    stdout: str
    stderr: str
    exit_code: int


@dataclass(frozen=True)
class ProcessTimedOut:
    """The process outlived its timeout and was killed."""
    timeout_ms: int
    stdout: str = ""
    stderr: str = ""


@dataclass(frozen=True)
class SpawnFailed:
    """The process could not be started or its output exceeded the buffer ceiling."""
    error: BaseException
    message: str


SpawnResult = Union[ProcessExited, ProcessTimedOut, SpawnFailed]


def _to_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class OutputLimitExceeded(Exception):
    """Raised internally when a stream is larger than the buffer ceiling."""


class _StreamReader(threading.Thread):
    """Drains one pipe, giving up as soon as the byte ceiling is passed."""

    def __init__(self, name: str, stream: IO[bytes], limit: int, overflow: threading.Event):
        super().__init__(name=f"cmdguard-{name}", daemon=True)
        self.stream_name = name
        self.stream = stream
        self.limit = limit
        self.overflow = overflow
        self.size = 0
        self.exceeded = False
        self._chunks: List[bytes] = []

    def run(self) -> None:
        try:
            for chunk in iter(lambda: self.stream.read1(_READ_CHUNK), b""):
                self.size += len(chunk)
                if self.size > self.limit:
                    self.exceeded = True
                    self.overflow.set()
                    return
                self._chunks.append(chunk)
        except (OSError, ValueError):
            # The pipe went away when the process group was killed
            return
        finally:
            self.stream.close()

    @property
    def text(self) -> str:
        return _to_text(b"".join(self._chunks))


def _kill_process_group(process: subprocess.Popen) -> None:
    """Kill the shell and everything it started."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


def _wait_for_process(process: subprocess.Popen, readers: List[_StreamReader],
                      overflow: threading.Event, deadline: float) -> bool:
    """Wait for both pipes to close and the process to exit.

    Returns:
        True if the deadline passed first
    """
    while any(r.is_alive() for r in readers) and not overflow.is_set():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return True
        overflow.wait(min(remaining, _POLL_INTERVAL))
    if overflow.is_set():
        return False
    try:
        process.wait(timeout=max(deadline - time.monotonic(), 0))
    except subprocess.TimeoutExpired:
        return True
    return False


class ProcessSpawner:
    """Runs shell commands with a timeout, working directory and environment."""

    def __init__(self, default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
                 max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES):
        """Initialize the spawner.

        Args:
            default_timeout_ms: Timeout used when spawn() is given none
            max_buffer_bytes: Largest stdout or stderr accepted from a process
        """
        self.default_timeout_ms = default_timeout_ms
        self.max_buffer_bytes = max_buffer_bytes

    def spawn(self, command: str,
              cwd: Optional[str] = None,
              env: Optional[Dict[str, str]] = None,
              timeout_ms: Optional[int] = None,
              max_buffer_bytes: Optional[int] = None) -> SpawnResult:
        """Run a command through the shell.

        The shell runs in its own session. On timeout, on output past the
        ceiling, or when the caller is interrupted, the whole process group
        is killed.

        Args:
            command: Shell command to execute
            cwd: Working directory (current directory if None)
            env: Complete environment for the process (inherited if None)
            timeout_ms: Hard timeout in milliseconds
            max_buffer_bytes: Per-stream output ceiling in bytes

        Returns:
            ProcessExited, ProcessTimedOut or SpawnFailed
        """
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        if max_buffer_bytes is None:
            max_buffer_bytes = self.max_buffer_bytes

        logger.debug(f"Spawning: {command} - cwd: {cwd or os.getcwd()} - timeout: {timeout_ms}ms")

        try:
            process = subprocess.Popen(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                env=env,
                start_new_session=True
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            return SpawnFailed(error=e, message=str(e))

        overflow = threading.Event()
        readers = [
            _StreamReader("stdout", process.stdout, max_buffer_bytes, overflow),
            _StreamReader("stderr", process.stderr, max_buffer_bytes, overflow),
        ]
        for reader in readers:
            reader.start()

        deadline = time.monotonic() + timeout_ms / 1000.0
        try:
            timed_out = _wait_for_process(process, readers, overflow, deadline)
        except BaseException:
            _kill_process_group(process)
            process.wait()
            raise

        if timed_out or overflow.is_set():
            _kill_process_group(process)
            process.wait()
        for reader in readers:
            reader.join(_JOIN_TIMEOUT)

        stdout, stderr = readers
        if overflow.is_set():
            reader = next(r for r in readers if r.exceeded)
            error = OutputLimitExceeded(
                f"{reader.stream_name} exceeded {max_buffer_bytes} bytes"
            )
            logger.debug(f"Killed '{command}': {error}")
            return SpawnFailed(error=error, message=str(error))

        if timed_out:
            return ProcessTimedOut(timeout_ms=timeout_ms, stdout=stdout.text, stderr=stderr.text)

        return ProcessExited(
            stdout=stdout.text,
            stderr=stderr.text,
            exit_code=process.returncode
        )


def create_process_spawner(timeout_ms: int = DEFAULT_TIMEOUT_MS,
                           max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES) -> ProcessSpawner:
    """Create a process spawner with the specified defaults."""
    return ProcessSpawner(timeout_ms, max_buffer_bytes)
