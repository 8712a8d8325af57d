"""Shared helper functions and classes for cmdguard tests.

Import these in test files: from helpers import ConfirmTracker, FakeSpawner, ...
Fixtures are in conftest.py and are auto-injected by pytest.
"""

import datetime
import io
from unittest.mock import MagicMock

from cmdguard.commands.executor import ProcessExited


# ---------------------------------------------------------------------------
# Confirmation callback helpers
# ---------------------------------------------------------------------------

def confirm_yes(message):
    return True


def confirm_no(message):
    return False


class ConfirmTracker:
    """Confirmation callback that records prompts and returns a fixed answer."""

    def __init__(self, answer=True):
        self.calls = []
        self.answer = answer

    def __call__(self, message):
        self.calls.append(message)
        return self.answer


# ---------------------------------------------------------------------------
# Spawner fake
# ---------------------------------------------------------------------------

class FakeSpawner:
    """Process spawner that returns a canned SpawnResult and records calls.

    An exception instance as the result is raised instead, as an interrupted
    spawn would.
    """

    def __init__(self, result=None):
        self.result = result if result is not None else ProcessExited("ok\n", "", 0)
        self.calls = []

    def spawn(self, command, cwd=None, env=None, timeout_ms=None, max_buffer_bytes=None):
        self.calls.append({
            "command": command,
            "cwd": cwd,
            "env": env,
            "timeout_ms": timeout_ms,
            "max_buffer_bytes": max_buffer_bytes,
        })
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------

class SteppingClock:
    """datetime source that advances by a fixed step on every call."""

    def __init__(self, start=None, step_seconds=1):
        self.current = start or datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
        self.step = datetime.timedelta(seconds=step_seconds)

    def __call__(self):
        now = self.current
        self.current += self.step
        return now


class SteppingTimer:
    """Monotonic seconds source that advances by a fixed step on every call."""

    def __init__(self, step_seconds=0.25):
        self.value = 100.0
        self.step = step_seconds

    def __call__(self):
        now = self.value
        self.value += self.step
        return now


# ---------------------------------------------------------------------------
# Popen mock helper
# ---------------------------------------------------------------------------

def mock_popen(stdout=b"", stderr=b"", returncode=0, wait_effect=None):
    """Create a mock subprocess.Popen whose pipes hold the given bytes.

    Pass wait_effect (e.g. [TimeoutExpired(...), -9]) to script wait() calls.
    Tests that reach a kill must also patch os.killpg.
    """
    process = MagicMock()
    process.pid = 424242
    process.stdout = io.BytesIO(stdout)
    process.stderr = io.BytesIO(stderr)
    process.returncode = returncode
    if wait_effect is not None:
        process.wait.side_effect = wait_effect
    else:
        process.wait.return_value = returncode
    return process
