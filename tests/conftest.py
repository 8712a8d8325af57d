"""Shared fixtures for cmdguard tests.

Fixtures are auto-injected by pytest. Helper functions are in helpers.py.
"""

import sys
from pathlib import Path

import pytest

# Make helpers.py importable from test modules
sys.path.insert(0, str(Path(__file__).parent))

from cmdguard.commands.executor import ProcessExited
from cmdguard.commands.gate import ExecutionGate
from cmdguard.commands.safety import create_classifier
from cmdguard.history.ledger import HistoryLedger
from helpers import ConfirmTracker, FakeSpawner, SteppingClock, SteppingTimer


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def classifier():
    return create_classifier()


@pytest.fixture
def ledger():
    return HistoryLedger(clock=SteppingClock())


@pytest.fixture
def make_gate(classifier):
    """Factory fixture to create ExecutionGate instances with fakes wired in."""
    def _make(result=None, answer=True, history=None, **settings):
        spawner = FakeSpawner(result if result is not None else ProcessExited("ok\n", "", 0))
        tracker = ConfirmTracker(answer)
        gate = ExecutionGate(
            classifier,
            spawner,
            confirm=tracker,
            history=history,
            timer=SteppingTimer(),
            show_output=settings.pop("show_output", False),
            **settings
        )
        return gate, spawner, tracker
    return _make


@pytest.fixture
def config_dir(tmp_path):
    return tmp_path / "cmdguard"


@pytest.fixture
def write_config(config_dir):
    """Write a config.yaml with the given text into the test config directory."""
    def _write(text):
        config_dir.mkdir(parents=True, exist_ok=True)
        (config_dir / "config.yaml").write_text(text)
        return config_dir
    return _write
