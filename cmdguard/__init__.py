"""
cmdguard - safety gate for shell commands.

This package classifies shell commands as safe, suspicious or dangerous before
they run, asks for confirmation when a command is not auto-approved, executes
it with a timeout and output ceiling, and keeps a bounded history of every
execution attempt.
"""

__version__ = "1.0.0"
__author__ = "cmdguard Team"

# Main API imports
from .commands.safety import CommandClassifier, create_classifier
from .commands.verdict import Severity, Verdict
from .commands.gate import ExecutionGate, ExecutionOptions, create_execution_gate
from .history.ledger import HistoryLedger, ExecutionOutcome, ExecutionRecord, ExecutionStatus
from .core.application import CmdGuard, create_application
from .config.manager import ConfigManager, create_config_manager

__all__ = [
    "CommandClassifier",
    "create_classifier",
    "Severity",
    "Verdict",
    "ExecutionGate",
    "ExecutionOptions",
    "create_execution_gate",
    "HistoryLedger",
    "ExecutionOutcome",
    "ExecutionRecord",
    "ExecutionStatus",
    "CmdGuard",
    "create_application",
    "ConfigManager",
    "create_config_manager",
    "__version__",
]
