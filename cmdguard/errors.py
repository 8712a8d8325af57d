"""Exception types raised by the execution layer of cmdguard.

The classifier never raises: a rejected command is a ``Verdict`` with
``is_valid=False``. Everything here represents an operation that could not
complete at all.
"""

from typing import Any, Optional


class CmdGuardError(Exception):
    """Base class for cmdguard errors, carrying a machine-readable code."""

    code = "CMDGUARD_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details


class ExecutionRejected(CmdGuardError):
    """The classifier rejected the command, so it was never run."""

    code = "COMMAND_REJECTED"

    def __init__(self, command: str, verdict):
        super().__init__(f"Command rejected: {verdict.reason}", details={"command": command})
        self.command = command
        self.verdict = verdict


class ExecutionCancelled(CmdGuardError):
    """The user declined to confirm the command."""

    code = "COMMAND_CANCELLED"

    def __init__(self, command: str, message: str = "Command execution cancelled by user"):
        super().__init__(message, details={"command": command})
        self.command = command


class CommandTimeout(CmdGuardError):
    """The process exceeded its timeout and was terminated."""

    code = "COMMAND_TIMEOUT"

    def __init__(self, command: str, timeout_ms: int, stdout: str = "", stderr: str = ""):
        super().__init__(f"Command timed out after {timeout_ms} ms: {command}",
                         details={"command": command, "timeout_ms": timeout_ms})
        self.command = command
        self.timeout_ms = timeout_ms
        self.stdout = stdout
        self.stderr = stderr


class ProcessSpawnFailure(CmdGuardError):
    """The process could not be started or its output could not be collected."""

    code = "SPAWN_FAILURE"

    def __init__(self, command: str, message: str):
        super().__init__(f"Failed to run command '{command}': {message}", details={"command": command})
        self.command = command


class ExecutionNotFound(CmdGuardError, LookupError):
    """A ledger operation referenced an unknown execution id."""

    code = "EXECUTION_NOT_FOUND"

    def __init__(self, execution_id: str):
        super().__init__(f"Execution not found: {execution_id}", details={"id": execution_id})
        self.execution_id = execution_id


class ExecutionStateError(CmdGuardError):
    """A terminal execution record was asked to transition again."""

    code = "INVALID_TRANSITION"


class HistoryImportError(CmdGuardError, ValueError):
    """Serialized history data could not be imported."""

    code = "INVALID_HISTORY"
