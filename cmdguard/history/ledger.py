"""Execution history ledger for cmdguard."""

import json
import threading
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..constants import DEFAULT_HISTORY_SIZE
from ..errors import ExecutionNotFound, ExecutionStateError, HistoryImportError
from ..utils.helpers import extract_command_name, safe_file_write
from ..utils.logging import logger


class ExecutionStatus(str, Enum):
    """Lifecycle state of an execution record."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of a process that ran to completion.

    ``success`` is derived from the exit code; a nonzero exit is an ordinary
    outcome, not an error.
    """
    stdout: str
    stderr: str
    exit_code: int
    command: str
    duration_ms: float
    success: bool = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "success", self.exit_code == 0)

    @property
    def output(self) -> str:
        """Combined stdout and stderr output."""
        combined = [s.strip() for s in (self.stdout, self.stderr) if s.strip()]
        return "\n".join(combined)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "command": self.command,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionOutcome":
        return cls(
            stdout=data.get("stdout", ""),
            stderr=data.get("stderr", ""),
            exit_code=int(data["exit_code"]),
            command=data["command"],
            duration_ms=float(data.get("duration_ms", 0)),
        )


@dataclass(frozen=True)
class ExecutionRecord:
    """One execution attempt. Snapshots handed to callers are immutable."""
    id: str
    command: str
    start_time: datetime
    status: ExecutionStatus = ExecutionStatus.RUNNING
    working_directory: Optional[str] = None
    end_time: Optional[datetime] = None
    result: Optional[ExecutionOutcome] = None
    reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not ExecutionStatus.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "command": self.command,
            "working_directory": self.working_directory,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status.value,
            "result": self.result.to_dict() if self.result else None,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionRecord":
        """Rebuild a record, rejecting a status that disagrees with its end time.

        Raises:
            ValueError: If the record is running with an end time, or finished
                without one
        """
        end_time = data.get("end_time")
        result = data.get("result")
        record = cls(
            id=str(data["id"]),
            command=str(data["command"]),
            start_time=_parse_timestamp(data["start_time"]),
            status=ExecutionStatus(data["status"]),
            working_directory=data.get("working_directory"),
            end_time=_parse_timestamp(end_time) if end_time else None,
            result=ExecutionOutcome.from_dict(result) if result else None,
            reason=data.get("reason"),
        )
        if record.is_terminal != (record.end_time is not None):
            raise ValueError(f"Execution {record.id} is {record.status.value} "
                             f"but end_time is {record.end_time}")
        return record


@dataclass(frozen=True)
class HistorySnapshot:
    """Copy of the ledger contents, newest first."""
    executions: Tuple[ExecutionRecord, ...]
    max_entries: int


@dataclass(frozen=True)
class ExecutionStatistics:
    """Aggregates derived from the ledger."""
    total_executions: int
    successful_executions: int
    failed_executions: int
    success_rate: float
    average_execution_time: float
    most_used_commands: List[Tuple[str, int]]
    command_type_distribution: Dict[str, int]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp, reading one without an offset as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class HistoryLedger:
    """Bounded, newest-first record of execution attempts.

    The ordered list and the id index are only touched under one lock, so an
    insert and the eviction it causes are observed together.
    """

    def __init__(self, max_entries: int = DEFAULT_HISTORY_SIZE,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize the ledger.

        Args:
            max_entries: Capacity; the oldest record is evicted beyond it
            clock: Source of timestamps for start and end times
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock or _utcnow
        self._executions: List[ExecutionRecord] = []
        self._index: Dict[str, ExecutionRecord] = {}
        self._lock = threading.RLock()

    def record_execution(self, command: str, working_directory: Optional[str] = None) -> str:
        """Create a running record and return its id."""
        now = self._clock()
        record = ExecutionRecord(
            id=f"exec_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
            command=command,
            start_time=now,
            working_directory=working_directory,
        )
        with self._lock:
            self._index[record.id] = record
            self._executions.insert(0, record)
            while len(self._executions) > self.max_entries:
                evicted = self._executions.pop()
                del self._index[evicted.id]
        return record.id

    def complete_execution(self, execution_id: str, outcome: ExecutionOutcome) -> ExecutionRecord:
        """Finish a record as completed or failed, mirroring outcome.success."""
        status = ExecutionStatus.COMPLETED if outcome.success else ExecutionStatus.FAILED
        return self._transition(execution_id, status, result=outcome)

    def cancel_execution(self, execution_id: str, reason: Optional[str] = None) -> ExecutionRecord:
        """Finish a record as cancelled (declined, timed out or aborted)."""
        return self._transition(execution_id, ExecutionStatus.CANCELLED, reason=reason)

    def fail_execution(self, execution_id: str, reason: str) -> ExecutionRecord:
        """Finish a record as failed when no process outcome exists."""
        return self._transition(execution_id, ExecutionStatus.FAILED, reason=reason)

    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        """Return the record with this id, or None if unknown or evicted."""
        with self._lock:
            return self._index.get(execution_id)

    def get_history(self) -> HistorySnapshot:
        """Return an immutable snapshot of every record, newest first."""
        with self._lock:
            return HistorySnapshot(tuple(self._executions), self.max_entries)

    def find_executions(self, predicate: Callable[[ExecutionRecord], bool]) -> List[ExecutionRecord]:
        """Return the records, newest first, for which predicate is true."""
        with self._lock:
            executions = list(self._executions)
        return [e for e in executions if predicate(e)]

    def get_recent_executions(self, count: int) -> List[ExecutionRecord]:
        """Return the newest records by start time, most recent first."""
        if count <= 0:
            return []
        with self._lock:
            executions = list(self._executions)
        # Stable sort keeps insertion order (newest first) for equal start times
        return sorted(executions, key=lambda e: e.start_time, reverse=True)[:count]

    def get_executions_by_type(self, command_type: str) -> List[ExecutionRecord]:
        return self.find_executions(lambda e: e.command.startswith(command_type))

    def get_statistics(self) -> ExecutionStatistics:
        """Compute aggregates without modifying the ledger.

        The success rate is a percentage over terminal records only; the
        average duration covers records that carry a process outcome.
        """
        with self._lock:
            executions = list(self._executions)

        terminal = [e for e in executions if e.is_terminal]
        successful = [e for e in executions if e.status is ExecutionStatus.COMPLETED]
        failed = [e for e in executions if e.status is ExecutionStatus.FAILED]

        durations = [e.result.duration_ms for e in executions if e.result is not None]
        average = sum(durations) / len(durations) if durations else 0.0

        distribution = Counter(extract_command_name(e.command) for e in executions)

        return ExecutionStatistics(
            total_executions=len(executions),
            successful_executions=len(successful),
            failed_executions=len(failed),
            success_rate=(len(successful) / len(terminal)) * 100 if terminal else 0.0,
            average_execution_time=average,
            most_used_commands=distribution.most_common(10),
            command_type_distribution=dict(distribution),
        )

    def export_history(self) -> str:
        """Serialize the whole ledger, timestamps included, to JSON."""
        snapshot = self.get_history()
        return json.dumps({
            "executions": [e.to_dict() for e in snapshot.executions],
            "max_entries": snapshot.max_entries,
        }, indent=2)

    def import_history(self, history_data: str) -> None:
        """Replace the ledger contents with previously exported data.

        Raises:
            HistoryImportError: If the data is not JSON, lacks an
                ``executions`` list, holds a malformed record (including a
                status that disagrees with its end time) or repeats an id
        """
        try:
            parsed = json.loads(history_data)
        except (json.JSONDecodeError, TypeError) as e:
            raise HistoryImportError("Invalid history data format", details=str(e)) from e

        if not isinstance(parsed, dict) or not isinstance(parsed.get("executions"), list):
            raise HistoryImportError("Invalid history format: missing executions list")

        try:
            executions = [ExecutionRecord.from_dict(item) for item in parsed["executions"]]
            max_entries = parsed.get("max_entries")
            max_entries = self.max_entries if max_entries is None else int(max_entries)
        except (KeyError, TypeError, ValueError) as e:
            raise HistoryImportError("Invalid execution record in history data", details=str(e)) from e

        if max_entries < 1:
            raise HistoryImportError(f"Invalid max_entries: {max_entries}")

        duplicates = sorted(i for i, n in Counter(e.id for e in executions).items() if n > 1)
        if duplicates:
            raise HistoryImportError("Duplicate execution ids in history data",
                                     details={"ids": duplicates})

        with self._lock:
            self.max_entries = max_entries
            self._executions = executions[:max_entries]
            self._index = {e.id: e for e in self._executions}

        logger.debug(f"Imported {len(self._executions)} execution records")

    def resize(self, max_entries: int) -> None:
        """Change the capacity, evicting the oldest records beyond it."""
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        with self._lock:
            self.max_entries = max_entries
            for evicted in self._executions[max_entries:]:
                del self._index[evicted.id]
            del self._executions[max_entries:]

    def clear_history(self) -> None:
        with self._lock:
            self._executions = []
            self._index = {}

    def save(self, path: Path) -> bool:
        """Write the exported ledger to a file atomically."""
        return safe_file_write(path, self.export_history(), "execution history")

    def load(self, path: Path) -> bool:
        """Import the ledger from a file if it exists.

        Returns:
            True if a history file was loaded
        """
        if not path.exists():
            return False
        try:
            history_data = path.read_text(encoding="utf-8")
        except IOError as e:
            raise HistoryImportError(f"Could not read {path}: {e}") from e
        self.import_history(history_data)
        return True

    def _transition(self, execution_id: str, status: ExecutionStatus,
                    result: Optional[ExecutionOutcome] = None,
                    reason: Optional[str] = None) -> ExecutionRecord:
        with self._lock:
            current = self._index.get(execution_id)
            if current is None:
                raise ExecutionNotFound(execution_id)
            if current.is_terminal:
                raise ExecutionStateError(
                    f"Execution {execution_id} is already {current.status.value}",
                    details={"id": execution_id, "status": current.status.value},
                )

            end_time = max(self._clock(), current.start_time)
            updated = replace(current, status=status, end_time=end_time, result=result, reason=reason)

            self._index[execution_id] = updated
            position = self._executions.index(current)
            self._executions[position] = updated
            return updated


def create_history_ledger(max_entries: int = DEFAULT_HISTORY_SIZE) -> HistoryLedger:
    """Create an empty history ledger with the given capacity."""
    return HistoryLedger(max_entries)
