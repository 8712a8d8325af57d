"""Execution history for cmdguard."""

from .ledger import (
    ExecutionStatus,
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionStatistics,
    HistorySnapshot,
    HistoryLedger,
    create_history_ledger
)

__all__ = [
    "ExecutionStatus",
    "ExecutionOutcome",
    "ExecutionRecord",
    "ExecutionStatistics",
    "HistorySnapshot",
    "HistoryLedger",
    "create_history_ledger",
]
