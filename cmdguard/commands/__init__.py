"""Command classification and gated execution for cmdguard."""

from .verdict import Severity, Verdict
from .patterns import Classification, CommandPattern, PatternCatalog, create_pattern_catalog
from .syntax import SyntaxSanityChecker
from .detectors import InjectionDetector, ObfuscationDetector
from .safety import CommandClassifier, create_classifier, get_safety_recommendation
from .executor import (
    ProcessSpawner, ProcessExited, ProcessTimedOut, SpawnFailed, SpawnResult,
    create_process_spawner
)
from .permissions import ConfirmationPolicy, prompt_for_confirmation, create_confirmation_policy
from .gate import ExecutionGate, ExecutionOptions, create_execution_gate

__all__ = [
    "Severity",
    "Verdict",
    "Classification",
    "CommandPattern",
    "PatternCatalog",
    "create_pattern_catalog",
    "SyntaxSanityChecker",
    "InjectionDetector",
    "ObfuscationDetector",
    "CommandClassifier",
    "create_classifier",
    "get_safety_recommendation",
    "ProcessSpawner",
    "ProcessExited",
    "ProcessTimedOut",
    "SpawnFailed",
    "SpawnResult",
    "create_process_spawner",
    "ConfirmationPolicy",
    "prompt_for_confirmation",
    "create_confirmation_policy",
    "ExecutionGate",
    "ExecutionOptions",
    "create_execution_gate",
]
