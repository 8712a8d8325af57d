"""Verdict and severity types produced by the command classifier."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """How strongly a command should be resisted."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Verdict:
    """Outcome of classifying a command.

    A valid verdict carries nothing else; an invalid one always carries a
    reason and a severity.
    """
    is_valid: bool
    reason: Optional[str] = None
    severity: Optional[Severity] = None
    suggestion: Optional[str] = None

    def __post_init__(self):
        if self.is_valid:
            if self.reason is not None or self.severity is not None or self.suggestion is not None:
                raise ValueError("A valid verdict cannot carry a reason, severity or suggestion")
        elif self.reason is None or self.severity is None:
            raise ValueError("An invalid verdict requires both a reason and a severity")

    @classmethod
    def allow(cls) -> "Verdict":
        return cls(is_valid=True)

    @classmethod
    def reject(cls, reason: str, severity: Severity, suggestion: Optional[str] = None) -> "Verdict":
        return cls(is_valid=False, reason=reason, severity=severity, suggestion=suggestion)

    def __str__(self) -> str:
        if self.is_valid:
            return "valid"
        text = f"invalid [{self.severity.value}]: {self.reason}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text
