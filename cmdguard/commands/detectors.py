"""Injection and obfuscation detectors for cmdguard."""

import re
from typing import Optional

from .patterns import PatternCatalog
from .syntax import SyntaxSanityChecker
from .verdict import Severity, Verdict

# Verbs that turn a chained or substituted command into an attack
_DESTRUCTIVE_VERBS = (
    r"(?:rm|sudo|su|doas|tee|xargs\s+rm|dd|mkfs(?:\.\w+)?|chmod|chown|"
    r"shutdown|reboot|halt|poweroff|kill|killall|pkill|shred|wipefs|fdisk)\b"
)

_SHELL = r"(?:ba|z|da|k)?sh\b"

# Optional directory prefix on a verb (`/bin/rm`, `./rm`)
_PATH_PREFIX = r"(?:[^\s;&|`$()]*/)?"

INJECTION_PATTERNS = [
    (re.compile(r"[;&|\n]\s*" + _PATH_PREFIX + _DESTRUCTIVE_VERBS), "command injection"),
    (re.compile(r"`[^`]*\b" + _DESTRUCTIVE_VERBS), "command substitution"),
    (re.compile(r"\$\([^)]*\b" + _DESTRUCTIVE_VERBS), "command substitution"),
]

OBFUSCATION_PATTERNS = [
    re.compile(r"\bbase64\s+(?:-d|--decode)\b.*\|\s*" + _SHELL),
    re.compile(r"\bxxd\s+-r\b.*\|\s*" + _SHELL),
    re.compile(r"\b(?:curl|wget)\b.*\|\s*" + _SHELL),
    re.compile(_SHELL + r"\s+<\(\s*(?:curl|wget)\b"),
    re.compile(r"\bpython[0-9.]*\s+-c\b.*\b(?:os\.system|os\.popen|subprocess|exec\()"),
    re.compile(r"\bnode\s+-e\b.*\bexec"),
    re.compile(r"\bperl\s+-e\b.*\bsystem"),
    re.compile(r"\bruby\s+-e\b.*\b(?:system|exec)"),
    re.compile(r"\bphp\s+-r\b.*\b(?:system|exec|shell_exec|passthru)"),
    re.compile(r"\beval\b.*\b(?:base64|xxd)\b"),
]


class InjectionDetector:
    """Detects control operators or substitutions that lead into a destructive verb.

    Besides the verb patterns, every segment after the first control operator
    is tested against the built-in dangerous patterns, so chaining cannot be
    used to smuggle in anything the catalog would reject on its own.
    """

    def __init__(self, catalog: Optional[PatternCatalog] = None,
                 syntax_checker: Optional[SyntaxSanityChecker] = None):
        self.catalog = catalog or PatternCatalog()
        self.syntax_checker = syntax_checker or SyntaxSanityChecker()

    def check_injection(self, command: str) -> Verdict:
        lowered = command.lower()

        for pattern, description in INJECTION_PATTERNS:
            if pattern.search(lowered):
                return self._reject(description)

        for segment in self.syntax_checker.split_segments(lowered)[1:]:
            if self.catalog.first_match(self.catalog.dangerous, segment.strip()):
                return self._reject("command injection")

        return Verdict.allow()

    def _reject(self, description: str) -> Verdict:
        return Verdict.reject(
            reason=f"Command injection detected: {description}",
            severity=Severity.HIGH,
            suggestion="Command injection attempts are not allowed",
        )


class ObfuscationDetector:
    """Detects indirect execution: decoded payloads, piped downloads, inline scripts."""

    def check_obfuscation(self, command: str) -> Verdict:
        lowered = command.lower()
        for pattern in OBFUSCATION_PATTERNS:
            if pattern.search(lowered):
                return Verdict.reject(
                    reason="Potentially obfuscated command detected",
                    severity=Severity.HIGH,
                    suggestion="Obfuscated commands are not allowed for security",
                )
        return Verdict.allow()
