"""Built-in command pattern catalog for cmdguard.

Entries are matched against a lower-cased copy of the command, so every regex
here is written in lower case. List order is precedence: the first matching
entry wins.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Pattern, Tuple, Union


class Classification(str, Enum):
    """Category a pattern assigns to the command it matches."""
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGEROUS = "dangerous"


@dataclass(frozen=True)
class CommandPattern:
    """A single catalog entry.

    A plain string pattern is a case-insensitive substring test; a compiled
    regex is searched in the lower-cased command.
    """
    pattern: Union[str, Pattern]
    classification: Classification
    description: str

    def matches(self, lowered_command: str) -> bool:
        if isinstance(self.pattern, str):
            return self.pattern.lower() in lowered_command
        return self.pattern.search(lowered_command) is not None


def _entries(classification: Classification,
             specs: Iterable[Tuple[str, str]]) -> Tuple[CommandPattern, ...]:
    return tuple(CommandPattern(re.compile(regex), classification, description)
                 for regex, description in specs)


# `rm` used as a command word, bare or path-qualified (`/bin/rm`, `./rm`),
# not as a subcommand of a package or container tool (`git rm`,
# `docker rm`) and not as part of a file name (`notes.rm`, `rm.py`).
_RM = (r"(?<![\w.-])(?<!git )(?<!npm )(?<!pnpm )(?<!yarn )"
       r"(?<!docker )(?<!podman )(?<!kubectl )rm(?![\w.-])")

DANGEROUS_PATTERNS = _entries(Classification.DANGEROUS, [
    # Scripting-language inline execution
    (r"\bpython[0-9.]*\s+-c\b.*\b(os\.system|subprocess|os\.popen)", "obfuscated command execution"),
    (r"\bnode\s+-e\b.*\bexec", "obfuscated command execution"),
    (r"\bperl\s+-e\b.*\bsystem", "obfuscated command execution"),

    # Privilege escalation
    (r"\bsudo\b", "Privilege escalation"),
    (r"\bdoas\b", "Privilege escalation"),
    (r"\bsu\s+root\b", "Switch to root user"),
    (r"\bsu\s+-", "Switch to root user"),
    (r"^\s*su\s*$", "Switch to root user"),

    # File system destruction
    (_RM + r"\s+(?:-\S+\s+)*/\*", "Filesystem destruction"),
    (_RM + r"\s+(?:-\S+\s+)*/(?:home|etc|usr|var|opt|sys|proc|boot|bin|lib|sbin|root)\b", "System directory deletion"),
    (_RM + r"\s+(?:-\S+\s+)*/", "Root filesystem deletion"),
    (_RM, "File deletion"),
    (r"\bmkfs\b", "Filesystem formatting"),
    (r"\bwipefs\b", "Filesystem signature removal"),
    (r"\bshred\b", "Secure file deletion"),
    (r">\s*/dev/(?:sd|hd|vd|xvd|nvme|mmcblk)", "Direct device write"),
    (r"\bdd\s+.*\b(?:if|of)=", "Low-level disk operations"),
    (r"\bfdisk\b", "Disk partitioning"),
    (r"\bparted\b", "Disk partitioning"),
    (r":\(\)\s*\{.*:\s*\|\s*:.*&.*\}", "Fork bomb"),

    # Permissions
    (r"\bchmod\s+(?:-\S+\s+)*0?777\b", "Dangerous permission change"),
    (r"\bchown\s+(?:-\S+\s+)*(?:-r\b|--recursive)", "Recursive ownership change"),

    # System control
    (r"\b(?:shutdown|reboot|halt|poweroff)\b", "System shutdown or reboot"),
    (r"\binit\s+[06]\b", "System shutdown or reboot"),
    (r"\bkill\s+-9\s+1\b", "Kill init process"),
    (r"\bkillall\s+-9\b", "Force kill all processes"),

    # Device access
    (r"\bcat\s+/dev/sd[a-z]", "Direct device read"),
])

SAFE_PATTERNS = _entries(Classification.SAFE, [
    (r"^git\s+", "Git version control"),
    (r"^npm\s+(?:test|run|list|ls|info|view)\b", "NPM safe operations"),
    (r"^ls(?:\s|$)", "Directory listing"),
    (r"^cat\s", "File content display"),
    (r"^grep\s", "Text search"),
    (r"^find\s", "File search"),
    (r"^which\s", "Command location"),
    (r"^echo\s", "Text output"),
    (r"^pwd$", "Current directory"),
    (r"^whoami$", "Current user"),
    (r"^node\s+--version", "Node.js version"),
    (r"^npm\s+--version", "NPM version"),
    (r"^python[0-9.]*\s+--version", "Python version"),
    (r"^docker\s+ps\b", "Docker container list"),
    (r"^docker\s+images\b", "Docker image list"),
])

# Short `-R` is deliberately absent: after case folding it is
# indistinguishable from `-r` (grep -r, cp -r).
SUSPICIOUS_PATTERNS = _entries(Classification.SUSPICIOUS, [
    (r"--force", "Force flag usage"),
    (r"(?:^|\s)-f(?:\s|$)", "Force flag usage"),
    (r"--recursive", "Recursive flag usage"),
    (r"--hard\b", "Hard reset flag usage"),
    (r"--prune\b", "Prune flag usage"),
    (r"--delete\b", "Delete flag usage"),
    (r"--remove\b", "Remove flag usage"),
    (r"/etc/passwd", "Sensitive file access"),
    (r"/etc/shadow", "Sensitive file access"),
    (r"/root/", "Root directory access"),
    (r"\bnpm\s+(?:install|i)\b", "Package installation"),
    (r"\bfind\b.*\s-delete\b", "Mass file deletion"),
    (r"\bdocker\s+rm\b.*\s-f\b", "Force removal"),
])


@dataclass(frozen=True)
class PatternCatalog:
    """Ordered pattern lists plus caller-supplied override tokens."""
    dangerous: Tuple[CommandPattern, ...] = DANGEROUS_PATTERNS
    safe: Tuple[CommandPattern, ...] = SAFE_PATTERNS
    suspicious: Tuple[CommandPattern, ...] = SUSPICIOUS_PATTERNS
    custom_safe: Tuple[str, ...] = field(default_factory=tuple)
    custom_dangerous: Tuple[str, ...] = field(default_factory=tuple)

    def first_match(self, patterns: Tuple[CommandPattern, ...], lowered_command: str):
        """Return the first entry matching the lower-cased command, or None."""
        for entry in patterns:
            if entry.matches(lowered_command):
                return entry
        return None


def create_pattern_catalog(custom_safe: Iterable[str] = (),
                           custom_dangerous: Iterable[str] = ()) -> PatternCatalog:
    """Create the built-in catalog with the given override tokens."""
    return PatternCatalog(
        custom_safe=tuple(p for p in custom_safe if p),
        custom_dangerous=tuple(p for p in custom_dangerous if p),
    )
