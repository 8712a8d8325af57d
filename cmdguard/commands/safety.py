"""Command safety classification for cmdguard."""

from typing import Callable, NamedTuple, Optional, Sequence, Tuple

from ..constants import MAX_COMMAND_LENGTH
from .detectors import InjectionDetector, ObfuscationDetector
from .patterns import PatternCatalog, create_pattern_catalog
from .syntax import SyntaxSanityChecker
from .verdict import Severity, Verdict

# (description keywords, reason, suggestion); first keyword hit wins
_DANGER_CATEGORIES = (
    (("privilege", "root user"),
     "dangerous command detected: privilege escalation",
     "Run the command without sudo if possible"),
    (("deletion", "destruction", "formatting", "signature removal", "device write"),
     "dangerous command detected: file system destruction",
     "Use a safer alternative operation"),
    (("permission",),
     "dangerous command detected: permission change",
     "Set appropriate permissions instead"),
    (("obfuscated",),
     "obfuscated command detected",
     "Obfuscated commands are not allowed for security"),
)


class _Request(NamedTuple):
    command: str
    lowered: str
    custom_safe: Tuple[str, ...]
    custom_dangerous: Tuple[str, ...]


class CommandClassifier:
    """Assigns a Verdict to a command through an ordered sequence of stages.

    Each stage returns a Verdict to stop, or None to hand the command to the
    next stage. The order is part of the security contract: later stages
    assume earlier ones did not reject.
    """

    def __init__(self, catalog: Optional[PatternCatalog] = None,
                 max_length: int = MAX_COMMAND_LENGTH):
        self.catalog = catalog or create_pattern_catalog()
        self.max_length = max_length
        self.syntax_checker = SyntaxSanityChecker()
        self.injection_detector = InjectionDetector(self.catalog, self.syntax_checker)
        self.obfuscation_detector = ObfuscationDetector()

        self.stages: Tuple[Tuple[str, Callable[[_Request], Optional[Verdict]]], ...] = (
            ("empty", self._check_empty),
            ("length", self._check_length),
            ("syntax", self._check_syntax),
            ("custom-dangerous", self._check_custom_dangerous),
            ("dangerous", self._check_dangerous),
            ("injection", self._check_injection),
            ("obfuscation", self._check_obfuscation),
            ("custom-safe", self._check_custom_safe),
            ("safe", self._check_safe),
            ("suspicious", self._check_suspicious),
        )

    def validate(self, command: str,
                 custom_safe: Optional[Sequence[str]] = None,
                 custom_dangerous: Optional[Sequence[str]] = None) -> Verdict:
        """Classify a command.

        Args:
            command: Command to classify
            custom_safe: Prefixes that are allowed once built-in checks pass
                (defaults to the catalog's list)
            custom_dangerous: Substrings that are always rejected
                (defaults to the catalog's list)

        Returns:
            Verdict for the command. Never raises for any string input.
        """
        verdict, _ = self.classify(command, custom_safe, custom_dangerous)
        return verdict

    def classify(self, command: str,
                 custom_safe: Optional[Sequence[str]] = None,
                 custom_dangerous: Optional[Sequence[str]] = None) -> Tuple[Verdict, str]:
        """Classify a command and report which stage decided.

        Returns:
            Tuple of (verdict, stage_name); stage_name is "default" when no
            stage matched.
        """
        request = _Request(
            command=command,
            lowered=command.strip().lower(),
            custom_safe=tuple(custom_safe if custom_safe is not None else self.catalog.custom_safe),
            custom_dangerous=tuple(custom_dangerous if custom_dangerous is not None
                                   else self.catalog.custom_dangerous),
        )

        for name, stage in self.stages:
            verdict = stage(request)
            if verdict is not None:
                return verdict, name

        # Unknown commands are permitted, not vouched for
        return Verdict.allow(), "default"

    def _check_empty(self, request: _Request) -> Optional[Verdict]:
        if not request.command or not request.command.strip():
            return Verdict.reject("Command cannot be empty", Severity.LOW,
                                  "Please provide a valid command")
        return None

    def _check_length(self, request: _Request) -> Optional[Verdict]:
        if len(request.command) > self.max_length:
            return Verdict.reject("Command is too long", Severity.MEDIUM,
                                  "Please use a shorter command")
        return None

    def _check_syntax(self, request: _Request) -> Optional[Verdict]:
        if self.syntax_checker.is_malformed(request.command):
            return Verdict.reject("Command appears to be malformed", Severity.MEDIUM,
                                  "Please check command syntax")
        return None

    def _check_custom_dangerous(self, request: _Request) -> Optional[Verdict]:
        for token in request.custom_dangerous:
            if token.lower() in request.lowered:
                return Verdict.reject(f"Custom dangerous pattern detected: {token}",
                                      Severity.CRITICAL,
                                      "This command has been configured as dangerous")
        return None

    def _check_dangerous(self, request: _Request) -> Optional[Verdict]:
        leading = self.syntax_checker.leading_segment(request.lowered)
        match = self.catalog.first_match(self.catalog.dangerous, leading)
        if match is None:
            return None

        reason = f"dangerous command detected: {match.description}"
        suggestion = "Avoid potentially harmful operations"
        description = match.description.lower()
        for keywords, category_reason, category_suggestion in _DANGER_CATEGORIES:
            if any(keyword in description for keyword in keywords):
                reason, suggestion = category_reason, category_suggestion
                break

        return Verdict.reject(reason, Severity.CRITICAL, suggestion)

    def _check_injection(self, request: _Request) -> Optional[Verdict]:
        verdict = self.injection_detector.check_injection(request.command)
        return None if verdict.is_valid else verdict

    def _check_obfuscation(self, request: _Request) -> Optional[Verdict]:
        verdict = self.obfuscation_detector.check_obfuscation(request.command)
        return None if verdict.is_valid else verdict

    def _check_custom_safe(self, request: _Request) -> Optional[Verdict]:
        for prefix in request.custom_safe:
            if request.lowered.startswith(prefix.lower()):
                return Verdict.allow()
        return None

    def _check_safe(self, request: _Request) -> Optional[Verdict]:
        if self.catalog.first_match(self.catalog.safe, request.lowered) is None:
            return None

        # A safe verb with a risky flag (git reset --hard) is not auto-approved
        if self.catalog.first_match(self.catalog.suspicious, request.lowered):
            return Verdict.reject("Suspicious pattern detected: suspicious flags",
                                  Severity.MEDIUM,
                                  "Consider using safer options for this command")
        return Verdict.allow()

    def _check_suspicious(self, request: _Request) -> Optional[Verdict]:
        match = self.catalog.first_match(self.catalog.suspicious, request.lowered)
        if match is None:
            return None

        if "flag" in match.description.lower():
            return Verdict.reject("Suspicious pattern detected: suspicious flags",
                                  Severity.MEDIUM,
                                  "This command contains potentially risky flags")
        return Verdict.reject(f"Suspicious pattern detected: {match.description}",
                              Severity.HIGH,
                              "This command contains potentially risky elements")


def get_safety_recommendation(verdict: Verdict) -> str:
    """Format a verdict as a short recommendation for display."""
    if verdict.is_valid:
        return "✅ Command appears safe to execute."

    text = f"{verdict.reason} (severity: {verdict.severity.value})"
    if verdict.suggestion:
        text += f"\nSuggestion: {verdict.suggestion}"

    if verdict.severity in (Severity.CRITICAL, Severity.HIGH):
        return f"🚫 Command is potentially dangerous:\n{text}\n\nExecution blocked for safety."
    return f"⚠️  Command has potential risks:\n{text}"


def create_classifier(custom_safe: Sequence[str] = (),
                      custom_dangerous: Sequence[str] = ()) -> CommandClassifier:
    """Create a classifier over the built-in catalog and the given override tokens."""
    return CommandClassifier(create_pattern_catalog(custom_safe, custom_dangerous))
