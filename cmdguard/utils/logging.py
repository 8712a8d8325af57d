"""Colored console logging for cmdguard."""

import sys
import datetime
from typing import Callable, Dict, Optional, TextIO, Tuple

from ..constants import (
    CLR_RESET, CLR_CYAN, CLR_BOLD_CYAN, CLR_GREEN, CLR_BOLD_GREEN,
    CLR_MAGENTA, CLR_BOLD_MAGENTA, CLR_YELLOW, CLR_BOLD_YELLOW,
    CLR_WHITE, CLR_BOLD_WHITE, CLR_RED, CLR_BOLD_RED
)

# level -> (header color, body color)
LEVEL_COLORS: Dict[str, Tuple[str, str]] = {
    "System": (CLR_CYAN, CLR_BOLD_CYAN),
    "User": (CLR_GREEN, CLR_BOLD_GREEN),
    "Command": (CLR_YELLOW, CLR_BOLD_YELLOW),
    "Security": (CLR_MAGENTA, CLR_BOLD_MAGENTA),
    "Error": (CLR_RED, CLR_BOLD_RED),
    "Warning": (CLR_YELLOW, CLR_BOLD_YELLOW),
    "Debug": (CLR_WHITE, CLR_BOLD_WHITE),
}

STDERR_LEVELS = frozenset({"Error", "Warning", "Security"})

# Body color of a Security line, keyed by verdict severity
SEVERITY_COLORS: Dict[str, str] = {
    "low": CLR_BOLD_WHITE,
    "medium": CLR_BOLD_YELLOW,
    "high": CLR_BOLD_MAGENTA,
    "critical": CLR_BOLD_RED,
}


def _local_timestamp() -> str:
    return datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')


class Logger:
    """Process-wide console logger.

    Errors, warnings and safety rejections go to stderr so that a command's
    own output on stdout stays clean. Debug lines are dropped unless enabled.
    """

    def __init__(self, debug_enabled: bool = False,
                 timestamp: Optional[Callable[[], str]] = None):
        self.debug_enabled = debug_enabled
        self._timestamp = timestamp or _local_timestamp

    def set_debug(self, enabled: bool) -> None:
        """Enable or disable debug logging."""
        self.debug_enabled = enabled

    def log_message(self, level: str, message: str, body_color: Optional[str] = None) -> None:
        if level == "Debug" and not self.debug_enabled:
            return

        header_color, content_color = LEVEL_COLORS.get(level, (CLR_WHITE, CLR_BOLD_WHITE))
        if body_color is not None:
            content_color = body_color
        stream: TextIO = sys.stderr if level in STDERR_LEVELS else sys.stdout

        prefix = f"[{self._timestamp()}] [{level}]: "
        lines = message.splitlines() or [""]

        print(f"{header_color}{prefix}{CLR_RESET}{content_color}{lines[0]}{CLR_RESET}", file=stream)
        # Continuation lines line up under the first line's text
        for line in lines[1:]:
            print(f"{' ' * len(prefix)}{content_color}{line}{CLR_RESET}", file=stream)
        stream.flush()

    def system(self, message: str) -> None:
        self.log_message("System", message)

    def user(self, message: str) -> None:
        """Log a confirmation decision."""
        self.log_message("User", message)

    def command(self, message: str) -> None:
        """Log a command that is about to run."""
        self.log_message("Command", message)

    def security(self, message: str, severity: Optional[str] = None) -> None:
        """Log a safety rejection, tinted by verdict severity when given."""
        self.log_message("Security", message, SEVERITY_COLORS.get(severity or ""))

    def error(self, message: str) -> None:
        self.log_message("Error", message)

    def warning(self, message: str) -> None:
        self.log_message("Warning", message)

    def debug(self, message: str) -> None:
        self.log_message("Debug", message)


# Global logger instance (debug setting is applied by the application)
logger = Logger()
