"""Main application class for cmdguard."""

from typing import List, Optional, Tuple
from pathlib import Path

from ..commands.executor import ProcessSpawner, create_process_spawner
from ..commands.gate import ExecutionGate, ExecutionOptions, create_execution_gate
from ..commands.permissions import ConfirmCallback
from ..commands.safety import CommandClassifier, create_classifier, get_safety_recommendation
from ..commands.verdict import Verdict
from ..config.manager import create_config_manager
from ..constants import TIMEOUT_EXIT_CODE, CLR_BOLD_GREEN, CLR_GREEN, CLR_RED, CLR_YELLOW, CLR_RESET
from ..errors import (
    CmdGuardError, ExecutionRejected, ExecutionCancelled, CommandTimeout, HistoryImportError
)
from ..history.ledger import ExecutionRecord, ExecutionStatus, create_history_ledger
from ..utils.logging import logger

_STATUS_COLORS = {
    ExecutionStatus.RUNNING: CLR_YELLOW,
    ExecutionStatus.COMPLETED: CLR_GREEN,
    ExecutionStatus.FAILED: CLR_RED,
    ExecutionStatus.CANCELLED: CLR_YELLOW,
}


class CmdGuard:
    """Main application class for cmdguard.

    Builds one classifier, spawner, ledger and gate per process and hands
    them out by reference.
    """

    def __init__(self, config_dir: Optional[str] = None, debug: bool = False,
                 confirm: Optional[ConfirmCallback] = None,
                 spawner: Optional[ProcessSpawner] = None):
        """Initialize the cmdguard application.

        Args:
            config_dir: Custom configuration directory path
            debug: Enable debug logging
            confirm: Confirmation callback (terminal prompt if None)
            spawner: Process spawner (subprocess-based if None)
        """
        # Set up logging first
        logger.set_debug(debug)

        config_path = Path(config_dir) if config_dir else None
        self.config_manager = create_config_manager(config_path)
        self.config = self.config_manager.config

        # Update debug setting from config if not explicitly set
        if not debug and self.config.get("enable_debug", False):
            logger.set_debug(True)

        self.classifier: CommandClassifier = create_classifier(
            self.config_manager.custom_safe_patterns,
            self.config_manager.custom_dangerous_patterns,
        )
        self.spawner = spawner or create_process_spawner(
            self.config["default_timeout_ms"], self.config["max_buffer_bytes"])

        self.history = create_history_ledger(self.config["history_size"])
        self._load_history()

        self.gate: ExecutionGate = create_execution_gate(
            self.classifier,
            self.spawner,
            history=self.history,
            confirm=confirm,
            default_timeout_ms=self.config["default_timeout_ms"],
            max_buffer_bytes=self.config["max_buffer_bytes"],
            confirmation_required=self.config["confirmation_required"],
            show_output=self.config["show_output"],
            working_directory=self.config["working_directory"],
        )

        logger.debug("Application initialization complete")

    def _load_history(self) -> None:
        history_path = self.config_manager.history_path
        try:
            if self.history.load(history_path):
                logger.debug(f"Loaded execution history from {history_path}")
        except HistoryImportError as e:
            logger.warning(f"Ignoring unreadable history file {history_path}: {e}")
            self.history.clear_history()
        # The configured size wins over the size stored in the file
        self.history.resize(self.config["history_size"])

    def check(self, command: str) -> Tuple[Verdict, str]:
        """Classify a command without running it."""
        return self.classifier.classify(command)

    def print_check(self, command: str) -> bool:
        """Print the classification of a command.

        Returns:
            True if the command is valid
        """
        verdict, stage = self.check(command)
        print(get_safety_recommendation(verdict))
        logger.debug(f"Decided by stage: {stage}")
        return verdict.is_valid

    def run_command(self, command: str, options: Optional[ExecutionOptions] = None) -> int:
        """Run a command through the gate and persist the history.

        Returns:
            Exit code for the process: the command's own exit code, 1 when it
            was rejected, cancelled or could not run, 124 on timeout
        """
        try:
            outcome = self.gate.execute(command, options)
            return outcome.exit_code
        except ExecutionRejected as e:
            print(get_safety_recommendation(e.verdict))
            return 1
        except ExecutionCancelled:
            return 1
        except CommandTimeout:
            return TIMEOUT_EXIT_CODE
        except CmdGuardError as e:
            logger.error(str(e))
            return 1
        except KeyboardInterrupt:
            logger.system("Execution interrupted by user")
            return 1
        finally:
            self.save_history()

    def save_history(self) -> bool:
        return self.history.save(self.config_manager.history_path)

    def print_history(self, count: int = 10) -> None:
        """Print the most recent executions, newest first."""
        executions = self.history.get_recent_executions(count)
        if not executions:
            logger.system("No executions recorded.")
            return
        for record in executions:
            print(self._format_record(record))

    def print_statistics(self) -> None:
        """Print aggregate statistics over the execution history."""
        stats = self.history.get_statistics()
        print(f"{CLR_BOLD_GREEN}Execution statistics{CLR_RESET}")
        print(f"  Total executions: {stats.total_executions}")
        print(f"  Successful: {stats.successful_executions}")
        print(f"  Failed: {stats.failed_executions}")
        print(f"  Success rate: {stats.success_rate:.1f}%")
        print(f"  Average execution time: {stats.average_execution_time:.0f} ms")
        if stats.most_used_commands:
            print("  Most used commands:")
            for name, count in stats.most_used_commands:
                print(f"    {name}: {count}")

    def get_config_summary(self) -> dict:
        """Get a summary of the current configuration."""
        return {
            "config_file": str(self.config_manager.config_file),
            "history_file": str(self.config_manager.history_path),
            "default_timeout_ms": self.config["default_timeout_ms"],
            "confirmation_required": self.config["confirmation_required"],
            "working_directory": self.config["working_directory"] or "(current directory)",
            "history_size": self.config["history_size"],
            "max_buffer_bytes": self.config["max_buffer_bytes"],
            "show_output": self.config["show_output"],
            "custom_safe_patterns_count": len(self.config["custom_safe_patterns"]),
            "custom_dangerous_patterns_count": len(self.config["custom_dangerous_patterns"]),
            "enable_debug": self.config["enable_debug"],
        }

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        summary = self.get_config_summary()

        logger.system("Configuration Summary:")
        for key, value in summary.items():
            logger.system(f"  {key}: {value}")

    def _format_record(self, record: ExecutionRecord) -> str:
        color = _STATUS_COLORS[record.status]
        line = f"{record.start_time.strftime('%Y-%m-%d %H:%M:%S')} {color}{record.status.value:<9}{CLR_RESET} {record.command}"
        if record.result is not None:
            line += f" (exit {record.result.exit_code}, {record.result.duration_ms:.0f} ms)"
        elif record.reason:
            line += f" ({record.reason})"
        return line


def create_application(config_dir: Optional[str] = None, debug: bool = False,
                       confirm: Optional[ConfirmCallback] = None,
                       spawner: Optional[ProcessSpawner] = None) -> CmdGuard:
    """Create and initialize a CmdGuard application instance.

    Args:
        config_dir: Custom configuration directory path
        debug: Enable debug logging
        confirm: Confirmation callback (terminal prompt if None)
        spawner: Process spawner (subprocess-based if None)

    Returns:
        Initialized CmdGuard instance
    """
    return CmdGuard(config_dir, debug, confirm, spawner)


def parse_environment(pairs: Optional[List[str]]) -> Optional[dict]:
    """Turn KEY=VALUE strings into an environment overlay."""
    if not pairs:
        return None
    env = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid environment assignment '{pair}', expected KEY=VALUE")
        env[key] = value
    return env
