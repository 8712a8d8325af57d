"""Validated, confirmation-gated command execution for cmdguard."""

import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, Optional

from ..constants import (
    DEFAULT_TIMEOUT_MS, DEFAULT_MAX_BUFFER_BYTES, DEFAULT_CONFIRMATION_REQUIRED,
    DEFAULT_SHOW_OUTPUT, NPM_CONFIRM_SUBCOMMANDS,
    CLR_GREEN, CLR_YELLOW, CLR_RESET
)
from ..errors import (
    CmdGuardError, ExecutionRejected, ExecutionCancelled, ExecutionNotFound,
    CommandTimeout, ProcessSpawnFailure
)
from ..history.ledger import ExecutionOutcome, HistoryLedger
from ..utils.helpers import split_command_tokens
from ..utils.logging import logger
from .executor import ProcessSpawner, ProcessTimedOut, SpawnFailed
from .permissions import ConfirmCallback, ConfirmationPolicy, prompt_for_confirmation
from .safety import CommandClassifier


@dataclass(frozen=True)
class ExecutionOptions:
    """Per-call execution settings. ``None`` means "use the gate default"."""
    working_directory: Optional[str] = None
    timeout_ms: Optional[int] = None
    require_confirmation: Optional[bool] = None
    show_output: Optional[bool] = None
    environment_vars: Optional[Dict[str, str]] = None


class ExecutionGate:
    """Runs a command only after it was classified valid and, where needed, confirmed.

    Every attempt that passes validation is recorded in the attached ledger
    and driven to exactly one terminal state.
    """

    def __init__(self, classifier: CommandClassifier,
                 spawner: ProcessSpawner,
                 confirm: ConfirmCallback = prompt_for_confirmation,
                 policy: Optional[ConfirmationPolicy] = None,
                 history: Optional[HistoryLedger] = None,
                 default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
                 max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
                 confirmation_required: bool = DEFAULT_CONFIRMATION_REQUIRED,
                 show_output: bool = DEFAULT_SHOW_OUTPUT,
                 working_directory: Optional[str] = None,
                 timer: Callable[[], float] = time.monotonic):
        """Initialize the gate.

        Args:
            classifier: Classifier whose verdict decides whether a command may run
            spawner: Process spawner returning tagged spawn results
            confirm: Callback asked before running a command that is not auto-approved
            policy: Confirmation policy (default allowlist if None)
            history: Ledger receiving one record per validated attempt
            default_timeout_ms: Timeout when the options give none
            max_buffer_bytes: Per-stream output ceiling
            confirmation_required: Force a prompt for every command
            show_output: Print stdout and stderr after a run
            working_directory: Directory used when the options give none
            timer: Monotonic clock in seconds for measuring durations
        """
        self.classifier = classifier
        self.spawner = spawner
        self.confirm = confirm
        self.policy = policy or ConfirmationPolicy()
        self.history = history
        self.default_timeout_ms = default_timeout_ms
        self.max_buffer_bytes = max_buffer_bytes
        self.confirmation_required = confirmation_required
        self.show_output = show_output
        self.working_directory = working_directory
        self.timer = timer

    def execute(self, command: str, options: Optional[ExecutionOptions] = None) -> ExecutionOutcome:
        """Validate, confirm and run a command.

        Args:
            command: Shell command to run
            options: Per-call settings

        Returns:
            ExecutionOutcome for any exit code

        Raises:
            ExecutionRejected: The classifier rejected the command
            ExecutionCancelled: The user declined to run it
            CommandTimeout: The process exceeded its timeout
            ProcessSpawnFailure: The process could not be run
        """
        options = options or ExecutionOptions()

        verdict = self.classifier.validate(command)
        if not verdict.is_valid:
            logger.security(f"Rejected '{command}': {verdict.reason} (severity: {verdict.severity.value})",
                            verdict.severity.value)
            raise ExecutionRejected(command, verdict)

        cwd = options.working_directory or self.working_directory or os.getcwd()
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else self.default_timeout_ms
        execution_id = self.history.record_execution(command, cwd) if self.history is not None else None

        require_confirmation = options.require_confirmation
        if require_confirmation is None and self.confirmation_required:
            require_confirmation = True

        if self.policy.needs_confirmation(command, require_confirmation):
            with self._cancel_on_abort(execution_id):
                approved = self.confirm(f"About to execute: {command}")
            if not approved:
                logger.user(f"Execution of '{command}' cancelled by user.")
                self._finish(execution_id, "cancel", reason="declined by user")
                raise ExecutionCancelled(command)

        env = dict(os.environ)
        if options.environment_vars:
            env.update(options.environment_vars)

        logger.command(f"Executing: {command}")
        started = self.timer()
        with self._cancel_on_abort(execution_id):
            result = self.spawner.spawn(command, cwd=cwd, env=env, timeout_ms=timeout_ms,
                                        max_buffer_bytes=self.max_buffer_bytes)
        duration_ms = (self.timer() - started) * 1000

        if isinstance(result, ProcessTimedOut):
            logger.warning(f"Command timed out after {result.timeout_ms} ms: {command}")
            self._finish(execution_id, "cancel", reason=f"timed out after {result.timeout_ms} ms")
            raise CommandTimeout(command, result.timeout_ms, result.stdout, result.stderr)

        if isinstance(result, SpawnFailed):
            logger.error(f"Failed to run '{command}': {result.message}")
            self._finish(execution_id, "fail", reason=result.message)
            raise ProcessSpawnFailure(command, result.message) from result.error

        outcome = ExecutionOutcome(
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
            command=command,
            duration_ms=duration_ms,
        )
        logger.command(f"Command completed with exit code {outcome.exit_code} in {duration_ms:.0f} ms")
        self._finish(execution_id, "complete", outcome=outcome)

        show_output = options.show_output if options.show_output is not None else self.show_output
        if show_output:
            self._display_output(outcome)

        return outcome

    def git(self, args: str, options: Optional[ExecutionOptions] = None) -> ExecutionOutcome:
        """Run a git command."""
        return self.execute(f"git {args}", self._with_default_confirmation(options, False))

    def npm(self, args: str, options: Optional[ExecutionOptions] = None) -> ExecutionOutcome:
        """Run an npm command; package changes require confirmation by default."""
        changes_packages = any(token in NPM_CONFIRM_SUBCOMMANDS for token in split_command_tokens(args))
        return self.execute(f"npm {args}", self._with_default_confirmation(options, changes_packages))

    def docker(self, args: str, options: Optional[ExecutionOptions] = None) -> ExecutionOutcome:
        """Run a docker command; always confirmed unless the caller says otherwise."""
        return self.execute(f"docker {args}", self._with_default_confirmation(options, True))

    def command_exists(self, name: str) -> bool:
        """Check whether a command is available on PATH."""
        try:
            outcome = self.execute(f"which {name}", ExecutionOptions(show_output=False))
        except CmdGuardError as e:
            logger.debug(f"command_exists({name}) failed: {e}")
            return False
        return outcome.success

    def get_command_version(self, name: str) -> Optional[str]:
        """Return the output of `name --version`, or None if it fails or cannot run."""
        try:
            outcome = self.execute(f"{name} --version", ExecutionOptions(show_output=False))
        except CmdGuardError as e:
            logger.debug(f"get_command_version({name}) failed: {e}")
            return None
        return outcome.stdout.strip() if outcome.success else None

    def _with_default_confirmation(self, options: Optional[ExecutionOptions],
                                   require_confirmation: bool) -> ExecutionOptions:
        options = options or ExecutionOptions()
        if options.require_confirmation is None:
            options = replace(options, require_confirmation=require_confirmation)
        return options

    @contextmanager
    def _cancel_on_abort(self, execution_id: Optional[str]) -> Iterator[None]:
        """Cancel the record if the block is interrupted, then re-raise."""
        try:
            yield
        except BaseException:
            self._finish(execution_id, "cancel", reason="aborted")
            raise

    def _finish(self, execution_id: Optional[str], action: str,
                outcome: Optional[ExecutionOutcome] = None, reason: Optional[str] = None) -> None:
        if execution_id is None:
            return
        try:
            if action == "complete":
                self.history.complete_execution(execution_id, outcome)
            elif action == "cancel":
                self.history.cancel_execution(execution_id, reason)
            else:
                self.history.fail_execution(execution_id, reason)
        except ExecutionNotFound:
            # Evicted by newer executions while this one was running
            logger.warning(f"Execution record {execution_id} was evicted before it finished")

    def _display_output(self, outcome: ExecutionOutcome) -> None:
        if outcome.stdout.strip():
            print(f"{CLR_GREEN}{outcome.stdout.rstrip()}{CLR_RESET}")
        if outcome.stderr.strip():
            print(f"{CLR_YELLOW}{outcome.stderr.rstrip()}{CLR_RESET}")


def create_execution_gate(classifier: CommandClassifier,
                          spawner: ProcessSpawner,
                          history: Optional[HistoryLedger] = None,
                          confirm: Optional[ConfirmCallback] = None,
                          **settings) -> ExecutionGate:
    """Create an execution gate wired to the given collaborators."""
    return ExecutionGate(
        classifier,
        spawner,
        confirm=confirm or prompt_for_confirmation,
        history=history,
        **settings
    )
