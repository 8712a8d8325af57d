"""Confirmation policy and prompting for cmdguard."""

from typing import Callable, FrozenSet, Iterable, Optional

from ..constants import (
    SAFE_COMMANDS, DANGEROUS_FLAGS,
    CLR_YELLOW, CLR_BOLD_YELLOW, CLR_RED, CLR_RESET
)
from ..utils.helpers import extract_command_name, split_command_tokens
from ..utils.logging import logger

ConfirmCallback = Callable[[str], bool]


class ConfirmationPolicy:
    """Decides whether a validated command may run without asking the user."""

    def __init__(self, safe_commands: Optional[Iterable[str]] = None,
                 dangerous_flags: Optional[Iterable[str]] = None):
        """Initialize the policy.

        Args:
            safe_commands: Leading tokens that may be auto-approved
            dangerous_flags: Flags that always force a prompt
        """
        self.safe_commands: FrozenSet[str] = frozenset(
            SAFE_COMMANDS if safe_commands is None else safe_commands)
        self.dangerous_flags: FrozenSet[str] = frozenset(
            DANGEROUS_FLAGS if dangerous_flags is None else dangerous_flags)

    def needs_confirmation(self, command: str, require_confirmation: Optional[bool] = None) -> bool:
        """Check if a command must be confirmed before it runs.

        Args:
            command: Command that already passed classification
            require_confirmation: True forces a prompt; anything else defers
                to the allowlist

        Returns:
            True if the user has to be asked
        """
        if require_confirmation is True:
            return True
        if extract_command_name(command) not in self.safe_commands:
            return True
        return self.has_dangerous_flags(command)

    def has_dangerous_flags(self, command: str) -> bool:
        """Check if any token of the command is a dangerous flag."""
        for token in split_command_tokens(command):
            if token in self.dangerous_flags:
                return True
            if token.startswith("--") and token.split("=", 1)[0] in self.dangerous_flags:
                return True
        return False


def prompt_for_confirmation(message: str) -> bool:
    """Ask the user on the terminal whether to run a command.

    Returns:
        True only for an explicit yes; EOF and Ctrl-C count as no
    """
    print(f"{CLR_YELLOW}⚠️  {message}{CLR_RESET}")

    while True:
        try:
            user_decision = input(
                f"{CLR_BOLD_YELLOW}Execute this command? (y)es/(n)o: {CLR_RESET}"
            ).strip().lower()
        except (EOFError, KeyboardInterrupt):
            print()
            logger.user("No answer given; treating as declined.")
            return False

        if user_decision in ['y', 'yes']:
            logger.user("Command approved.")
            return True
        if user_decision in ['', 'n', 'no']:
            logger.user("Command declined.")
            return False
        print(f"{CLR_RED}Invalid choice. Enter y or n.{CLR_RESET}")


def create_confirmation_policy() -> ConfirmationPolicy:
    """Create a confirmation policy with the default allowlist and flags."""
    return ConfirmationPolicy()
