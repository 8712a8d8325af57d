"""Constants used throughout the cmdguard package."""

from pathlib import Path
from colorama import Fore, Style

# Package information
PACKAGE_NAME = "cmdguard"

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "cmdguard"

# ANSI Color Codes (using colorama)
CLR_RESET = Style.RESET_ALL
CLR_RED = Fore.RED
CLR_BOLD_RED = Style.BRIGHT + Fore.RED
CLR_GREEN = Fore.GREEN
CLR_BOLD_GREEN = Style.BRIGHT + Fore.GREEN
CLR_YELLOW = Fore.YELLOW
CLR_BOLD_YELLOW = Style.BRIGHT + Fore.YELLOW
CLR_MAGENTA = Fore.MAGENTA
CLR_BOLD_MAGENTA = Style.BRIGHT + Fore.MAGENTA
CLR_CYAN = Fore.CYAN
CLR_BOLD_CYAN = Style.BRIGHT + Fore.CYAN
CLR_WHITE = Fore.WHITE
CLR_BOLD_WHITE = Style.BRIGHT + Fore.WHITE

# Classifier limits
MAX_COMMAND_LENGTH = 2000

# Default execution values
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_BUFFER_BYTES = 1024 * 1024
DEFAULT_HISTORY_SIZE = 100
DEFAULT_CONFIRMATION_REQUIRED = False
DEFAULT_SHOW_OUTPUT = True
DEFAULT_ENABLE_DEBUG = False

# Exit code reported by the CLI when a command times out
TIMEOUT_EXIT_CODE = 124

# Leading tokens that may run without confirmation
SAFE_COMMANDS = frozenset({
    "git", "npm", "yarn", "pnpm", "node", "python", "pip", "docker", "kubectl",
    "ls", "cat", "grep", "find", "which", "echo", "pwd", "whoami",
})

# Flags that force confirmation even for allowlisted commands
DANGEROUS_FLAGS = frozenset({
    "--force", "-f", "--recursive", "-R", "--hard", "--prune",
    "--delete", "--remove", "-rf", "-fr", "-Rf", "-fR",
})

# npm subcommands that always require confirmation
NPM_CONFIRM_SUBCOMMANDS = ("install", "uninstall", "update")
