"""Utility functions and helpers for cmdguard."""

from .logging import logger, Logger
from .helpers import (
    extract_command_name,
    split_command_tokens,
    ensure_directory_exists,
    safe_file_write
)

__all__ = [
    "logger",
    "Logger",
    "extract_command_name",
    "split_command_tokens",
    "ensure_directory_exists",
    "safe_file_write",
]
