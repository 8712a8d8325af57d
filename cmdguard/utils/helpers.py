"""Helper utility functions for cmdguard."""

import shlex
import shutil
import tempfile
from pathlib import Path
from typing import List

from ..utils.logging import logger


def extract_command_name(command: str) -> str:
    """Extract the leading token (base command name) from a command string."""
    parts = command.strip().split()
    return parts[0] if parts else command


def split_command_tokens(command: str) -> List[str]:
    """Split a command into shell-style tokens.

    Falls back to whitespace splitting when shlex cannot tokenize the input
    (for example a trailing backslash).
    """
    try:
        return shlex.split(command)
    except ValueError:
        return command.split()


def ensure_directory_exists(directory: Path) -> None:
    """Ensure a directory exists, creating it if necessary."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Directory ensured: {directory}")
    except Exception as e:
        logger.error(f"Failed to create directory {directory}: {e}")
        raise


def safe_file_write(file_path: Path, content: str, description: str = None) -> bool:
    """Atomically write content to a file via a temporary sibling file."""
    desc = description or f"file {file_path}"
    temp_name = None
    try:
        ensure_directory_exists(file_path.parent)
        with tempfile.NamedTemporaryFile('w', delete=False, dir=file_path.parent,
                                         suffix=file_path.suffix, encoding='utf-8') as tmp_f:
            tmp_f.write(content)
            temp_name = tmp_f.name
        shutil.move(temp_name, str(file_path))
        logger.debug(f"Wrote {desc}")
        return True
    except Exception as e:
        logger.error(f"Failed to write {desc}: {e}")
        if temp_name and Path(temp_name).exists():
            Path(temp_name).unlink()
        return False
