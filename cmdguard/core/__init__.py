"""Core application logic for cmdguard."""

from .application import CmdGuard, create_application, parse_environment

__all__ = [
    "CmdGuard",
    "create_application",
    "parse_environment",
]
