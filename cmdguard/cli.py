"""Command-line interface for cmdguard."""

import argparse
import sys
from typing import List, Optional

from colorama import init as colorama_init

from .commands.gate import ExecutionOptions
from .core.application import create_application, parse_environment
from .utils.logging import logger
from .constants import PACKAGE_NAME
from . import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog=PACKAGE_NAME,
        description="cmdguard: classify, confirm and run shell commands safely.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cmdguard check "rm -rf /"                 # Classify without running
  cmdguard run git status                   # Allowlisted, runs without a prompt
  cmdguard run --confirm -- make clean      # Always ask first
  cmdguard run --timeout-ms 5000 -e CI=1 -- npm test
  cmdguard history -n 20
  cmdguard stats

Exit codes for 'run':
  the command's own exit code, 1 if rejected, cancelled or not runnable,
  124 if it timed out
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f"{PACKAGE_NAME} {__version__}"
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help="Enable debug logging output"
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        help="Custom configuration directory path"
    )

    subparsers = parser.add_subparsers(dest='action', metavar='COMMAND')

    check_parser = subparsers.add_parser('check', help="Classify a command without running it")
    check_parser.add_argument('command', nargs=argparse.REMAINDER, help="Command to classify")

    run_parser = subparsers.add_parser('run', help="Validate, confirm and run a command")
    run_parser.add_argument('--cwd', type=str, help="Working directory for the command")
    run_parser.add_argument('--timeout-ms', type=int, help="Timeout in milliseconds")
    run_parser.add_argument('--confirm', action='store_true', help="Always ask before running")
    run_parser.add_argument('--quiet', action='store_true', help="Do not print command output")
    run_parser.add_argument('-e', '--env', action='append', metavar='KEY=VALUE',
                            help="Extra environment variable (repeatable)")
    run_parser.add_argument('command', nargs=argparse.REMAINDER, help="Command to run")

    history_parser = subparsers.add_parser('history', help="Show recent executions")
    history_parser.add_argument('-n', '--count', type=int, default=10,
                                help="Number of executions to show (default: 10)")

    subparsers.add_parser('stats', help="Show execution statistics")
    subparsers.add_parser('config', help="Show configuration summary")

    return parser


def _join_command(parts: List[str]) -> str:
    if parts and parts[0] == '--':
        parts = parts[1:]
    return " ".join(parts)


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    # Initialize colorama for cross-platform colored output
    colorama_init(autoreset=True)

    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.action:
        parser.print_help()
        sys.exit(1)

    if parsed_args.action in ('check', 'run') and not _join_command(parsed_args.command):
        parser.error(f"'{parsed_args.action}' needs a command")

    try:
        app = create_application(
            config_dir=parsed_args.config_dir,
            debug=parsed_args.debug
        )
    except SystemExit:
        # Configuration errors were already reported
        raise
    except Exception as e:
        logger.error(f"Failed to initialize cmdguard: {e}")
        sys.exit(1)

    if parsed_args.action == 'check':
        valid = app.print_check(_join_command(parsed_args.command))
        sys.exit(0 if valid else 1)

    if parsed_args.action == 'run':
        try:
            environment_vars = parse_environment(parsed_args.env)
        except ValueError as e:
            parser.error(str(e))
        options = ExecutionOptions(
            working_directory=parsed_args.cwd,
            timeout_ms=parsed_args.timeout_ms,
            require_confirmation=True if parsed_args.confirm else None,
            show_output=False if parsed_args.quiet else None,
            environment_vars=environment_vars,
        )
        sys.exit(app.run_command(_join_command(parsed_args.command), options))

    if parsed_args.action == 'history':
        app.print_history(parsed_args.count)
    elif parsed_args.action == 'stats':
        app.print_statistics()
    elif parsed_args.action == 'config':
        app.print_config_summary()


if __name__ == "__main__":
    main()
