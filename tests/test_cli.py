"""Command-line interface."""

import subprocess as sp

import pytest
from unittest.mock import patch

from helpers import mock_popen

from cmdguard import __version__
from cmdguard.cli import main

POPEN = "cmdguard.commands.executor.subprocess.Popen"


def run_cli(config_dir, *args):
    """Run the CLI and return its exit code (None when it returns normally)."""
    # colorama.init would replace sys.stdout for the rest of the session
    with patch("cmdguard.cli.colorama_init"):
        try:
            main(["--config-dir", str(config_dir), *args])
        except SystemExit as e:
            return e.code
    return None


class TestCheck:

    def test_valid_command(self, config_dir, capsys):
        assert run_cli(config_dir, "check", "git", "status") == 0
        assert "safe" in capsys.readouterr().out

    def test_dangerous_command(self, config_dir, capsys):
        assert run_cli(config_dir, "check", "rm", "-rf", "/") == 1
        assert "file system destruction" in capsys.readouterr().out

    def test_missing_command(self, config_dir):
        assert run_cli(config_dir, "check") == 2


class TestRun:

    def test_exit_code_of_command(self, config_dir):
        with patch(POPEN, return_value=mock_popen(b"", b"", 5)) as mock_popen_cls:
            assert run_cli(config_dir, "run", "--quiet", "git", "status") == 5
        assert mock_popen_cls.call_args[0][0] == "git status"

    def test_options_reach_the_process(self, config_dir, tmp_path):
        process = mock_popen(b"ok")
        with patch(POPEN, return_value=process) as mock_popen_cls:
            code = run_cli(config_dir, "run", "--cwd", str(tmp_path), "--timeout-ms", "500",
                           "-e", "MODE=ci", "--", "ls", "-la")
        assert code == 0
        kwargs = mock_popen_cls.call_args[1]
        assert mock_popen_cls.call_args[0][0] == "ls -la"
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["env"]["MODE"] == "ci"
        assert process.wait.call_args[1]["timeout"] <= 0.5

    def test_rejected_command(self, config_dir):
        with patch(POPEN) as mock_popen_cls:
            assert run_cli(config_dir, "run", "sudo", "reboot") == 1
        mock_popen_cls.assert_not_called()

    def test_declined_prompt(self, config_dir):
        with patch("builtins.input", return_value="n"), \
                patch(POPEN) as mock_popen_cls:
            assert run_cli(config_dir, "run", "--confirm", "git", "status") == 1
        mock_popen_cls.assert_not_called()

    def test_timeout(self, config_dir):
        process = mock_popen(wait_effect=[sp.TimeoutExpired(cmd="make", timeout=1), -9])
        with patch("builtins.input", return_value="y"), \
                patch(POPEN, return_value=process), \
                patch("cmdguard.commands.executor.os.killpg"):
            assert run_cli(config_dir, "run", "make", "build") == 124

    def test_bad_environment_assignment(self, config_dir):
        assert run_cli(config_dir, "run", "-e", "NOEQUALS", "ls") == 2


class TestReports:

    def test_history_and_stats(self, config_dir, capsys):
        with patch(POPEN, return_value=mock_popen(b"ok")):
            run_cli(config_dir, "run", "--quiet", "pwd")
        capsys.readouterr()

        assert run_cli(config_dir, "history", "-n", "5") is None
        assert "pwd" in capsys.readouterr().out

        assert run_cli(config_dir, "stats") is None
        assert "Total executions: 1" in capsys.readouterr().out

    def test_no_subcommand_prints_help(self, config_dir):
        assert run_cli(config_dir) == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit), patch("cmdguard.cli.colorama_init"):
            main(["--version"])
        assert __version__ in capsys.readouterr().out
