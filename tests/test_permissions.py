"""Confirmation policy and the terminal prompt."""

import pytest
from unittest.mock import patch

from cmdguard.commands.permissions import ConfirmationPolicy, prompt_for_confirmation


@pytest.fixture
def policy():
    return ConfirmationPolicy()


class TestConfirmationPolicy:

    @pytest.mark.parametrize("command", ["git status", "ls -la", "docker ps", "pwd"])
    def test_allowlisted_commands_run_without_prompt(self, policy, command):
        assert not policy.needs_confirmation(command)

    def test_unknown_command_needs_confirmation(self, policy):
        assert policy.needs_confirmation("make build")

    @pytest.mark.parametrize("command", [
        "git push --force",
        "git push --force=true",
        "ls -R",
        "git clean -f",
        "git branch --delete old",
    ])
    def test_dangerous_flags_need_confirmation(self, policy, command):
        assert policy.needs_confirmation(command)

    def test_forced_confirmation(self, policy):
        assert policy.needs_confirmation("git status", require_confirmation=True)

    def test_false_does_not_skip_allowlist(self, policy):
        assert policy.needs_confirmation("make build", require_confirmation=False)

    def test_custom_allowlist(self):
        policy = ConfirmationPolicy(safe_commands=["make"], dangerous_flags=["--yes"])
        assert not policy.needs_confirmation("make build")
        assert policy.needs_confirmation("make build --yes")
        assert policy.needs_confirmation("git status")


class TestPrompt:

    @pytest.mark.parametrize("answer,expected", [
        ("y", True), ("YES", True), ("n", False), ("no", False), ("", False),
    ])
    def test_answers(self, answer, expected):
        with patch("builtins.input", return_value=answer):
            assert prompt_for_confirmation("About to execute: make") is expected

    def test_invalid_answer_asks_again(self):
        with patch("builtins.input", side_effect=["maybe", "y"]) as mock_input:
            assert prompt_for_confirmation("About to execute: make")
        assert mock_input.call_count == 2

    @pytest.mark.parametrize("error", [EOFError, KeyboardInterrupt])
    def test_interrupted_prompt_declines(self, error):
        with patch("builtins.input", side_effect=error):
            assert not prompt_for_confirmation("About to execute: make")
