"""Syntax sanity checks for shell commands."""

from typing import List

# Characters that end a command segment when they appear unquoted
_CONTROL_CHARS = {";", "|", "&", "\n"}


class SyntaxSanityChecker:
    """Single-pass character scanner for malformed or chained commands.

    This is not a shell parser: it only tracks quoting well enough to tell
    where a quote is left open and where an unquoted control operator splits
    one command into several.
    """

    def is_malformed(self, command: str) -> bool:
        """Check for unclosed quotes, odd backticks or unbalanced ``$(``.

        Args:
            command: Command to check

        Returns:
            True if the command cannot be a well-formed shell command
        """
        in_single_quote = False
        in_double_quote = False

        for char in command:
            if char == '"' and not in_single_quote:
                in_double_quote = not in_double_quote
            elif char == "'" and not in_double_quote:
                in_single_quote = not in_single_quote

        if in_single_quote or in_double_quote:
            return True

        if command.count("`") % 2 != 0:
            return True

        # Approximation: does not pair each substitution with its own ")"
        if command.count("$(") > command.count(")"):
            return True

        return False

    def split_segments(self, command: str) -> List[str]:
        """Split a command at unquoted control operators and substitutions.

        ``;``, ``|``, ``&`` and newlines split only outside quotes and braces;
        backticks and ``$(`` also split inside double quotes, where the shell
        still expands them. ``&`` that belongs to a redirection (``2>&1``,
        ``&>``) does not split. Empty segments are dropped except the leading
        one.
        """
        segments: List[str] = []
        current: List[str] = []
        in_single_quote = False
        in_double_quote = False
        brace_depth = 0
        i = 0

        while i < len(command):
            char = command[i]
            next_char = command[i + 1] if i + 1 < len(command) else ""
            prev_char = command[i - 1] if i > 0 else ""

            if char == "\\" and not in_single_quote and next_char:
                current.append(char + next_char)
                i += 2
                continue

            if char == "'" and not in_double_quote:
                in_single_quote = not in_single_quote
            elif char == '"' and not in_single_quote:
                in_double_quote = not in_double_quote
            elif not in_single_quote and (char == "`" or (char == "$" and next_char == "(")):
                segments.append("".join(current))
                current = []
                i += 2 if char == "$" else 1
                continue
            elif not in_single_quote and not in_double_quote:
                if char == "{":
                    brace_depth += 1
                elif char == "}" and brace_depth:
                    brace_depth -= 1
                elif char in _CONTROL_CHARS and not brace_depth:
                    is_redirect = char == "&" and (prev_char in ("<", ">") or next_char == ">")
                    if not is_redirect:
                        segments.append("".join(current))
                        current = []
                        i += 1
                        continue

            current.append(char)
            i += 1

        segments.append("".join(current))
        return [segments[0]] + [s for s in segments[1:] if s.strip()]

    def leading_segment(self, command: str) -> str:
        """Return the part of the command before its first control operator."""
        return self.split_segments(command)[0]
