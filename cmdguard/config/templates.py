"""Configuration templates for cmdguard."""

CONFIG_TEMPLATE = """\
# config.yaml - cmdguard configuration
# Ensure this is valid YAML.
# default_timeout_ms: Hard timeout for each command, in milliseconds.
# confirmation_required: Set to true to confirm every command, even allowlisted ones.
# working_directory: Directory commands run in. null means the current directory.
# history_size: Maximum number of execution records kept.
# history_file: Where execution history is saved, relative to this directory.
# max_buffer_bytes: Largest stdout or stderr accepted from one command.
# show_output: Print command output after it runs.
# custom_safe_patterns: Command prefixes allowed once the built-in checks pass.
#   Example:
#     - make test
#     - cargo build
# custom_dangerous_patterns: Substrings that always reject a command.
#   Example:
#     - terraform destroy
#     - DROP TABLE
# enable_debug: Set to true for verbose debugging output.

default_timeout_ms: {default_timeout_ms}
confirmation_required: false
working_directory: null
history_size: {history_size}
history_file: "history.json"
max_buffer_bytes: {max_buffer_bytes}
show_output: true

custom_safe_patterns: []

custom_dangerous_patterns: []

enable_debug: false
"""
