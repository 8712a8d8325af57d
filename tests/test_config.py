"""YAML configuration loading and validation."""

import pytest

from cmdguard.config.manager import ConfigManager, create_config_manager


class TestDefaults:

    def test_first_run_writes_and_loads_template(self, config_dir):
        manager = create_config_manager(config_dir)

        assert (config_dir / "config.yaml").exists()
        assert manager.get("default_timeout_ms") == 30000
        assert manager.get("confirmation_required") is False
        assert manager.get("working_directory") is None
        assert manager.get("history_size") == 100
        assert manager.get("max_buffer_bytes") == 1048576
        assert manager.get("show_output") is True
        assert manager.custom_safe_patterns == []
        assert manager.custom_dangerous_patterns == []
        assert manager.get("enable_debug") is False

    def test_history_path_is_relative_to_config_dir(self, config_dir):
        manager = create_config_manager(config_dir)
        assert manager.history_path == config_dir / "history.json"

    def test_absolute_history_path(self, write_config, tmp_path):
        target = tmp_path / "elsewhere" / "h.json"
        manager = create_config_manager(write_config(f"history_file: {target}\n"))
        assert manager.history_path == target

    def test_empty_file_uses_defaults(self, write_config):
        manager = create_config_manager(write_config(""))
        assert manager.get("history_size") == 100

    def test_config_before_initialize(self, config_dir):
        with pytest.raises(RuntimeError):
            ConfigManager(config_dir).config


class TestValues:

    def test_custom_values(self, write_config, tmp_path):
        config_dir = write_config(
            "default_timeout_ms: 5000\n"
            "confirmation_required: true\n"
            f"working_directory: {tmp_path}\n"
            "custom_safe_patterns:\n"
            "  - make test\n"
            "custom_dangerous_patterns:\n"
            "  - terraform destroy\n"
        )
        manager = create_config_manager(config_dir)

        assert manager.get("default_timeout_ms") == 5000
        assert manager.get("confirmation_required") is True
        assert manager.get("working_directory") == str(tmp_path)
        assert manager.custom_safe_patterns == ["make test"]
        assert manager.custom_dangerous_patterns == ["terraform destroy"]

    def test_wrong_boolean_falls_back(self, write_config):
        manager = create_config_manager(write_config("show_output: maybe\n"))
        assert manager.get("show_output") is True

    @pytest.mark.parametrize("text", [
        "history_size: 0\n",
        "default_timeout_ms: fast\n",
        "max_buffer_bytes: true\n",
        "custom_safe_patterns: make\n",
        "working_directory: /definitely/not/a/dir\n",
        "- just\n- a list\n",
        "key: [unclosed\n",
    ])
    def test_invalid_config_exits(self, write_config, text):
        with pytest.raises(SystemExit) as exc_info:
            create_config_manager(write_config(text))
        assert exc_info.value.code == 1

    def test_reload(self, write_config):
        config_dir = write_config("history_size: 10\n")
        manager = create_config_manager(config_dir)
        (config_dir / "config.yaml").write_text("history_size: 20\n")
        manager.reload()
        assert manager.get("history_size") == 20
