"""
Tests for rlskit.config.settings module.
"""

import pytest

from rlskit.config.settings import (
    RevealOutputChannelOn,
    Settings,
    ToolchainConfig,
    load_settings,
)
from rlskit.core.exceptions import ConfigError


class TestSettingsDefaults:
    """Defaults when nothing is configured."""

    def test_defaults(self):
        settings = Settings({})

        assert settings.rustup_path == "rustup"
        assert settings.channel_override is None
        assert settings.rls_path is None
        assert settings.rustup_disabled is False
        assert settings.log_to_file is False
        assert settings.set_lib_path is True
        assert settings.update_on_startup is True
        assert settings.ask_install_rls is True
        assert settings.use_wsl is False
        assert settings.reveal_output_channel_on is RevealOutputChannelOn.NEVER

    def test_none_values_fall_back_to_defaults(self):
        settings = Settings({"rust-client.rustupPath": None, "rust-client.setLibPath": None})

        assert settings.rustup_path == "rustup"
        assert settings.set_lib_path is True


class TestSettingsValues:
    """Typed access to configured values."""

    @pytest.mark.parametrize("value,expected", [("true", True), ("0", False), ("Yes", True)])
    def test_string_booleans(self, value, expected):
        assert Settings({"rust-client.logToFile": value}).log_to_file is expected

    def test_rls_path_implies_rustup_disabled(self):
        settings = Settings({"rust-client.rlsPath": "/opt/rls"})

        assert settings.rls_path == "/opt/rls"
        assert settings.rustup_disabled is True

    def test_disable_rustup(self):
        assert Settings({"rust-client.disableRustup": True}).rustup_disabled is True

    def test_deprecated_rls_path(self, caplog):
        settings = Settings({"rls.path": "/legacy/rls"})

        with caplog.at_level("WARNING"):
            assert settings.rls_path == "/legacy/rls"

        assert "deprecated" in caplog.text

    def test_new_rls_path_wins(self):
        settings = Settings({"rls.path": "/legacy/rls", "rust-client.rlsPath": "/new/rls"})

        assert settings.rls_path == "/new/rls"

    def test_values_read_live(self):
        values = {"rust-client.channel": "stable"}
        settings = Settings(values)
        values["rust-client.channel"] = "beta"

        assert settings.channel_override == "beta"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("info", RevealOutputChannelOn.INFO),
            ("WARN", RevealOutputChannelOn.WARN),
            ("error", RevealOutputChannelOn.ERROR),
            ("sometimes", RevealOutputChannelOn.NEVER),
            (3, RevealOutputChannelOn.NEVER),
        ],
    )
    def test_reveal_output_channel_on(self, value, expected):
        settings = Settings({"rust-client.revealOutputChannelOn": value})
        assert settings.reveal_output_channel_on is expected

    def test_toolchain_config(self):
        settings = Settings({"rust-client.rustupPath": "/opt/rustup", "rust-client.useWSL": True})

        assert settings.toolchain_config("beta") == ToolchainConfig("beta", "/opt/rustup", True)


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_default_file(self, tmp_path):
        settings = load_settings(tmp_path)

        assert settings.rustup_path == "rustup"

    def test_nested_sections_flattened(self, tmp_path):
        (tmp_path / "rlskit.yaml").write_text(
            "rust-client:\n"
            "  channel: beta\n"
            "  logToFile: true\n"
            "rls:\n"
            "  path: /legacy/rls\n"
        )

        settings = load_settings(tmp_path)

        assert settings.channel_override == "beta"
        assert settings.log_to_file is True
        assert settings.rls_path == "/legacy/rls"

    def test_dotted_keys(self, tmp_path):
        (tmp_path / "rlskit.yaml").write_text("rust-client.rustupPath: /opt/rustup\n")

        assert load_settings(tmp_path).rustup_path == "/opt/rustup"

    def test_explicit_file(self, tmp_path):
        config = tmp_path / "other.yaml"
        config.write_text("rust-client:\n  disableRustup: yes\n")

        assert load_settings(tmp_path, config).rustup_disabled is True

    def test_explicit_file_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path, tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "rlskit.yaml").write_text("rust-client: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(tmp_path)

    def test_not_a_mapping(self, tmp_path):
        (tmp_path / "rlskit.yaml").write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_settings(tmp_path)

    def test_empty_file(self, tmp_path):
        (tmp_path / "rlskit.yaml").write_text("")

        assert load_settings(tmp_path).channel_override is None
