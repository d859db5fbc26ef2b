"""Read-only client settings for rlskit.

Settings come from the editor's configuration store, modelled here as a
mapping of dotted keys (``rust-client.channel``). When rlskit runs on its own
the same keys are read from ``rlskit.yaml`` in the project root.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from rlskit.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "rlskit.yaml"


class RevealOutputChannelOn(Enum):
    """When the editor should bring the server output into view."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    NEVER = "never"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RevealOutputChannelOn":
        """Map a setting value to a member; unknown values mean NEVER."""
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        return cls.NEVER


@dataclass(frozen=True)
class ToolchainConfig:
    """Toolchain selection for one provisioning cycle."""

    channel: str
    manager_path: str
    use_wsl: bool = False


class Settings:
    """
    Typed view over a read-only key/value configuration source.

    Values are looked up on every access; the underlying mapping is never
    written to.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Mapping[str, Any] = values if values is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key)
        return default if value is None else value

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    @property
    def rustup_path(self) -> str:
        return str(self.get("rust-client.rustupPath", "rustup"))

    @property
    def channel_override(self) -> Optional[str]:
        """Explicitly configured channel, or None to ask the toolchain manager."""
        channel = self.get("rust-client.channel")
        return str(channel) if channel is not None else None

    @property
    def rls_path(self) -> Optional[str]:
        """
        Explicit server executable.

        Prefers ``rust-client.rlsPath``; the deprecated ``rls.path`` is used
        only when the new key is unset.
        """
        legacy = self.get("rls.path")
        if legacy:
            logger.warning("`rls.path` has been deprecated; prefer `rust-client.rlsPath`")

        current = self.get("rust-client.rlsPath")
        if not current:
            return str(legacy) if legacy else None
        return str(current)

    @property
    def rustup_disabled(self) -> bool:
        """Whether the toolchain manager is bypassed (also implied by rls_path)."""
        if self.rls_path:
            return True
        return self._get_bool("rust-client.disableRustup", False)

    @property
    def log_to_file(self) -> bool:
        return self._get_bool("rust-client.logToFile", False)

    @property
    def set_lib_path(self) -> bool:
        return self._get_bool("rust-client.setLibPath", True)

    @property
    def update_on_startup(self) -> bool:
        return self._get_bool("rust-client.updateOnStartup", True)

    @property
    def ask_install_rls(self) -> bool:
        return self._get_bool("rust-client.askInstallRls", True)

    @property
    def use_wsl(self) -> bool:
        return self._get_bool("rust-client.useWSL", False)

    @property
    def reveal_output_channel_on(self) -> RevealOutputChannelOn:
        return RevealOutputChannelOn.parse(
            self.get("rust-client.revealOutputChannelOn", "never")
        )

    def toolchain_config(self, channel: str) -> ToolchainConfig:
        """Build the toolchain selection for an already resolved channel."""
        return ToolchainConfig(
            channel=channel, manager_path=self.rustup_path, use_wsl=self.use_wsl
        )


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def load_settings(
    project_root: Path, config_file: Optional[Path] = None
) -> Settings:
    """
    Load settings from a YAML file.

    Nested sections are flattened into dotted keys, so ``rust-client:`` with a
    ``channel:`` entry and a top-level ``rust-client.channel:`` are equivalent.

    Args:
        project_root: Project root directory
        config_file: Explicit settings file (default: <project_root>/rlskit.yaml)

    Returns:
        Settings (empty when the default file does not exist)

    Raises:
        ConfigError: If an explicit file is missing or the YAML is invalid
    """
    if config_file is None:
        config_file = project_root / DEFAULT_CONFIG_NAME
        if not config_file.exists():
            logger.debug(f"Settings file not found (optional): {config_file}")
            return Settings({})
    elif not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_file}")

    logger.debug(f"Loading settings from {config_file}")
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        return Settings({})
    if not isinstance(data, Mapping):
        raise ConfigError(f"Settings in {config_file} must be a mapping")

    return Settings(_flatten(data))
