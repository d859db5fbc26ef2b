"""Configuration module for rlskit.

Typed, read-only access to client settings and the toolchain selection
derived from them.
"""

from rlskit.config.settings import (
    DEFAULT_CONFIG_NAME,
    RevealOutputChannelOn,
    Settings,
    ToolchainConfig,
    load_settings,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "RevealOutputChannelOn",
    "Settings",
    "ToolchainConfig",
    "load_settings",
]
