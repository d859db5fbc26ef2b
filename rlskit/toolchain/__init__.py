"""
Toolchain provisioning for rlskit.

Channel resolution, component verification, installation, sysroot lookup
and rustup self-update.
"""

from .resolver import (
    DEFAULT_CHANNEL,
    Ambiguous,
    Found,
    NotFound,
    ToolchainResolver,
    parse_active_toolchain,
)
from .components import REQUIRED_COMPONENTS, ComponentVerifier
from .installer import InstallationState, Installer
from .sysroot import (
    ExtendPathStrategy,
    RetryPolicy,
    RetryStrategy,
    SysrootResolution,
    SysrootResolver,
)
from .updater import UpdateScheduler

__all__ = [
    "DEFAULT_CHANNEL",
    "Ambiguous",
    "Found",
    "NotFound",
    "ToolchainResolver",
    "parse_active_toolchain",
    "REQUIRED_COMPONENTS",
    "ComponentVerifier",
    "InstallationState",
    "Installer",
    "ExtendPathStrategy",
    "RetryPolicy",
    "RetryStrategy",
    "SysrootResolution",
    "SysrootResolver",
    "UpdateScheduler",
]
