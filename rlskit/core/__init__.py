"""
Core functionality for rlskit.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    RlsKitError,
    ConfigError,
    CommandError,
    CommandNotFoundError,
    ToolchainQueryFailed,
    ComponentQueryFailed,
    MissingToolchain,
    MissingComponents,
    InstallError,
    UserDeclinedInstall,
    InstallFailed,
    InstallVerificationFailed,
    SysrootUnavailable,
    SpawnFailed,
)

from .locking import (
    LockManager,
    LockTimeout,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .process import (
    CommandResult,
    run_command,
)

__all__ = [
    # Exceptions
    "RlsKitError",
    "ConfigError",
    "CommandError",
    "CommandNotFoundError",
    "ToolchainQueryFailed",
    "ComponentQueryFailed",
    "MissingToolchain",
    "MissingComponents",
    "InstallError",
    "UserDeclinedInstall",
    "InstallFailed",
    "InstallVerificationFailed",
    "SysrootUnavailable",
    "SpawnFailed",
    # Locking
    "LockManager",
    "LockTimeout",
    # Platform
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    # Process
    "CommandResult",
    "run_command",
]
