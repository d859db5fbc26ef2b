"""
Centralized exception hierarchy for rlskit.

Provisioning and supervision errors are split by recovery policy: some are
recovered locally (toolchain query, sysroot), some drive an install prompt
(missing toolchain/components) and the rest abort startup.
"""

from typing import Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class RlsKitError(Exception):
    """Base exception for all rlskit errors."""

    pass


class ConfigError(RlsKitError):
    """Settings could not be loaded or contain invalid values."""

    pass


# ============================================================================
# Command Execution Exceptions
# ============================================================================


class CommandError(RlsKitError):
    """An external command exited unsuccessfully."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = f"Command failed ({returncode}): {' '.join(self.argv)}"
            if stderr.strip():
                message += f": {stderr.strip()}"
        super().__init__(message)


class CommandNotFoundError(CommandError):
    """The executable of an external command does not exist."""

    def __init__(self, argv: Sequence[str]):
        super().__init__(argv, message=f"Executable not found: {argv[0]}")


# ============================================================================
# Toolchain Query Exceptions
# ============================================================================


class ToolchainQueryFailed(RlsKitError):
    """The toolchain manager could not report the active or installed toolchains."""

    pass


class ComponentQueryFailed(RlsKitError):
    """The toolchain manager could not list components for a channel."""

    def __init__(self, channel: str, reason: str = ""):
        self.channel = channel
        msg = f"Could not list components for toolchain {channel}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MissingToolchain(RlsKitError):
    """The requested channel is not installed."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"{channel} toolchain not installed")


class MissingComponents(RlsKitError):
    """One or more required components are not installed."""

    def __init__(self, channel: str, components: Sequence[str]):
        self.channel = channel
        self.components = list(components)
        super().__init__(
            f"Missing components in {channel}: {', '.join(self.components)}"
        )


# ============================================================================
# Installation Exceptions
# ============================================================================


class InstallError(RlsKitError):
    """Base exception for installation errors."""

    pass


class UserDeclinedInstall(InstallError):
    """The user refused to install a missing toolchain or component."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"{what} not installed")


class InstallFailed(InstallError):
    """Installing the toolchain or a single component failed."""

    def __init__(self, component: str, reason: str = ""):
        self.component = component
        msg = f"Install {component} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InstallVerificationFailed(InstallError):
    """Every install step succeeded but the components are still missing."""

    def __init__(self, channel: str, components: Sequence[str]):
        self.channel = channel
        self.components = list(components)
        super().__init__(f"{','.join(self.components)} not exists in {channel}")


# ============================================================================
# Server Exceptions
# ============================================================================


class SysrootUnavailable(RlsKitError):
    """The compiler did not report a sysroot."""

    pass


class SpawnFailed(RlsKitError):
    """The analysis server process could not be started."""

    def __init__(self, message: str, not_found: bool = False):
        self.not_found = not_found
        super().__init__(message)
