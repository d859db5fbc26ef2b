"""
Platform detection for rlskit.

Only the details that affect how the analysis server environment is built
are detected: which variables the dynamic loader searches and how search
paths are joined.

Usage:
    from rlskit.core.platform import detect_platform

    info = detect_platform()
    for var in info.library_path_vars():
        print(var)
"""

import functools
import os
import platform
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform information relevant to process environments.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
    """

    os: str
    arch: str

    @property
    def path_separator(self) -> str:
        """Separator for PATH-like variables."""
        return ";" if self.os == "windows" else ":"

    def library_path_vars(self) -> List[str]:
        """
        Get the dynamic-library search variables for this platform.

        Returns:
            Variable names, in the order they should be written

        Example:
            >>> PlatformInfo("linux", "x64").library_path_vars()
            ['LD_LIBRARY_PATH']
        """
        if self.os == "windows":
            return ["PATH"]
        if self.os == "macos":
            return ["DYLD_LIBRARY_PATH", "LD_LIBRARY_PATH"]
        return ["LD_LIBRARY_PATH"]

    def library_dir(self, sysroot: str) -> str:
        """Sysroot directory holding the shared libraries the server loads."""
        # Windows resolves DLLs through PATH from the bin directory
        if self.os == "windows":
            return f"{sysroot}/bin"
        return f"{sysroot}/lib"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "darwin":
        return "macos"
    # Other unix flavours use the ELF loader conventions
    return "linux"


def _detect_architecture() -> str:
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    return machine


def prepend_search_path(current: str, entry: str, separator: str = os.pathsep) -> str:
    """
    Prefix a search-path value, keeping any existing entries.

    Args:
        current: Existing variable value (may be empty)
        entry: Directory to put first
        separator: Path list separator

    Returns:
        New variable value
    """
    return f"{entry}{separator}{current}" if current else entry


def clear_platform_cache():
    """Clear the cached platform detection result."""
    detect_platform.cache_clear()
