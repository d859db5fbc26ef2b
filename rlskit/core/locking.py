"""
Cross-process locking for toolchain installation.

Some toolchain managers fail when two installs run against the same
toolchain at once, so every install step in rlskit holds a file lock
shared by all rlskit processes on the machine.

Usage:
    from rlskit.core.locking import LockManager

    lock_manager = LockManager()
    async with lock_manager.toolchain_lock("nightly", timeout=300):
        await install()
"""

import asyncio
import logging
import platform
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


def get_global_cache_dir() -> Path:
    """
    Get the global cache directory for lock files.

    Returns:
        Path to global cache directory
    """
    if platform.system() == "Windows":
        base = Path.home() / "AppData" / "Local" / "rlskit"
    else:
        base = Path.home() / ".rlskit"

    return base


class LockManager:
    """
    Manages install locks for rlskit.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Optional[Path] = None):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (default: global cache/lock/)
        """
        if lock_dir is None:
            lock_dir = get_global_cache_dir() / "lock"

        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def toolchain_lock_path(self, channel: str) -> Path:
        safe_id = channel.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"toolchain-{safe_id}.lock"

    @asynccontextmanager
    async def toolchain_lock(self, channel: str, timeout: float = 300):
        """
        Acquire the install lock for a channel.

        The blocking acquire runs in a worker thread so the event loop keeps
        serving other tasks while another process holds the lock.

        Args:
            channel: Toolchain channel being modified
            timeout: Maximum wait time in seconds (default: 300 for long installs)

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self.toolchain_lock_path(channel)
        # Acquired in a worker thread, released on the loop thread
        lock = FileLock(lock_path, timeout=timeout, thread_local=False)

        try:
            await asyncio.to_thread(lock.acquire)
        except LockTimeout as e:
            logger.error(
                f"Could not acquire toolchain lock for {channel} after {timeout}s. "
                "Another process may be installing into this toolchain."
            )
            raise LockTimeout(str(lock_path)) from e

        logger.debug(f"Acquired toolchain lock: {lock_path}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Released toolchain lock: {lock_path}")


__all__ = [
    "LockManager",
    "LockTimeout",
    "get_global_cache_dir",
]
