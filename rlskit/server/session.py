"""
Per-workspace session.

A Session runs the provisioning chain (update, channel resolution, install,
sysroot, spawn) for one project root and owns the resulting supervisor and
progress aggregator. Nothing here is module-global: a restart discards the
supervisor's process and re-runs the whole chain from a fresh state.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Tuple

from rlskit.config.settings import Settings, ToolchainConfig
from rlskit.core.exceptions import CommandNotFoundError, RlsKitError
from rlskit.core.locking import LockManager
from rlskit.core.status import ConsentPrompt, Notifier, StatusIndicator, TerminalPrompt
from rlskit.server.progress import ProgressAggregator
from rlskit.server.supervisor import (
    START_FAILED_STATUS,
    ProcessHandle,
    ProcessSupervisor,
)
from rlskit.toolchain.resolver import DEFAULT_CHANNEL, ToolchainResolver
from rlskit.toolchain.updater import UpdateScheduler

logger = logging.getLogger(__name__)

STATUS_PREFIX = "RLS"
DEPRECATED_ENV_VARS = ("RLS_PATH", "RLS_ROOT")


class Session:
    """
    One analysis server session for a project root.

    Example:
        >>> session = Session(Path("/work/project"), settings)
        >>> handle = await session.start()
        >>> await session.consume_events(events)
        >>> await session.restart()
    """

    def __init__(
        self,
        project_root: Path,
        settings: Settings,
        status: Optional[StatusIndicator] = None,
        notifier: Optional[Notifier] = None,
        prompt: Optional[ConsentPrompt] = None,
        base_env: Optional[Mapping[str, str]] = None,
        lock_manager: Optional[LockManager] = None,
        pipe_stdio: bool = True,
    ):
        self.project_root = project_root
        self.settings = settings
        self.status = status or StatusIndicator()
        self.notifier = notifier or Notifier()
        self.prompt = prompt or TerminalPrompt()
        self.base_env = base_env
        self.lock_manager = lock_manager
        self.pipe_stdio = pipe_stdio
        self.updater = UpdateScheduler(self.status, self.notifier)
        self.config: Optional[ToolchainConfig] = None
        self.supervisor: Optional[ProcessSupervisor] = None
        self.aggregator = ProgressAggregator(self.status, STATUS_PREFIX)

    @property
    def handle(self) -> Optional[ProcessHandle]:
        return self.supervisor.handle if self.supervisor else None

    def _env(self) -> Dict[str, str]:
        return dict(self.base_env if self.base_env is not None else os.environ)

    # ------------------------------------------------------------------
    # Startup checks
    # ------------------------------------------------------------------

    def warn_on_project_layout(self):
        """Report a missing Cargo.toml and deprecated configuration leftovers."""
        if not (self.project_root / "Cargo.toml").exists():
            self.notifier.warning(
                "A Cargo.toml file must be at the root of the workspace "
                "in order to support all features"
            )
        if (self.project_root / "rls.toml").exists():
            self.notifier.warning(
                "Found deprecated rls.toml. Use rlskit.yaml settings instead"
            )
        env = self._env()
        if any(env.get(var) for var in DEPRECATED_ENV_VARS):
            self.notifier.warning(
                "Found deprecated environment variables (RLS_PATH or RLS_ROOT). "
                "Use `rust-client.rlsPath` setting."
            )

    async def resolve_config(self) -> ToolchainConfig:
        """Resolve the channel and build the toolchain selection for this cycle."""
        override = self.settings.channel_override
        if self.settings.rustup_disabled:
            channel = override or DEFAULT_CHANNEL
        else:
            resolver = ToolchainResolver(self.settings.rustup_path, self.project_root)
            channel = await resolver.resolve_channel(override)
        return self.settings.toolchain_config(channel)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Optional[ProcessHandle]:
        """
        Run the full provisioning chain and start the server.

        Returns:
            The server handle, or None if the server executable was not found

        Raises:
            RlsKitError: On any fatal provisioning or spawn error; the status
                is left showing the failure
        """
        if self.supervisor is not None and self.supervisor.handle is not None:
            await self.stop()

        self.status.start(STATUS_PREFIX, "Starting")
        self.warn_on_project_layout()

        try:
            await self.updater.auto_update(self.settings)
            self.config = await self.resolve_config()
            self.supervisor = ProcessSupervisor(
                self.settings,
                self.project_root,
                self.status,
                self.notifier,
                self.prompt,
                base_env=self.base_env,
                lock_manager=self.lock_manager,
                pipe_stdio=self.pipe_stdio,
            )
            handle = await self.supervisor.spawn(self.config)
        except RlsKitError as e:
            logger.error(f"Startup failed: {e}")
            self.notifier.error(str(e))
            self.status.stop(f"{START_FAILED_STATUS}: {e}")
            raise

        self.aggregator = ProgressAggregator(self.status, STATUS_PREFIX)
        if handle is not None:
            self.status.stop(STATUS_PREFIX)
        return handle

    async def stop(self):
        if self.supervisor is not None:
            await self.supervisor.stop()

    async def restart(self) -> Optional[ProcessHandle]:
        """Stop the current server and re-run the provisioning chain."""
        logger.info("Restarting RLS")
        await self.stop()
        return await self.start()

    async def wait(self) -> Optional[int]:
        """Wait for the current server to exit and return its exit code."""
        handle = self.handle
        if handle is None:
            return None
        returncode = await handle.wait()
        if handle.watch_task is not None:
            await handle.watch_task
        if handle.log_task is not None:
            await handle.log_task
        return returncode

    async def consume_events(
        self, events: AsyncIterator[Tuple[str, Dict[str, Any]]]
    ):
        """Feed server notifications to the progress aggregator."""
        await self.aggregator.consume(events)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def update_toolchain(self) -> bool:
        return await self.updater.update(self.settings.rustup_path)

    async def run_project(self) -> int:
        """
        Run ``cargo run`` in the project root with inherited stdio.

        Returns:
            cargo's exit code

        Raises:
            CommandNotFoundError: If cargo is not on PATH
        """
        argv = ["cargo", "run"]
        logger.info(f"Running {' '.join(argv)} in {self.project_root}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv, cwd=str(self.project_root), env=self._env()
            )
        except FileNotFoundError as e:
            raise CommandNotFoundError(argv) from e
        return await process.wait()
