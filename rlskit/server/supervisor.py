"""
Analysis server process supervision.

ProcessSupervisor owns at most one live server process per workspace
session. Spawning goes through three launch modes:

1. an explicit server executable (``rust-client.rlsPath``) is run directly
2. with rustup disabled, the bare ``rls`` binary is run from PATH
3. otherwise the toolchain and components are ensured and the server is
   run as ``rustup run <channel> rls``

The environment is the inherited one plus sysroot-derived additions; a
sysroot that cannot be found only produces a warning.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Dict, List, Mapping, Optional

from rlskit.config.settings import Settings, ToolchainConfig
from rlskit.core.exceptions import SpawnFailed, SysrootUnavailable
from rlskit.core.locking import LockManager
from rlskit.core.platform import PlatformInfo, detect_platform, prepend_search_path
from rlskit.core.status import AutoConsent, ConsentPrompt, Notifier, StatusIndicator
from rlskit.toolchain.components import ComponentVerifier
from rlskit.toolchain.installer import Installer
from rlskit.toolchain.sysroot import SysrootResolver

logger = logging.getLogger(__name__)

SERVER_BINARY = "rls"
SOURCE_PATH_VAR = "RUST_SRC_PATH"
LOG_FILE_PREFIX = "rls"
READ_CHUNK_SIZE = 64 * 1024

START_FAILED_STATUS = "RLS could not be started"


@dataclass
class LaunchPlan:
    """How the server will be started."""

    argv: List[str]
    rustup_disabled: bool
    needs_install: bool


def source_path(sysroot: str) -> str:
    return f"{sysroot}/lib/rustlib/src/rust/src"


def apply_sysroot_env(
    env: Mapping[str, str],
    sysroot: str,
    set_lib_path: bool,
    platform: PlatformInfo,
) -> Dict[str, str]:
    """
    Add sysroot-derived variables to an environment.

    Library directories are prefixed to the existing loader variables.
    RUST_SRC_PATH is only set when the caller's environment lacks it.

    Args:
        env: Environment to start from (not modified)
        sysroot: Resolved sysroot
        set_lib_path: Whether to inject the sysroot library directory into loader variables
        platform: Platform deciding the loader variable names

    Returns:
        New environment
    """
    new_env = dict(env)
    if set_lib_path:
        lib_dir = platform.library_dir(sysroot)
        for var in platform.library_path_vars():
            new_env[var] = prepend_search_path(
                new_env.get(var, ""), lib_dir, platform.path_separator
            )
    if not new_env.get(SOURCE_PATH_VAR):
        new_env[SOURCE_PATH_VAR] = source_path(sysroot)
    return new_env


@dataclass
class ProcessHandle:
    """
    A running server process and the tasks attached to it.

    Owned by exactly one ProcessSupervisor and discarded on stop, restart
    or crash.
    """

    process: asyncio.subprocess.Process
    argv: List[str]
    log_path: Optional[Path] = None
    log_task: Optional[asyncio.Task] = None
    watch_task: Optional[asyncio.Task] = None
    stopping: bool = False
    log_errors: List[str] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    async def wait(self) -> int:
        return await self.process.wait()


class ProcessSupervisor:
    """
    Starts, watches and stops the analysis server for one workspace.

    Example:
        >>> supervisor = ProcessSupervisor(settings, project_root, status, notifier, prompt)
        >>> handle = await supervisor.spawn(ToolchainConfig("nightly", "rustup"))
        >>> await supervisor.stop()
    """

    def __init__(
        self,
        settings: Settings,
        project_root: Path,
        status: StatusIndicator,
        notifier: Notifier,
        prompt: ConsentPrompt,
        platform: Optional[PlatformInfo] = None,
        base_env: Optional[Mapping[str, str]] = None,
        lock_manager: Optional[LockManager] = None,
        pipe_stdio: bool = True,
    ):
        self.settings = settings
        self.project_root = project_root
        self.status = status
        self.notifier = notifier
        self.prompt = prompt if settings.ask_install_rls else AutoConsent(True)
        self.platform = platform or detect_platform()
        self.base_env = base_env
        self.lock_manager = lock_manager
        self.pipe_stdio = pipe_stdio
        self.handle: Optional[ProcessHandle] = None
        self.installer: Optional[Installer] = None
        self.sysroot_resolver: Optional[SysrootResolver] = None

    # ------------------------------------------------------------------
    # Launch planning and environment
    # ------------------------------------------------------------------

    def plan_launch(self, config: ToolchainConfig) -> LaunchPlan:
        rls_path = self.settings.rls_path
        if rls_path:
            return LaunchPlan([rls_path], rustup_disabled=True, needs_install=False)
        if self.settings.rustup_disabled:
            return LaunchPlan(
                [SERVER_BINARY], rustup_disabled=True, needs_install=False
            )
        return LaunchPlan(
            [config.manager_path, "run", config.channel, SERVER_BINARY],
            rustup_disabled=False,
            needs_install=True,
        )

    async def build_env(self, config: ToolchainConfig, rustup_disabled: bool):
        """
        Build the server environment for this provisioning cycle.

        A fresh SysrootResolver is created so no sysroot survives a restart.
        """
        base = dict(self.base_env if self.base_env is not None else os.environ)
        self.sysroot_resolver = SysrootResolver(
            config.manager_path, config.channel, rustup_disabled=rustup_disabled
        )
        try:
            resolution = await self.sysroot_resolver.resolve_sysroot(base)
        except SysrootUnavailable as e:
            logger.error(f"Error reading sysroot: {e}")
            self.notifier.warning(f"Error reading sysroot: {e}")
            return base

        self.notifier.show_message(f"Setting sysroot to {resolution.path}")
        return apply_sysroot_env(
            resolution.env, resolution.path, self.settings.set_lib_path, self.platform
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def spawn(self, config: ToolchainConfig) -> Optional[ProcessHandle]:
        """
        Provision as needed and start the server.

        Any previous process is stopped first.

        Returns:
            The new handle, or None when the executable does not exist

        Raises:
            UserDeclinedInstall, InstallFailed, InstallVerificationFailed,
            ToolchainQueryFailed, ComponentQueryFailed: provisioning errors
            SpawnFailed: If starting the process fails for another reason
        """
        if self.handle is not None:
            await self.stop()

        plan = self.plan_launch(config)
        if plan.needs_install:
            self.installer = Installer(
                ComponentVerifier(),
                self.prompt,
                self.status,
                self.notifier,
                lock_manager=self.lock_manager,
            )
            await self.installer.ensure_toolchain(config)
            await self.installer.ensure_components(config)

        env = await self.build_env(config, plan.rustup_disabled)
        self.notifier.show_message(
            f"running: {' '.join(plan.argv)} at {self.project_root}"
        )

        pipe = asyncio.subprocess.PIPE if self.pipe_stdio else None
        log_to_file = self.settings.log_to_file
        try:
            process = await self._start_process(plan, env, pipe, log_to_file)
        except SpawnFailed as e:
            self.status.stop(START_FAILED_STATUS)
            if not e.not_found:
                raise
            logger.error(f"Could not spawn RLS process: {e}")
            self.notifier.warning("Could not start RLS")
            return None

        handle = ProcessHandle(process=process, argv=plan.argv)
        if log_to_file:
            handle.log_path = self.project_root / (
                f"{LOG_FILE_PREFIX}{int(time.time() * 1000)}.log"
            )
            handle.log_task = asyncio.create_task(self._capture_stderr(handle))
        handle.watch_task = asyncio.create_task(self._watch(handle))
        self.handle = handle
        logger.info(f"Started RLS (pid {handle.pid})")
        return handle

    async def _start_process(self, plan: LaunchPlan, env, pipe, log_to_file: bool):
        # A missing cwd also surfaces as FileNotFoundError
        if not self.project_root.is_dir():
            raise SpawnFailed(
                f"Error starting up rls: project root {self.project_root} does not exist"
            )
        try:
            return await asyncio.create_subprocess_exec(
                *plan.argv,
                stdin=pipe,
                stdout=pipe,
                stderr=asyncio.subprocess.PIPE if log_to_file else None,
                env=env,
                cwd=str(self.project_root),
            )
        except FileNotFoundError as e:
            raise SpawnFailed(str(e), not_found=True) from e
        except OSError as e:
            raise SpawnFailed(f"Error starting up rls: {e}") from e

    async def stop(self):
        """Stop the current process, best effort, and release its handle."""
        handle = self.handle
        if handle is None:
            return
        handle.stopping = True
        if handle.running:
            try:
                handle.process.terminate()
            except ProcessLookupError:
                pass
        await handle.wait()
        if handle.watch_task is not None:
            await handle.watch_task
        if handle.log_task is not None:
            await handle.log_task
        if self.handle is handle:
            self.handle = None
        logger.info(f"Stopped RLS (pid {handle.pid})")

    async def _watch(self, handle: ProcessHandle):
        returncode = await handle.wait()
        if handle.stopping:
            return
        if returncode != 0:
            logger.error(f"RLS exited unexpectedly with code {returncode}")
            self.notifier.warning(f"RLS exited unexpectedly (code {returncode})")
            self.status.stop("RLS crashed")
        else:
            logger.info("RLS exited")
        if self.handle is handle:
            self.handle = None

    async def _capture_stderr(self, handle: ProcessHandle):
        """Copy the server's stderr verbatim into the session log file."""
        stream = handle.process.stderr
        log_file: Optional[IO[bytes]] = None
        try:
            log_file = open(handle.log_path, "wb")
        except OSError as e:
            self._log_write_failed(handle, e)

        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            if log_file is None:
                # Keep draining so the server never blocks on a full pipe
                continue
            try:
                log_file.write(chunk)
                log_file.flush()
            except OSError as e:
                self._log_write_failed(handle, e)
                log_file.close()
                log_file = None

        if log_file is not None:
            log_file.close()

    def _log_write_failed(self, handle: ProcessHandle, error: OSError):
        message = f"Couldn't write to {handle.log_path} ({error})"
        handle.log_errors.append(message)
        logger.error(message)
        self.notifier.error(message)
