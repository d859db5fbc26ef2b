"""
Interactive installation of a missing toolchain or missing components.

Both entry points follow the same protocol: verify, ask for consent if
something is missing, install, and leave the status indicator in a final
state whatever the outcome. Components are installed one at a time in
REQUIRED_COMPONENTS order while holding the toolchain install lock; the
first failure stops the loop.
"""

import logging
from enum import Enum
from typing import Optional

from rlskit.config.settings import ToolchainConfig
from rlskit.core.exceptions import (
    CommandError,
    InstallFailed,
    InstallVerificationFailed,
    MissingComponents,
    MissingToolchain,
    UserDeclinedInstall,
)
from rlskit.core.locking import LockManager, LockTimeout
from rlskit.core.process import run_command
from rlskit.core.status import ConsentPrompt, Notifier, StatusIndicator
from rlskit.toolchain.components import ComponentVerifier

logger = logging.getLogger(__name__)

STATUS_PREFIX = "RLS"


class InstallationState(Enum):
    """Progress of one install target (toolchain or component set)."""

    UNCHECKED = "unchecked"
    MISSING = "missing"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    InstallationState.UNCHECKED: {InstallationState.MISSING, InstallationState.INSTALLED},
    InstallationState.MISSING: {InstallationState.INSTALLING, InstallationState.FAILED},
    InstallationState.INSTALLING: {InstallationState.INSTALLED, InstallationState.FAILED},
    # Retry after the user agreed again
    InstallationState.FAILED: {InstallationState.INSTALLING},
    InstallationState.INSTALLED: set(),
}


class InstallTracker:
    """Holds an InstallationState and rejects backward transitions."""

    def __init__(self, name: str):
        self.name = name
        self.state = InstallationState.UNCHECKED

    def advance(self, new_state: InstallationState):
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid install transition for {self.name}: "
                f"{self.state.value} -> {new_state.value}"
            )
        logger.debug(f"{self.name}: {self.state.value} -> {new_state.value}")
        self.state = new_state


class Installer:
    """
    Ensures the channel and the required components are installed.

    One installer is created per provisioning cycle, so its state never
    carries over a restart.

    Example:
        >>> installer = Installer(ComponentVerifier(), prompt, status, notifier)
        >>> await installer.ensure_toolchain(config)
        >>> await installer.ensure_components(config)
    """

    def __init__(
        self,
        verifier: ComponentVerifier,
        prompt: ConsentPrompt,
        status: StatusIndicator,
        notifier: Notifier,
        lock_manager: Optional[LockManager] = None,
        lock_timeout: float = 300,
    ):
        self.verifier = verifier
        self.prompt = prompt
        self.status = status
        self.notifier = notifier
        self.lock_manager = lock_manager or LockManager()
        self.lock_timeout = lock_timeout
        self.toolchain = InstallTracker("toolchain")
        self.components = InstallTracker("components")

    # ------------------------------------------------------------------
    # Toolchain
    # ------------------------------------------------------------------

    async def ensure_toolchain(self, config: ToolchainConfig):
        """
        Make sure the channel is installed, asking before installing it.

        Raises:
            ToolchainQueryFailed: If rustup cannot be run
            UserDeclinedInstall: If the user refuses the install
            InstallFailed: If ``rustup toolchain install`` fails
        """
        if self.toolchain.state is not InstallationState.FAILED:
            if await self.verifier.has_toolchain(config):
                self.toolchain.advance(InstallationState.INSTALLED)
                return
            self.toolchain.advance(InstallationState.MISSING)
            question = f"{MissingToolchain(config.channel)}. Install?"
        else:
            question = f"Installing the {config.channel} toolchain failed. Retry?"

        if not await self.prompt.confirm(question):
            if self.toolchain.state is InstallationState.MISSING:
                self.toolchain.advance(InstallationState.FAILED)
            self.status.stop(f"{config.channel} toolchain not installed")
            raise UserDeclinedInstall(f"{config.channel} toolchain")

        self.toolchain.advance(InstallationState.INSTALLING)
        await self._install_toolchain(config)
        self.toolchain.advance(InstallationState.INSTALLED)

    async def _install_toolchain(self, config: ToolchainConfig):
        self.status.start(STATUS_PREFIX, "Installing toolchain…")
        argv = [config.manager_path, "toolchain", "install", config.channel]
        try:
            async with self.lock_manager.toolchain_lock(
                config.channel, timeout=self.lock_timeout
            ):
                result = await run_command(argv)
        except (CommandError, LockTimeout) as e:
            self.toolchain.advance(InstallationState.FAILED)
            message = f"Could not install {config.channel} toolchain"
            self.notifier.error(message)
            self.status.stop(message)
            raise InstallFailed(f"{config.channel} toolchain", str(e)) from e

        logger.info(result.stdout)
        if result.stderr:
            logger.info(result.stderr)
        self.status.stop(f"{config.channel} toolchain installed successfully")

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    async def ensure_components(self, config: ToolchainConfig):
        """
        Make sure every required component is installed for the channel.

        Raises:
            ComponentQueryFailed: If rustup cannot list components
            UserDeclinedInstall: If the user refuses the install
            InstallFailed: If installing one component fails
            InstallVerificationFailed: If components are still missing afterwards
        """
        if self.components.state is not InstallationState.FAILED:
            missing = await self.verifier.missing_components(config)
            if not missing:
                self.components.advance(InstallationState.INSTALLED)
                return
            self.components.advance(InstallationState.MISSING)
            logger.info(str(MissingComponents(config.channel, missing)))
            question = "RLS not installed. Install?"
        else:
            question = "Installing RLS components failed. Retry?"

        if not await self.prompt.confirm(question):
            if self.components.state is InstallationState.MISSING:
                self.components.advance(InstallationState.FAILED)
            self.status.stop("RLS not installed")
            raise UserDeclinedInstall("RLS")

        self.components.advance(InstallationState.INSTALLING)
        self.status.start(STATUS_PREFIX, "Installing components…")
        try:
            async with self.lock_manager.toolchain_lock(
                config.channel, timeout=self.lock_timeout
            ):
                for component in self.verifier.required:
                    await self._install_component(config, component)
            still_missing = await self.verifier.missing_components(config)
            if still_missing:
                raise InstallVerificationFailed(config.channel, still_missing)
        except LockTimeout as e:
            self._components_failed(str(e))
            raise InstallFailed(", ".join(self.verifier.required), str(e)) from e
        except (InstallFailed, InstallVerificationFailed) as e:
            self._components_failed(str(e))
            raise

        self.components.advance(InstallationState.INSTALLED)
        self.status.stop("RLS components installed successfully")

    async def _install_component(self, config: ToolchainConfig, component: str):
        argv = [
            config.manager_path,
            "component",
            "add",
            component,
            "--toolchain",
            config.channel,
        ]
        logger.info(f"Installing component {component} into {config.channel}")
        try:
            result = await run_command(argv)
        except CommandError as e:
            raise InstallFailed(component, (e.stderr or e.stdout or str(e)).strip()) from e
        logger.debug(result.stdout)

    def _components_failed(self, message: str):
        self.components.advance(InstallationState.FAILED)
        self.status.stop("components install failed")
        self.notifier.error(message)
