"""
Toolchain and component presence checks.

A failure to run rustup is reported separately from a component being
absent: the former aborts startup while the latter leads to an install
prompt.
"""

import logging
import re
from typing import Iterable, List, Pattern, Sequence

from rlskit.config.settings import ToolchainConfig
from rlskit.core.exceptions import (
    CommandError,
    ComponentQueryFailed,
    ToolchainQueryFailed,
)
from rlskit.core.process import run_command

logger = logging.getLogger(__name__)

# Installed one at a time, in this order
REQUIRED_COMPONENTS = ("rust-analysis", "rust-src", "rls")


def installed_pattern(component: str) -> Pattern[str]:
    """Pattern matching a ``rustup component list`` line for an installed component."""
    return re.compile(rf"^({re.escape(component)}.*) \((default|installed)\)$")


def find_missing(lines: Iterable[str], required: Sequence[str]) -> List[str]:
    """
    Return the required components with no installed line.

    Args:
        lines: Lines of ``rustup component list`` output
        required: Component names, in install order

    Returns:
        Missing component names, preserving the order of ``required``
    """
    cleaned = [line.rstrip("\r") for line in lines]
    missing = []
    for component in required:
        pattern = installed_pattern(component)
        if not any(pattern.match(line) for line in cleaned):
            missing.append(component)
    return missing


class ComponentVerifier:
    """
    Checks that a channel and its required components are installed.

    Example:
        >>> verifier = ComponentVerifier()
        >>> await verifier.has_components(ToolchainConfig("nightly", "rustup"))
        True
    """

    def __init__(self, required: Sequence[str] = REQUIRED_COMPONENTS):
        self.required = tuple(required)

    async def has_toolchain(self, config: ToolchainConfig) -> bool:
        """
        Check whether the channel appears in ``rustup toolchain list``.

        Raises:
            ToolchainQueryFailed: If rustup cannot be run
        """
        try:
            result = await run_command([config.manager_path, "toolchain", "list"])
        except CommandError as e:
            raise ToolchainQueryFailed(
                "Rustup not available. Install from https://www.rustup.rs/"
            ) from e
        return config.channel in result.stdout

    async def missing_components(self, config: ToolchainConfig) -> List[str]:
        """
        List required components not installed for the channel.

        Raises:
            ComponentQueryFailed: If rustup cannot list components
        """
        argv = [
            config.manager_path,
            "component",
            "list",
            "--toolchain",
            config.channel,
        ]
        try:
            result = await run_command(argv)
        except CommandError as e:
            raise ComponentQueryFailed(config.channel, str(e)) from e

        missing = find_missing(result.stdout.split("\n"), self.required)
        if missing:
            logger.debug(f"Missing components in {config.channel}: {missing}")
        return missing

    async def has_components(self, config: ToolchainConfig) -> bool:
        """Whether every required component is installed for the channel."""
        return not await self.missing_components(config)
