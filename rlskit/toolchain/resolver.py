"""
Active toolchain detection.

Determines which channel the analysis server should run on: an explicitly
configured channel wins, otherwise rustup is asked which toolchain is
active for the project root (this honours directory overrides and
rust-toolchain files).
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from rlskit.core.exceptions import CommandError, ToolchainQueryFailed
from rlskit.core.process import run_command

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "nightly"

ACTIVE_SECTION_MARKER = "active toolchain"
_ACTIVE_LINE = re.compile(r"^(\S+) \((?:default|overridden)")
_ANNOTATION_SUFFIX = re.compile(r" \(.*\)$")


@dataclass(frozen=True)
class Found:
    """Exactly one active toolchain was identified."""

    name: str


@dataclass(frozen=True)
class Ambiguous:
    """More than one line claims to be the active toolchain."""

    candidates: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NotFound:
    """No active toolchain could be identified."""

    pass


ParseResult = Union[Found, Ambiguous, NotFound]


def _match_active(line: str) -> Optional[str]:
    match = _ACTIVE_LINE.match(line)
    return match.group(1) if match else None


def parse_active_toolchain(output: str) -> ParseResult:
    """
    Parse ``rustup show`` output for the active toolchain.

    The ``installed toolchains`` section may contain its own ``(default)``
    entry, so only lines after the ``active toolchain`` header are
    considered first. If that section has no qualifying line (or is absent),
    the third line of the output is tried, which is where older rustup
    versions print the active toolchain.

    Args:
        output: Text printed by ``rustup show``

    Returns:
        Found, Ambiguous or NotFound

    Example:
        >>> parse_active_toolchain("active toolchain\\n----------------\\n\\nstable-x86_64 (default)\\n")
        Found(name='stable-x86_64')
    """
    lines = output.splitlines()

    for index, line in enumerate(lines):
        if ACTIVE_SECTION_MARKER in line:
            candidates = [
                name
                for name in (_match_active(text) for text in lines[index:])
                if name is not None
            ]
            if len(candidates) > 1:
                return Ambiguous(candidates)
            if candidates:
                return Found(candidates[0])
            break

    if len(lines) >= 3:
        name = _match_active(lines[2])
        if name is not None:
            return Found(name)

    return NotFound()


def strip_toolchain_annotation(line: str) -> str:
    """Remove a trailing `` (default)`` / `` (overridden by ...)`` note."""
    return _ANNOTATION_SUFFIX.sub("", line.strip())


class ToolchainResolver:
    """
    Resolves the channel used for the current session.

    Example:
        >>> resolver = ToolchainResolver("rustup", Path("/work/project"))
        >>> channel = await resolver.resolve_channel()
    """

    def __init__(
        self,
        rustup_path: str,
        project_root: Path,
        default_channel: str = DEFAULT_CHANNEL,
    ):
        self.rustup_path = rustup_path
        self.project_root = project_root
        self.default_channel = default_channel

    async def query_active_channel(self) -> str:
        """
        Ask rustup for the active toolchain under the project root.

        Tries ``rustup show active-toolchain`` first and falls back to parsing
        plain ``rustup show`` for older rustup releases.

        Returns:
            Channel name (may be empty if rustup printed nothing)

        Raises:
            ToolchainQueryFailed: If rustup cannot be run or its output is
                ambiguous or unrecognised
        """
        try:
            result = await run_command(
                [self.rustup_path, "show", "active-toolchain"], cwd=self.project_root
            )
            first_line = next(iter(result.stdout.strip().splitlines()), "")
            return strip_toolchain_annotation(first_line)
        except CommandError as e:
            logger.debug(f"`show active-toolchain` unavailable, trying `show`: {e}")

        try:
            result = await run_command([self.rustup_path, "show"], cwd=self.project_root)
        except CommandError as e:
            raise ToolchainQueryFailed(f"Could not run {self.rustup_path}: {e}") from e

        parsed = parse_active_toolchain(result.stdout)
        if isinstance(parsed, Found):
            return parsed.name
        if isinstance(parsed, Ambiguous):
            raise ToolchainQueryFailed(
                "multiple active toolchains found under 'active toolchain': "
                + ", ".join(parsed.candidates)
            )
        raise ToolchainQueryFailed("couldn't find active toolchain")

    async def resolve_channel(self, explicit_override: Optional[str] = None) -> str:
        """
        Determine the session channel.

        Args:
            explicit_override: Configured channel, returned verbatim when set

        Returns:
            Channel name; the default channel when the query fails
        """
        if explicit_override is not None:
            return explicit_override

        try:
            channel = await self.query_active_channel()
        except ToolchainQueryFailed as e:
            logger.warning(
                f"Could not detect active toolchain ({e}); using {self.default_channel}"
            )
            return self.default_channel

        if not channel:
            return self.default_channel

        logger.info(
            f"Detected active channel: {channel} "
            "(since 'rust-client.channel' is unspecified)"
        )
        return channel
