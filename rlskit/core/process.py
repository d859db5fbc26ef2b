"""
Asynchronous execution of external commands.

Every toolchain manager and compiler invocation goes through run_command so
that failures are logged verbatim in one place before callers classify them.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from rlskit.core.exceptions import CommandError, CommandNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a finished command."""

    argv: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


async def run_command(
    argv: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    check: bool = True,
) -> CommandResult:
    """
    Run a command to completion and capture its output.

    Args:
        argv: Program and arguments
        env: Environment for the child (inherited when None)
        cwd: Working directory
        check: Raise CommandError on a non-zero exit status

    Returns:
        CommandResult with decoded stdout/stderr

    Raises:
        CommandNotFoundError: If the executable does not exist
        CommandError: If check is set and the command exits non-zero
    """
    logger.debug(f"Running: {' '.join(argv)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
            cwd=str(cwd) if cwd is not None else None,
        )
    except FileNotFoundError as e:
        logger.warning(f"Command not found: {argv[0]} ({e})")
        raise CommandNotFoundError(argv) from e

    out, err = await proc.communicate()
    result = CommandResult(
        argv=list(argv),
        returncode=proc.returncode,
        stdout=out.decode(errors="replace"),
        stderr=err.decode(errors="replace"),
    )

    if check and not result.success:
        logger.warning(
            f"Command failed with exit code {result.returncode}: {' '.join(argv)}\n"
            f"stdout: {result.stdout}\nstderr: {result.stderr}"
        )
        raise CommandError(
            argv, result.returncode, stdout=result.stdout, stderr=result.stderr
        )

    return result
