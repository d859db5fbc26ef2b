"""
Start command implementation.

Provisions the toolchain and runs RLS with this process's stdin/stdout, so
an editor can use ``rlskit start`` as its language server command.
"""

import asyncio
import logging

from rlskit.cli.utils import make_session, print_error
from rlskit.core.exceptions import RlsKitError
from rlskit.core.status import make_prompt
from rlskit.server.session import Session

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the start command.

    Args:
        args: Parsed command-line arguments with ``assume_yes``

    Returns:
        RLS exit code, or 1 if it could not be started
    """
    try:
        session = make_session(
            args, prompt=make_prompt(args.assume_yes), pipe_stdio=False
        )
    except RlsKitError as e:
        print_error("Invalid settings", str(e))
        return 1

    return asyncio.run(_start(session))


async def _start(session: Session) -> int:
    try:
        handle = await session.start()
    except RlsKitError as e:
        print_error("RLS could not be started", str(e))
        return 1

    if handle is None:
        print_error("RLS could not be started", "executable not found")
        return 1

    try:
        returncode = await session.wait()
    except asyncio.CancelledError:
        await session.stop()
        raise

    logger.debug(f"RLS exited with code {returncode}")
    return returncode or 0
