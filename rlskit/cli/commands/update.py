"""
Update command implementation.

Runs ``rustup update`` and reports whether anything changed.
"""

import asyncio
import logging

from rlskit.cli.utils import make_session, print_error
from rlskit.core.exceptions import RlsKitError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the update command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        session = make_session(args)
    except RlsKitError as e:
        print_error("Invalid settings", str(e))
        return 1

    if session.settings.rustup_disabled:
        print_error("rustup is disabled in settings; nothing to update")
        return 1

    updated = asyncio.run(session.update_toolchain())
    print(session.status.text)
    return 0 if updated else 1
