"""
Run command implementation.

Runs the project with ``cargo run`` in the project root.
"""

import asyncio
import logging

from rlskit.cli.utils import make_session, print_error
from rlskit.core.exceptions import RlsKitError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments

    Returns:
        cargo's exit code, or 1 if cargo could not be started
    """
    try:
        session = make_session(args)
        return asyncio.run(session.run_project())
    except RlsKitError as e:
        print_error("cargo run failed", str(e))
        return 1
