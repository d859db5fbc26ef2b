"""
Shared utilities for CLI commands.

Provides settings loading, session construction and consistent error
output for the command modules.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rlskit.config.settings import Settings, load_settings
from rlskit.core.status import ConsentPrompt
from rlskit.server.session import Session

logger = logging.getLogger(__name__)


def resolve_project_root(path: Optional[Path] = None) -> Path:
    """
    Resolve project root directory.

    Args:
        path: Optional path (defaults to current directory)

    Returns:
        Resolved absolute path
    """
    if path is None:
        path = Path.cwd()
    return path.resolve()


def load_cli_settings(args) -> Settings:
    """Load settings for the project named by --project-root / --config."""
    project_root = resolve_project_root(getattr(args, "project_root", None))
    config_file = getattr(args, "config", None)
    return load_settings(project_root, Path(config_file) if config_file else None)


def make_session(
    args, prompt: Optional[ConsentPrompt] = None, pipe_stdio: bool = True
) -> Session:
    """Build a Session from parsed CLI arguments."""
    project_root = resolve_project_root(getattr(args, "project_root", None))
    settings = load_cli_settings(args)
    return Session(project_root, settings, prompt=prompt, pipe_stdio=pipe_stdio)


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)

