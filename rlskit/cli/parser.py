"""
rlskit CLI argument parser.

This module implements the command-line interface for rlskit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("rlskit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """rlskit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="rlskit",
            description="rlskit - Rust toolchain provisioning and RLS supervision",
            epilog='Use "rlskit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"rlskit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to settings file (default: ./rlskit.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=Path.cwd(),
            help="Project root directory (default: current directory)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_start_command(subparsers)
        self._add_check_command(subparsers)
        self._add_update_command(subparsers)
        self._add_run_command(subparsers)

        return parser

    def _add_start_command(self, subparsers):
        """Add 'start' subcommand."""
        parser = subparsers.add_parser(
            "start",
            help="Provision the toolchain and run RLS",
            description=(
                "Install missing toolchain pieces, then run RLS on this "
                "process's stdin/stdout until it exits"
            ),
        )
        consent = parser.add_mutually_exclusive_group()
        consent.add_argument(
            "--yes",
            "-y",
            dest="assume_yes",
            action="store_const",
            const=True,
            help="Install missing toolchain and components without asking",
        )
        consent.add_argument(
            "--no-install",
            dest="assume_yes",
            action="store_const",
            const=False,
            help="Never install; fail if anything is missing",
        )

    def _add_check_command(self, subparsers):
        """Add 'check' subcommand."""
        subparsers.add_parser(
            "check",
            help="Report toolchain, component and sysroot status",
            description="Check the toolchain setup without installing or starting RLS",
        )

    def _add_update_command(self, subparsers):
        """Add 'update' subcommand."""
        subparsers.add_parser(
            "update",
            help="Update rustup and installed toolchains",
            description="Run `rustup update`",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        subparsers.add_parser(
            "run",
            help="Run the project",
            description="Run `cargo run` in the project root",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Logs go to stderr; stdout may carry the server protocol.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "start": "rlskit.cli.commands.start",
            "check": "rlskit.cli.commands.check",
            "update": "rlskit.cli.commands.update",
            "run": "rlskit.cli.commands.run",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.error(f"Failed to load command module: {e}")
            return 1

        if not hasattr(module, "run"):
            logger.error(f"Command module {module_name} has no run() function")
            return 1

        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
