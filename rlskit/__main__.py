"""
Entry point for running rlskit CLI as a module.

Usage: python -m rlskit [command] [options]
"""

from rlskit.cli.parser import main

if __name__ == "__main__":
    main()
