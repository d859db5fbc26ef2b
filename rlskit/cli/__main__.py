"""
Entry point for running rlskit CLI as a module.

Usage: python -m rlskit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
