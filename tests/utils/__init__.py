"""
Test utilities for rlskit testing.

Scripted command runners and prompt doubles for provisioning tests.
"""

from .mocks import (
    RUN_COMMAND_TARGETS,
    FakeCommands,
    RecordingPrompt,
    iterate,
)

__all__ = [
    "RUN_COMMAND_TARGETS",
    "FakeCommands",
    "RecordingPrompt",
    "iterate",
]
