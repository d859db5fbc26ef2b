"""
Pytest configuration and shared fixtures for rlskit tests.
"""

import stat
import sys
from pathlib import Path

import pytest

from rlskit.core.locking import LockManager
from rlskit.core.status import Notifier, StatusIndicator
from tests.utils.mocks import RUN_COMMAND_TARGETS, FakeCommands


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def fake_commands(monkeypatch) -> FakeCommands:
    """Replace run_command in every toolchain module with a scripted fake."""
    fake = FakeCommands()
    for target in RUN_COMMAND_TARGETS:
        monkeypatch.setattr(target, fake)
    return fake


@pytest.fixture
def project_root(tmp_path) -> Path:
    """Cargo project directory."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "Cargo.toml").write_text('[package]\nname = "demo"\nversion = "0.1.0"\n')
    return root


@pytest.fixture
def status() -> StatusIndicator:
    return StatusIndicator()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def lock_manager(tmp_path) -> LockManager:
    return LockManager(lock_dir=tmp_path / "lock")


@pytest.fixture
def make_script(tmp_path):
    """Create an executable shell script and return its path."""

    def _make(name: str, body: str) -> Path:
        if sys.platform == "win32":
            pytest.skip("Shell scripts are Unix-specific")
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make
