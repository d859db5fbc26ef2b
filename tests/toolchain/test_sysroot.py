"""
Tests for rlskit.toolchain.sysroot module.
"""

import pytest

from rlskit.core.exceptions import SysrootUnavailable
from rlskit.core.process import CommandResult
from rlskit.toolchain.sysroot import (
    ExtendPathStrategy,
    RetryPolicy,
    SysrootResolver,
    default_sysroot_policy,
)

SYSROOT_CMD = ["rustup", "run", "nightly", "rustc", "--print", "sysroot"]
SYSROOT = "/home/dev/.rustup/toolchains/nightly-x86_64-unknown-linux-gnu"


def succeed_when_cargo_bin_on_path(argv, env):
    """Simulate rustup that is only found via ~/.cargo/bin."""
    if env and env.get("PATH", "").startswith("/home/dev/.cargo/bin"):
        return CommandResult(argv, 0, SYSROOT + "\n", "")
    return CommandResult(argv, 127, "", "rustup: not found")


class TestExtendPathStrategy:
    """Tests for ExtendPathStrategy."""

    def test_prepends_cargo_bin(self):
        env = {"HOME": "/home/dev", "PATH": "/usr/bin"}

        new_env = ExtendPathStrategy().prepare(env)

        assert new_env["PATH"].startswith("/home/dev/.cargo/bin")
        assert new_env["PATH"].endswith("/usr/bin")
        assert env["PATH"] == "/usr/bin"

    def test_empty_path(self):
        new_env = ExtendPathStrategy("/opt/cargo/bin").prepare({})

        assert new_env["PATH"] == "/opt/cargo/bin"


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        async def operation(env):
            return "ok"

        value, env = await RetryPolicy([ExtendPathStrategy("/x")]).run(
            operation, {"PATH": "/usr/bin"}
        )

        assert value == "ok"
        assert env == {"PATH": "/usr/bin"}

    @pytest.mark.asyncio
    async def test_sequential_attempts(self):
        seen = []

        async def operation(env):
            seen.append(env["PATH"])
            raise SysrootUnavailable("nope")

        policy = RetryPolicy([ExtendPathStrategy("/a"), ExtendPathStrategy("/b")])

        with pytest.raises(SysrootUnavailable):
            await policy.run(operation, {"PATH": "/usr/bin"})

        assert policy.max_attempts == 3
        assert len(seen) == 3
        assert seen[0] == "/usr/bin"
        assert seen[2].startswith("/b")

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        calls = []

        async def operation(env):
            calls.append(env)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await default_sysroot_policy().run(operation, {})

        assert len(calls) == 1


class TestSysrootResolver:
    """Tests for SysrootResolver."""

    def test_command(self):
        assert SysrootResolver("rustup", "nightly").command() == SYSROOT_CMD
        assert SysrootResolver("rustup", "nightly", rustup_disabled=True).command() == [
            "rustc",
            "--print",
            "sysroot",
        ]

    @pytest.mark.asyncio
    async def test_trailing_newline_stripped(self, fake_commands):
        fake_commands.add(SYSROOT_CMD, stdout=SYSROOT + "\r\n")

        resolution = await SysrootResolver("rustup", "nightly").resolve_sysroot({})

        assert resolution.path == SYSROOT

    @pytest.mark.asyncio
    async def test_empty_output(self, fake_commands):
        fake_commands.add(SYSROOT_CMD, stdout="")

        with pytest.raises(SysrootUnavailable, match="no output"):
            await SysrootResolver("rustup", "nightly").query_sysroot({})

    @pytest.mark.asyncio
    async def test_retry_with_extended_path(self, fake_commands):
        """Fails on the inherited PATH, succeeds once ~/.cargo/bin is added."""
        fake_commands.add_handler(SYSROOT_CMD, succeed_when_cargo_bin_on_path)
        env = {"HOME": "/home/dev", "PATH": "/usr/bin"}

        resolution = await SysrootResolver("rustup", "nightly").resolve_sysroot(env)

        assert resolution.path == SYSROOT
        assert resolution.env["PATH"].startswith("/home/dev/.cargo/bin")
        assert fake_commands.called(SYSROOT_CMD) == 2
        assert env["PATH"] == "/usr/bin"

    @pytest.mark.asyncio
    async def test_all_attempts_fail(self, fake_commands):
        fake_commands.add(SYSROOT_CMD, returncode=1, stderr="error: toolchain not installed")

        with pytest.raises(SysrootUnavailable):
            await SysrootResolver("rustup", "nightly").resolve_sysroot({"HOME": "/h"})

        assert fake_commands.called(SYSROOT_CMD) == 2

    @pytest.mark.asyncio
    async def test_memoized(self, fake_commands):
        fake_commands.add(SYSROOT_CMD, stdout=SYSROOT)
        resolver = SysrootResolver("rustup", "nightly")

        first = await resolver.resolve_sysroot({})
        second = await resolver.resolve_sysroot({})

        assert first is second
        assert fake_commands.called(SYSROOT_CMD) == 1

        resolver.invalidate()
        await resolver.resolve_sysroot({})
        assert fake_commands.called(SYSROOT_CMD) == 2
