"""
Tests for rlskit.toolchain.resolver module.
"""

import pytest

from rlskit.core.exceptions import CommandError, ToolchainQueryFailed
from rlskit.toolchain.resolver import (
    DEFAULT_CHANNEL,
    Ambiguous,
    Found,
    NotFound,
    ToolchainResolver,
    parse_active_toolchain,
    strip_toolchain_annotation,
)
from tests.utils.outputs import RUSTUP_SHOW_OUTPUT


class TestParseActiveToolchain:
    """Tests for parse_active_toolchain."""

    def test_single_active_toolchain(self):
        """The one line under 'active toolchain' wins over installed defaults."""
        assert parse_active_toolchain(RUSTUP_SHOW_OUTPUT) == Found(
            "nightly-x86_64-unknown-linux-gnu"
        )

    def test_default_entry(self):
        """A '(default)' annotation qualifies."""
        output = (
            "active toolchain\n"
            "----------------\n"
            "\n"
            "stable-x86_64-apple-darwin (default)\n"
            "rustc 1.29.0\n"
        )
        assert parse_active_toolchain(output) == Found("stable-x86_64-apple-darwin")

    def test_multiple_active_toolchains_are_ambiguous(self):
        """Two qualifying lines in the active section is an error result."""
        output = (
            "active toolchain\n"
            "----------------\n"
            "\n"
            "stable-x86_64-unknown-linux-gnu (default)\n"
            "nightly-x86_64-unknown-linux-gnu (overridden by '/work')\n"
        )
        result = parse_active_toolchain(output)

        assert isinstance(result, Ambiguous)
        assert result.candidates == [
            "stable-x86_64-unknown-linux-gnu",
            "nightly-x86_64-unknown-linux-gnu",
        ]

    def test_empty_active_section_falls_back_to_third_line(self):
        """No match under the header: the third line of the output is tried."""
        output = (
            "Default host: x86_64-unknown-linux-gnu\n"
            "\n"
            "beta-x86_64-unknown-linux-gnu (default)\n"
            "active toolchain\n"
            "no active toolchain\n"
        )
        assert parse_active_toolchain(output) == Found("beta-x86_64-unknown-linux-gnu")

    def test_old_rustup_third_line(self):
        """Older rustup without an 'active toolchain' header."""
        output = (
            "Default host: x86_64-pc-windows-msvc\n"
            "\n"
            "stable-x86_64-pc-windows-msvc (default)\n"
            "rustc 1.20.0\n"
        )
        assert parse_active_toolchain(output) == Found("stable-x86_64-pc-windows-msvc")

    def test_third_line_with_crlf(self):
        """Windows line endings are handled."""
        output = "Default host: x\r\n\r\nstable-x (default)\r\n"
        assert parse_active_toolchain(output) == Found("stable-x")

    def test_nothing_found(self):
        """No qualifying line anywhere."""
        assert parse_active_toolchain("error: no default toolchain\n") == NotFound()
        assert parse_active_toolchain("") == NotFound()


class TestStripToolchainAnnotation:
    """Tests for strip_toolchain_annotation."""

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("stable-x86_64-unknown-linux-gnu", "stable-x86_64-unknown-linux-gnu"),
            ("stable-x86_64-unknown-linux-gnu (default)", "stable-x86_64-unknown-linux-gnu"),
            ("nightly (overridden by '/work/rust-toolchain')\n", "nightly"),
        ],
    )
    def test_strip(self, line, expected):
        assert strip_toolchain_annotation(line) == expected


class TestToolchainResolver:
    """Tests for ToolchainResolver."""

    @pytest.mark.asyncio
    async def test_override_returned_verbatim(self, fake_commands, project_root):
        """An explicit channel skips rustup entirely, without validation."""
        resolver = ToolchainResolver("rustup", project_root)

        assert await resolver.resolve_channel("not a real channel") == "not a real channel"
        assert fake_commands.calls == []

    @pytest.mark.asyncio
    async def test_show_active_toolchain(self, fake_commands, project_root):
        """Modern rustup: annotation is stripped."""
        fake_commands.add(
            ["rustup", "show", "active-toolchain"],
            stdout="stable-x86_64-unknown-linux-gnu (default)\n",
        )
        resolver = ToolchainResolver("rustup", project_root)

        assert await resolver.resolve_channel() == "stable-x86_64-unknown-linux-gnu"

    @pytest.mark.asyncio
    async def test_falls_back_to_show(self, fake_commands, project_root):
        """Old rustup without `show active-toolchain`."""
        fake_commands.add(["rustup", "show", "active-toolchain"], returncode=1)
        fake_commands.add(["rustup", "show"], stdout=RUSTUP_SHOW_OUTPUT)
        resolver = ToolchainResolver("rustup", project_root)

        assert await resolver.resolve_channel() == "nightly-x86_64-unknown-linux-gnu"
        assert fake_commands.called(["rustup", "show"]) == 1

    @pytest.mark.asyncio
    async def test_ambiguous_output_raises_query_failed(self, fake_commands, project_root):
        """Ambiguity surfaces as ToolchainQueryFailed from the query."""
        fake_commands.add(["rustup", "show", "active-toolchain"], returncode=1)
        fake_commands.add(
            ["rustup", "show"],
            stdout="active toolchain\n\na (default)\nb (default)\n",
        )
        resolver = ToolchainResolver("rustup", project_root)

        with pytest.raises(ToolchainQueryFailed, match="multiple active toolchains"):
            await resolver.query_active_channel()

    @pytest.mark.asyncio
    async def test_query_failure_defaults_channel(self, fake_commands, project_root):
        """rustup missing entirely: fall back to the default channel."""
        resolver = ToolchainResolver("rustup", project_root)

        assert await resolver.resolve_channel() == DEFAULT_CHANNEL
        assert DEFAULT_CHANNEL == "nightly"

    @pytest.mark.asyncio
    async def test_show_failure_raises(self, fake_commands, project_root):
        """Both invocations failing is a ToolchainQueryFailed."""
        fake_commands.add_error(
            ["rustup", "show", "active-toolchain"], CommandError(["rustup"], 1)
        )
        fake_commands.add_error(["rustup", "show"], CommandError(["rustup"], 1))
        resolver = ToolchainResolver("rustup", project_root)

        with pytest.raises(ToolchainQueryFailed):
            await resolver.query_active_channel()

    @pytest.mark.asyncio
    async def test_empty_output_defaults_channel(self, fake_commands, project_root):
        """rustup printing nothing is treated as no answer."""
        fake_commands.add(["rustup", "show", "active-toolchain"], stdout="")
        resolver = ToolchainResolver("rustup", project_root, default_channel="stable")

        assert await resolver.resolve_channel() == "stable"
