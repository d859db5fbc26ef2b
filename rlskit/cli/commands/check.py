"""
Check command for diagnosing the toolchain setup.

Reports the active channel, whether the toolchain and required components
are installed and which sysroot the compiler reports. Nothing is installed
and RLS is not started.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from rlskit.cli.utils import load_cli_settings, print_error, resolve_project_root
from rlskit.config.settings import Settings, ToolchainConfig
from rlskit.core.exceptions import (
    ComponentQueryFailed,
    RlsKitError,
    SysrootUnavailable,
    ToolchainQueryFailed,
)
from rlskit.toolchain.components import ComponentVerifier
from rlskit.toolchain.resolver import DEFAULT_CHANNEL, ToolchainResolver
from rlskit.toolchain.sysroot import SysrootResolver

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of a single check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None


async def run_checks(settings: Settings, project_root) -> List[CheckResult]:
    """
    Run every check in provisioning order.

    Args:
        settings: Client settings
        project_root: Project root used for channel detection

    Returns:
        One CheckResult per check
    """
    results: List[CheckResult] = []

    if settings.rustup_disabled:
        channel = settings.channel_override or DEFAULT_CHANNEL
        results.append(CheckResult("Channel", True, f"{channel} (rustup disabled)"))
    else:
        resolver = ToolchainResolver(settings.rustup_path, project_root)
        channel = await resolver.resolve_channel(settings.channel_override)
        results.append(CheckResult("Channel", True, channel))

    config: ToolchainConfig = settings.toolchain_config(channel)

    if not settings.rustup_disabled:
        verifier = ComponentVerifier()
        try:
            installed = await verifier.has_toolchain(config)
            results.append(
                CheckResult(
                    "Toolchain",
                    installed,
                    "installed" if installed else "not installed",
                    fix_command=None
                    if installed
                    else f"{config.manager_path} toolchain install {channel}",
                )
            )
            if installed:
                missing = await verifier.missing_components(config)
                results.append(
                    CheckResult(
                        "Components",
                        not missing,
                        ", ".join(verifier.required)
                        if not missing
                        else f"missing: {', '.join(missing)}",
                        fix_command=None
                        if not missing
                        else f"{config.manager_path} component add "
                        f"{' '.join(missing)} --toolchain {channel}",
                    )
                )
        except (ToolchainQueryFailed, ComponentQueryFailed) as e:
            results.append(CheckResult("Toolchain", False, str(e)))

    sysroot = SysrootResolver(
        config.manager_path, channel, rustup_disabled=settings.rustup_disabled
    )
    try:
        resolution = await sysroot.resolve_sysroot(dict(os.environ))
        results.append(CheckResult("Sysroot", True, resolution.path))
    except SysrootUnavailable as e:
        results.append(CheckResult("Sysroot", False, str(e)))

    return results


def format_results(results: List[CheckResult]) -> str:
    lines = []
    for result in results:
        mark = "[OK]" if result.passed else "[FAIL]"
        lines.append(f"{mark} {result.name}: {result.message}")
        if result.fix_command:
            lines.append(f"       fix: {result.fix_command}")
    return "\n".join(lines)


def run(args) -> int:
    """
    Run the check command.

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if every check passed, 1 otherwise
    """
    try:
        settings = load_cli_settings(args)
    except RlsKitError as e:
        print_error("Invalid settings", str(e))
        return 1

    project_root = resolve_project_root(getattr(args, "project_root", None))
    results = asyncio.run(run_checks(settings, project_root))
    print(format_results(results))
    return 0 if all(result.passed for result in results) else 1
