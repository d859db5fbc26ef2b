"""
Sysroot discovery for the active compiler.

The sysroot is asked from ``rustc --print sysroot`` (through ``rustup run``
unless rustup is disabled). A missing rustup/rustc on PATH is common when
the editor was started outside a login shell, so a failed lookup is retried
with ``~/.cargo/bin`` put on PATH. Retries are described by a RetryPolicy
holding an ordered list of strategies, one extra attempt per strategy.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import (
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from rlskit.core.exceptions import CommandError, SysrootUnavailable
from rlskit.core.platform import prepend_search_path
from rlskit.core.process import run_command

logger = logging.getLogger(__name__)

T = TypeVar("T")

Environment = Dict[str, str]


class RetryStrategy(ABC):
    """Derives the environment for the next attempt after a failure."""

    name = "retry"

    @abstractmethod
    def prepare(self, env: Mapping[str, str]) -> Environment:
        """Return a new environment; ``env`` must not be modified."""
        pass


class ExtendPathStrategy(RetryStrategy):
    """Put the user-local cargo binary directory in front of PATH."""

    name = "extend-path"

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory

    def bin_dir(self, env: Mapping[str, str]) -> str:
        if self.directory:
            return self.directory
        home = env.get("HOME") or os.path.expanduser("~")
        return f"{home}/.cargo/bin"

    def prepare(self, env: Mapping[str, str]) -> Environment:
        new_env = dict(env)
        new_env["PATH"] = prepend_search_path(env.get("PATH", ""), self.bin_dir(env))
        logger.info(f"Retrying with extended $PATH: {new_env['PATH']}")
        return new_env


class RetryPolicy:
    """
    Runs an operation once, then once more per strategy on failure.

    Attempts are strictly sequential: each retry starts only after the
    previous attempt has finished.

    Example:
        >>> policy = RetryPolicy([ExtendPathStrategy()])
        >>> value, env = await policy.run(query, dict(os.environ))
    """

    def __init__(
        self,
        strategies: Sequence[RetryStrategy] = (),
        retry_on: Tuple[type, ...] = (SysrootUnavailable,),
    ):
        self.strategies: List[RetryStrategy] = list(strategies)
        self.retry_on = retry_on

    @property
    def max_attempts(self) -> int:
        return 1 + len(self.strategies)

    async def run(
        self,
        operation: Callable[[Environment], Awaitable[T]],
        env: Mapping[str, str],
    ) -> Tuple[T, Environment]:
        """
        Run ``operation`` until it succeeds or the strategies are exhausted.

        Returns:
            The operation's result and the environment it succeeded with

        Raises:
            The last error raised by ``operation``
        """
        current = dict(env)
        try:
            return await operation(current), current
        except self.retry_on as e:
            last_error = e
            logger.warning(f"Attempt 1/{self.max_attempts} failed: {e}")

        for attempt, strategy in enumerate(self.strategies, start=2):
            current = strategy.prepare(current)
            try:
                return await operation(current), current
            except self.retry_on as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} ({strategy.name}) failed: {e}"
                )

        raise last_error


def default_sysroot_policy() -> RetryPolicy:
    """One retry with ~/.cargo/bin on PATH."""
    return RetryPolicy([ExtendPathStrategy()])


@dataclass
class SysrootResolution:
    """A sysroot and the environment it was found with."""

    path: str
    env: Environment


class SysrootResolver:
    """
    Finds the sysroot for one provisioning cycle.

    The first successful lookup is memoized on the instance; a new cycle
    creates a new resolver (or calls ``invalidate``).
    """

    def __init__(
        self,
        rustup_path: str,
        channel: str,
        rustup_disabled: bool = False,
        policy: Optional[RetryPolicy] = None,
    ):
        self.rustup_path = rustup_path
        self.channel = channel
        self.rustup_disabled = rustup_disabled
        self.policy = policy or default_sysroot_policy()
        self._cached: Optional[SysrootResolution] = None

    def command(self) -> List[str]:
        if self.rustup_disabled:
            return ["rustc", "--print", "sysroot"]
        return [self.rustup_path, "run", self.channel, "rustc", "--print", "sysroot"]

    async def query_sysroot(self, env: Mapping[str, str]) -> str:
        """
        Ask the compiler for its sysroot once.

        Raises:
            SysrootUnavailable: If the compiler cannot be run or prints nothing
        """
        try:
            result = await run_command(self.command(), env=env)
        except CommandError as e:
            raise SysrootUnavailable(f"Error getting sysroot from `rustc`: {e}") from e

        sysroot = result.stdout.rstrip("\r\n")
        if not sysroot:
            raise SysrootUnavailable("Couldn't get sysroot from `rustc`: Got no output")
        return sysroot

    async def resolve_sysroot(self, env: Mapping[str, str]) -> SysrootResolution:
        """
        Find the sysroot, applying the retry policy.

        Args:
            env: Environment for the compiler invocation (not modified)

        Returns:
            SysrootResolution with the path and the environment that worked

        Raises:
            SysrootUnavailable: If every attempt failed
        """
        if self._cached is not None:
            return self._cached

        path, used_env = await self.policy.run(self.query_sysroot, env)
        logger.info(f"Setting sysroot to {path}")
        self._cached = SysrootResolution(path=path, env=used_env)
        return self._cached

    def invalidate(self):
        self._cached = None
