"""
Mock utilities for rlskit testing.

FakeCommands stands in for rlskit.core.process.run_command so tests can
script rustup/rustc output without the real tools installed.
"""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from rlskit.core.exceptions import CommandError, CommandNotFoundError
from rlskit.core.process import CommandResult

Outcome = Union[CommandResult, BaseException, Callable]

# Modules that import run_command by name
RUN_COMMAND_TARGETS = (
    "rlskit.toolchain.resolver.run_command",
    "rlskit.toolchain.components.run_command",
    "rlskit.toolchain.installer.run_command",
    "rlskit.toolchain.sysroot.run_command",
    "rlskit.toolchain.updater.run_command",
)


class FakeCommands:
    """
    Scripted replacement for run_command.

    Responses are registered per argv. When several are registered for the
    same argv they are used in order and the last one repeats. Unregistered
    commands behave like a missing executable.

    Example:
        >>> fake = FakeCommands()
        >>> fake.add(["rustup", "toolchain", "list"], stdout="nightly\\n")
    """

    def __init__(self):
        self.responses: Dict[Tuple[str, ...], List[Outcome]] = {}
        self.calls: List[List[str]] = []
        self.envs: List[Optional[Mapping[str, str]]] = []

    def add(
        self,
        argv: Sequence[str],
        stdout: str = "",
        returncode: int = 0,
        stderr: str = "",
    ) -> "FakeCommands":
        result = CommandResult(list(argv), returncode, stdout, stderr)
        self.responses.setdefault(tuple(argv), []).append(result)
        return self

    def add_error(self, argv: Sequence[str], error: BaseException) -> "FakeCommands":
        self.responses.setdefault(tuple(argv), []).append(error)
        return self

    def add_handler(self, argv: Sequence[str], handler: Callable) -> "FakeCommands":
        """Register ``handler(argv, env) -> CommandResult`` for dynamic output."""
        self.responses.setdefault(tuple(argv), []).append(handler)
        return self

    def called(self, argv: Sequence[str]) -> int:
        return sum(1 for call in self.calls if call == list(argv))

    async def __call__(self, argv, env=None, cwd=None, check=True) -> CommandResult:
        self.calls.append(list(argv))
        self.envs.append(env)

        outcomes = self.responses.get(tuple(argv))
        if not outcomes:
            raise CommandNotFoundError(argv)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]

        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome) and not isinstance(outcome, CommandResult):
            outcome = outcome(list(argv), env)

        if check and outcome.returncode != 0:
            raise CommandError(
                argv, outcome.returncode, stdout=outcome.stdout, stderr=outcome.stderr
            )
        return outcome


class RecordingPrompt:
    """Consent prompt returning scripted answers and recording questions."""

    def __init__(self, *answers: bool):
        self.answers = list(answers)
        self.asked: List[str] = []

    async def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.answers.pop(0) if self.answers else False


async def iterate(items):
    """Turn a list into an async iterator."""
    for item in items:
        yield item
