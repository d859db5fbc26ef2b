"""
User-facing sinks: status indicator, notifications and consent prompts.

The editor owns the real status bar, message area and prompt dialogs; rlskit
only writes to them through these small interfaces. The default
implementations here log and, for prompts, ask on the terminal.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

SPINNER_FRAMES = ("◐", "◓", "◑", "◒")


class StatusIndicator:
    """
    Spinner-style status line.

    ``start`` shows ``<prefix> <frame> <text>`` while work is in progress;
    ``stop`` replaces it with a final message. Every change is recorded in
    ``history`` as ``(state, text)`` so callers can check the terminal state.
    """

    def __init__(self):
        self.prefix = ""
        self.text = ""
        self.spinning = False
        self._frame = 0
        self.history: List[Tuple[str, str]] = []

    def start(self, prefix: str, text: str):
        """Show an in-progress status."""
        self.prefix = prefix
        self.text = text
        self.spinning = True
        self._frame = 0
        self.history.append(("start", text))
        logger.debug(f"Status: {prefix} {text}")

    def stop(self, message: str = ""):
        """Show a final status and stop the spinner."""
        self.text = message or ""
        self.spinning = False
        self.history.append(("stop", self.text))
        if self.text:
            logger.info(f"Status: {self.text}")

    def render(self) -> str:
        """Current status line; advances the spinner frame while spinning."""
        if not self.spinning:
            return self.text
        frame = SPINNER_FRAMES[self._frame]
        self._frame = (self._frame + 1) % len(SPINNER_FRAMES)
        return f"{self.prefix} {frame} {self.text}"


class Notifier:
    """Message sink for user-visible notices."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def show_message(self, message: str, level: str = "info"):
        self.messages.append((level, message))
        if level == "error":
            logger.error(message)
        elif level == "warning":
            logger.warning(message)
        else:
            logger.info(message)

    def warning(self, message: str):
        self.show_message(message, "warning")

    def error(self, message: str):
        self.show_message(message, "error")


class ConsentPrompt(ABC):
    """Asks the user a yes/no question."""

    @abstractmethod
    async def confirm(self, message: str) -> bool:
        """Return True if the user agreed."""
        pass


class AutoConsent(ConsentPrompt):
    """Answers every prompt with a fixed value."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.asked: List[str] = []

    async def confirm(self, message: str) -> bool:
        self.asked.append(message)
        logger.info(f"{message} {'yes' if self.answer else 'no'} (automatic)")
        return self.answer


class TerminalPrompt(ConsentPrompt):
    """
    Asks on the controlling terminal without blocking the event loop.

    stdin may carry the server protocol, so the answer is read from the
    terminal device. Without a terminal every question is declined.
    """

    def __init__(self, tty_path: str = "/dev/tty"):
        self.tty_path = tty_path

    def _ask(self, message: str) -> bool:
        try:
            with open(self.tty_path, "r+", encoding="utf-8") as tty:
                tty.write(f"{message} [y/N] ")
                tty.flush()
                answer = tty.readline()
        except OSError as e:
            logger.warning(f"No terminal to ask '{message}' ({e}); declining")
            return False
        return answer.strip().lower() in ("y", "yes")

    async def confirm(self, message: str) -> bool:
        return await asyncio.to_thread(self._ask, message)


def make_prompt(assume_yes: Optional[bool]) -> ConsentPrompt:
    """Terminal prompt, or an automatic answer when one is given."""
    if assume_yes is None:
        return TerminalPrompt()
    return AutoConsent(assume_yes)
