"""
Progress aggregation for the analysis server.

The server reports work in two shapes that may both arrive from the same
process:

- ``window/progress`` notifications keyed by a progress token id, each
  carrying ``done`` and optionally ``percentage``, ``message`` and ``title``
- the legacy ``rustDocument/beginBuild`` / ``rustDocument/diagnosticsEnd``
  pair, which carries no id and is tracked with a counter

Each shape has its own reducer. ProgressAggregator feeds events to the
matching reducer and renders one status line from both.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Tuple

from rlskit.core.status import StatusIndicator

logger = logging.getLogger(__name__)

PROGRESS_METHOD = "window/progress"
BEGIN_BUILD_METHOD = "rustDocument/beginBuild"
DIAGNOSTICS_END_METHOD = "rustDocument/diagnosticsEnd"

WORKING_LABEL = "working"


@dataclass
class ProgressToken:
    """Latest known state of one ongoing server operation."""

    id: str
    percentage: Optional[float] = None
    message: Optional[str] = None
    title: Optional[str] = None

    def label(self) -> str:
        """Percentage, else message, else ``[title]``, else empty."""
        if isinstance(self.percentage, (int, float)) and not isinstance(
            self.percentage, bool
        ):
            return f"{math.floor(self.percentage * 100 + 0.5)}%"
        if self.message:
            return self.message
        if self.title:
            return f"[{self.title.lower()}]"
        return ""


@dataclass
class ProgressEvent:
    """A decoded ``window/progress`` notification."""

    id: str
    done: bool = False
    percentage: Optional[float] = None
    message: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ProgressEvent":
        return cls(
            id=str(params.get("id", "")),
            done=bool(params.get("done", False)),
            percentage=params.get("percentage"),
            message=params.get("message"),
            title=params.get("title"),
        )


class TokenProgressReducer:
    """
    Live progress tokens keyed by id.

    A not-done event inserts or updates its token and marks it most recently
    touched; a done event removes it. Done-after-begin ordering for one id
    is the sender's responsibility; a done for an unknown id is a no-op.
    """

    def __init__(self):
        self._tokens: "OrderedDict[str, ProgressToken]" = OrderedDict()

    def apply(self, event: ProgressEvent):
        if event.done:
            self._tokens.pop(event.id, None)
            return

        token = self._tokens.pop(event.id, None) or ProgressToken(event.id)
        token.percentage = event.percentage
        token.message = event.message
        token.title = event.title
        self._tokens[event.id] = token

    @property
    def live_count(self) -> int:
        return len(self._tokens)

    @property
    def live_ids(self):
        return set(self._tokens)

    def label(self) -> Optional[str]:
        """Label of the most recently touched token, or None when idle."""
        if not self._tokens:
            return None
        return next(reversed(self._tokens.values())).label()


class BuildCounterReducer:
    """Counts legacy build begin / diagnostics end notifications."""

    def __init__(self):
        self.running = 0
        self.working = False

    def begin(self):
        self.running += 1
        self.working = True

    def end(self):
        self.running -= 1
        # Unmatched ends may leave the counter negative
        if self.running <= 0:
            self.working = False

    def label(self) -> Optional[str]:
        return WORKING_LABEL if self.working else None


class ProgressAggregator:
    """
    Turns server notifications into one status line.

    The token reducer takes precedence while it has live tokens; otherwise
    the legacy counter decides between "working" and idle. The status is
    republished after every event.

    Example:
        >>> aggregator = ProgressAggregator(StatusIndicator())
        >>> aggregator.handle_notification("window/progress", {"id": "1", "title": "Building"})
        >>> aggregator.current_label()
        '[building]'
    """

    def __init__(self, status: StatusIndicator, prefix: str = "RLS"):
        self.status = status
        self.prefix = prefix
        self.tokens = TokenProgressReducer()
        self.builds = BuildCounterReducer()
        self.events_handled = 0

    def current_label(self) -> Optional[str]:
        label = self.tokens.label()
        if label is not None:
            return label
        return self.builds.label()

    def publish(self):
        label = self.current_label()
        if label is None:
            self.status.stop(self.prefix)
        else:
            self.status.start(self.prefix, label)

    def handle_notification(
        self, method: str, params: Optional[Mapping[str, Any]] = None
    ):
        """
        Apply one notification and republish the status.

        Unknown methods are ignored.
        """
        if method == PROGRESS_METHOD:
            self.tokens.apply(ProgressEvent.from_params(params or {}))
        elif method == BEGIN_BUILD_METHOD:
            self.builds.begin()
        elif method == DIAGNOSTICS_END_METHOD:
            self.builds.end()
        else:
            logger.debug(f"Ignoring notification {method}")
            return

        self.events_handled += 1
        self.publish()

    async def consume(self, events: AsyncIterator[Tuple[str, Dict[str, Any]]]):
        """
        Process a stream of ``(method, params)`` pairs in arrival order.

        Returns when the stream is exhausted (the server went away).
        """
        async for method, params in events:
            self.handle_notification(method, params)
        logger.debug(f"Progress stream ended after {self.events_handled} events")
