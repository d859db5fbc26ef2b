"""
Analysis server supervision for rlskit.
"""

from .progress import ProgressAggregator, ProgressEvent, ProgressToken
from .supervisor import ProcessHandle, ProcessSupervisor
from .session import Session

__all__ = [
    "ProgressAggregator",
    "ProgressEvent",
    "ProgressToken",
    "ProcessHandle",
    "ProcessSupervisor",
    "Session",
]
