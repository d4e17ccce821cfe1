"""
Events component - fire-and-forget share access log.
"""

from ._impl import EventRecorder
from .models import Actor, RecordOutcome

__all__ = [
    "Actor",
    "EventRecorder",
    "RecordOutcome",
]
