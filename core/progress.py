"""
Progress Notifications

The core reports what it is doing ("thinking", "action", "observation",
...) to a ProgressSink so a UI can stream it. Delivery is best effort:
a failing sink is logged and never aborts a run.
"""

import time
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


# ============================================================================
# PROGRESS KINDS
# ============================================================================

START = "start"
DELEGATE = "delegate"
SEARCH = "search"
DIALOGUE = "dialogue"
THINKING = "thinking"
ACTION = "action"
OBSERVATION = "observation"
COMPLETE = "complete"
ERROR = "error"

PROGRESS_KINDS = (START, DELEGATE, SEARCH, DIALOGUE, THINKING, ACTION, OBSERVATION, COMPLETE, ERROR)

_KIND_ICONS = {
    START: "🚀",
    DELEGATE: "📨",
    SEARCH: "🔍",
    DIALOGUE: "💬",
    THINKING: "🤔",
    ACTION: "🔧",
    OBSERVATION: "👀",
    COMPLETE: "✅",
    ERROR: "❌",
}


class ProgressSink(Protocol):
    """Receives progress notifications for a session."""

    def notify(self, session_id: Optional[str], message: str, kind: str) -> None:
        ...


@dataclass
class ProgressEvent:
    """A recorded notification."""
    session_id: Optional[str]
    message: str
    kind: str
    timestamp: float


class LoggingProgressSink:
    """Default sink: writes notifications to the log."""

    def notify(self, session_id: Optional[str], message: str, kind: str) -> None:
        icon = _KIND_ICONS.get(kind, "•")
        logger.info(f"{icon} [{session_id or '-'}] {kind}: {message}")


class RecordingProgressSink:
    """
    Keeps notifications per session so a UI can poll them.

    Thread-safe; sessions are independent.
    """

    def __init__(self):
        self._events: Dict[Optional[str], List[ProgressEvent]] = defaultdict(list)
        self._lock = threading.Lock()

    def notify(self, session_id: Optional[str], message: str, kind: str) -> None:
        event = ProgressEvent(session_id=session_id, message=message, kind=kind, timestamp=time.time())
        with self._lock:
            self._events[session_id].append(event)

    def events(self, session_id: Optional[str]) -> List[ProgressEvent]:
        """Snapshot of the events recorded for ``session_id``."""
        with self._lock:
            return list(self._events.get(session_id, []))

    def kinds(self, session_id: Optional[str]) -> List[str]:
        return [event.kind for event in self.events(session_id)]

    def clear(self, session_id: Optional[str]) -> None:
        with self._lock:
            self._events.pop(session_id, None)


def notify_safely(
    sink: Optional[ProgressSink],
    session_id: Optional[str],
    message: str,
    kind: str,
) -> None:
    """
    Deliver a notification, swallowing sink failures.

    Args:
        sink: Target sink (None disables notifications)
        session_id: Session the notification belongs to
        message: Human-readable text
        kind: One of PROGRESS_KINDS
    """
    if sink is None:
        return
    try:
        sink.notify(session_id, message, kind)
    except Exception as e:
        logger.warning(f"⚠️  Progress notification failed ({kind}): {e}")
