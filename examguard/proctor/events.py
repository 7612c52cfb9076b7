"""
Monitor events - typed status notifications from the sampling loop
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class MonitorStatus(str, Enum):
    READY = "ready"
    MONITORING = "monitoring"
    FACE_MISSING = "face_missing"
    CRITICAL_WARNING = "critical_warning"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass(frozen=True)
class MonitorEvent:
    status: MonitorStatus
    message: str
    face_missing_seconds: float = 0.0
    missing_streak: int = 0
    total_frames: int = 0
    emotion: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


MonitorListener = Callable[[MonitorEvent], None]


class MonitorEventBus:
    """
    Observer channel for monitor events.

    A failing listener is logged and skipped; it never breaks the sampling
    loop or starves other listeners.
    """

    def __init__(self):
        self._listeners: List[MonitorListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: MonitorListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: MonitorEvent):
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Monitor listener failed on {event.status.value}: {e}")
