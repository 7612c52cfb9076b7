"""
Proctoring Reporter - fire-and-forget push of per-tick telemetry

Reports are handed to a single background worker so a slow or failing
server never blocks the sampling loop.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

logger = logging.getLogger(__name__)


class ProctoringReporter:
    """Queues incremental proctoring reports for one attempt"""

    def __init__(self, client, attempt_id: str):
        self.client = client
        self.attempt_id = attempt_id
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="proctor-report")
        self._closed = False
        self.sent = 0
        self.failed = 0

    def report(
        self,
        interval_seconds: float,
        camera_on: bool,
        face_detected: bool,
        emotion: Optional[str] = None,
        tab_switched: bool = False
    ) -> Optional[Future]:
        if self._closed:
            return None

        return self._executor.submit(
            self._send,
            interval_seconds,
            camera_on,
            face_detected,
            emotion,
            tab_switched
        )

    def _send(self, interval_seconds, camera_on, face_detected, emotion, tab_switched):
        try:
            self.client.report(
                self.attempt_id,
                interval_seconds=interval_seconds,
                camera_on=camera_on,
                face_detected=face_detected,
                emotion=emotion,
                tab_switched=tab_switched
            )
            self.sent += 1
        except Exception as e:
            self.failed += 1
            logger.warning(f"Proctoring report for {self.attempt_id} failed: {e}")

    def close(self, wait: bool = True):
        """Stop accepting reports; optionally drain the queue"""
        self._closed = True
        self._executor.shutdown(wait=wait)
