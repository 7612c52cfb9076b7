"""
Exam Monitor - fixed-cadence sampling loop over a video source

Each tick reads one frame, normalizes it, classifies it and folds the result
into the attempt's EvidenceAggregator. Only one frame is ever in flight: the
next tick is scheduled after the current one finishes or fails.
"""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from .aggregator import EvidenceAggregator, EvidenceSummary
from .camera import VideoSource
from .classifier import EmotionClassifier, preprocess_frame
from .events import MonitorEvent, MonitorEventBus, MonitorListener, MonitorStatus
from .utils.logging import log_critical_event, log_proctor_event

logger = logging.getLogger(__name__)


class ExamMonitor:
    """
    Client-side proctoring monitor for a single attempt.

    Usage:
        with ExamMonitor(classifier, CameraSource(), attempt_id=attempt_id) as monitor:
            monitor.subscribe(on_event)
            monitor.start()
            ...
            summary = monitor.stop()

    The camera is acquired by initialize() and released by stop()/close(),
    including when a tick or the owner fails.
    """

    def __init__(
        self,
        classifier: EmotionClassifier,
        source: VideoSource,
        attempt_id: Optional[str] = None,
        interval_seconds: float = 1.0,
        confidence_threshold: float = 0.4,
        warning_streak: int = 5,
        reporter=None,
        events: Optional[MonitorEventBus] = None,
        normalize: Callable[[np.ndarray], np.ndarray] = preprocess_frame,
        stop_timeout: Optional[float] = None
    ):
        self.classifier = classifier
        self.source = source
        self.attempt_id = attempt_id
        self.interval_seconds = interval_seconds
        self.reporter = reporter
        self.events = events or MonitorEventBus()
        self.normalize = normalize
        self.stop_timeout = max(interval_seconds, 1.0) * 5 if stop_timeout is None else stop_timeout

        self.aggregator = EvidenceAggregator(
            attempt_id=attempt_id,
            confidence_threshold=confidence_threshold,
            warning_streak=warning_streak,
            seconds_per_sample=interval_seconds,
        )

        self._initialized = False
        self._running = threading.Event()
        self._wake = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._pending_tab_switch = False

        # Guards hand-off of the camera release to a loop that outlived stop()
        self._release_lock = threading.Lock()
        self._loop_active = False
        self._release_deferred = False

    @classmethod
    def from_settings(cls, classifier: EmotionClassifier, source: VideoSource, attempt_id: str, **kwargs):
        """Monitor using the configured cadence and thresholds"""
        from examguard.config import settings

        options = {
            "interval_seconds": settings.SAMPLE_INTERVAL_SECONDS,
            "confidence_threshold": settings.CONFIDENCE_THRESHOLD,
            "warning_streak": settings.MISSING_STREAK_WARNING,
        }
        options.update(kwargs)
        return cls(classifier, source, attempt_id=attempt_id, **options)

    # ------------------------------------------------------------------ state

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def subscribe(self, listener: MonitorListener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def initialize(self):
        """Acquire the video source"""
        if self._initialized:
            return
        self.source.open()
        self._initialized = True
        self._publish(MonitorStatus.READY, "Camera ready")

    def start(self, background: bool = True):
        """
        Begin sampling. With background=False the caller drives ticks through
        run_tick().
        """
        if not self._initialized:
            raise RuntimeError("Monitoring not initialized. Call initialize() first.")

        if self._running.is_set():
            return

        with self._release_lock:
            if self._loop_active:
                raise RuntimeError("Previous monitoring loop is still stopping")

        with self._lock:
            self.aggregator.reset()
            self._pending_tab_switch = False

        self._wake.clear()
        self._running.set()
        log_proctor_event(self.attempt_id or "-", "monitor_start")
        self._publish(MonitorStatus.MONITORING, "Monitoring started")

        if background:
            with self._release_lock:
                self._loop_active = True
            self._thread = threading.Thread(
                target=self._loop,
                name=f"exam-monitor-{self.attempt_id or 'local'}",
                daemon=True
            )
            self._thread.start()

    def stop(self) -> EvidenceSummary:
        """Stop sampling immediately, release the camera and return the final snapshot"""
        was_running = self._running.is_set()
        self._running.clear()
        self._wake.set()

        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.stop_timeout)

        with self._release_lock:
            if self._loop_active:
                # A tick is still reading; the loop releases the source on exit
                if thread is not None and thread is not threading.current_thread():
                    logger.warning(
                        f"Monitor loop for {self.attempt_id} did not stop within {self.stop_timeout:g}s"
                    )
                self._release_deferred = True
            else:
                self._release()

        summary = self.snapshot()
        if was_running:
            log_proctor_event(
                self.attempt_id or "-",
                "monitor_stop",
                details={
                    "frames": summary.total_frames,
                    "face_missing_seconds": summary.face_missing_seconds
                }
            )
            self._publish(MonitorStatus.STOPPED, "Monitoring stopped")
        return summary

    def close(self):
        self.stop()

    def __enter__(self):
        try:
            self.initialize()
        except Exception:
            self._release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # --------------------------------------------------------------- evidence

    def record_tab_switch(self):
        """Called by the exam UI when the student leaves the exam tab"""
        with self._lock:
            self.aggregator.record_tab_switch()
            self._pending_tab_switch = True

    def snapshot(self) -> EvidenceSummary:
        with self._lock:
            return self.aggregator.snapshot()

    # ------------------------------------------------------------------- loop

    def _loop(self):
        try:
            while self._running.is_set():
                self.run_tick()
                if self._wake.wait(self.interval_seconds):
                    break
        finally:
            with self._release_lock:
                self._loop_active = False
                if self._release_deferred:
                    self._release_deferred = False
                    self._release()
            logger.debug(f"Monitor loop exited for {self.attempt_id}")

    def run_tick(self) -> Optional[MonitorEvent]:
        """
        Run one sampling tick. Returns the last event published, or None when
        the monitor is not running. A tick that finishes after stop() is
        discarded without touching the evidence or publishing.
        """
        if not self._running.is_set():
            return None

        try:
            frame = self.source.read()
        except Exception as e:
            if not self._running.is_set():
                return None
            logger.warning(f"Frame capture error: {e}")
            with self._lock:
                self.aggregator.record_error()
                tab_switched = self._take_tab_switch()
            self._report(camera_on=False, face_detected=False, emotion=None, tab_switched=tab_switched)
            return self._publish(MonitorStatus.ERROR, f"Camera error: {e}")

        try:
            prepared = self.normalize(frame)
            probabilities = self.classifier.classify(prepared)
            with self._lock:
                if not self._running.is_set():
                    return None
                observation = self.aggregator.observe(probabilities)
                tab_switched = self._take_tab_switch()
        except Exception as e:
            if not self._running.is_set():
                return None
            logger.warning(f"AI prediction error: {e}")
            with self._lock:
                self.aggregator.record_error()
            return self._publish(MonitorStatus.ERROR, f"AI monitoring error: {e}")

        self._report(
            camera_on=True,
            face_detected=observation.face_detected,
            emotion=observation.emotion,
            tab_switched=tab_switched
        )

        if observation.face_detected:
            return self._publish(
                MonitorStatus.MONITORING,
                f"Monitoring: {observation.emotion}",
                emotion=observation.emotion
            )

        event = self._publish(
            MonitorStatus.FACE_MISSING,
            f"WARNING: Face not detected! ({self.aggregator.face_missing_seconds:g}s total)"
        )

        if observation.critical_warning:
            log_critical_event(
                self.attempt_id or "-",
                "face_missing_streak",
                details={"face_missing_seconds": self.aggregator.face_missing_seconds}
            )
            event = self._publish(MonitorStatus.CRITICAL_WARNING, "Please return to camera view!")

        return event

    # ---------------------------------------------------------------- helpers

    def _take_tab_switch(self) -> bool:
        switched = self._pending_tab_switch
        self._pending_tab_switch = False
        return switched

    def _report(self, camera_on: bool, face_detected: bool, emotion: Optional[str], tab_switched: bool):
        if self.reporter is None:
            return
        try:
            self.reporter.report(
                interval_seconds=self.interval_seconds,
                camera_on=camera_on,
                face_detected=face_detected,
                emotion=emotion,
                tab_switched=tab_switched
            )
        except Exception as e:
            logger.warning(f"Proctoring report could not be queued: {e}")

    def _publish(self, status: MonitorStatus, message: str, emotion: Optional[str] = None) -> MonitorEvent:
        event = MonitorEvent(
            status=status,
            message=message,
            face_missing_seconds=self.aggregator.face_missing_seconds,
            missing_streak=self.aggregator.missing_streak,
            total_frames=self.aggregator.total_frames,
            emotion=emotion,
        )
        self.events.publish(event)
        return event

    def _release(self):
        if not self._initialized:
            return
        try:
            self.source.release()
        except Exception as e:
            logger.warning(f"Video source release failed: {e}")
        finally:
            self._initialized = False
