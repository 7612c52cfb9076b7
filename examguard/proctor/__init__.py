"""
ExamGuard Proctoring Module

Client-side evidence pipeline for a single exam attempt:
- samples a video source at a fixed cadence
- classifies facial presence / dominant emotion
- aggregates evidence into a submission summary
- optionally pushes per-tick telemetry to the server

and the Suspicion Evaluator shared with the server at grading time.
"""

from .aggregator import EvidenceAggregator, EvidenceSummary, Observation
from .events import MonitorEvent, MonitorEventBus, MonitorStatus
from .labels import EMOTION_LABELS, normalize_emotion
from .monitor import ExamMonitor
from .suspicion import SuspicionEvaluator, SuspicionResult, evaluate_suspicion

__all__ = [
    "EMOTION_LABELS",
    "EvidenceAggregator",
    "EvidenceSummary",
    "ExamMonitor",
    "MonitorEvent",
    "MonitorEventBus",
    "MonitorStatus",
    "Observation",
    "SuspicionEvaluator",
    "SuspicionResult",
    "evaluate_suspicion",
    "normalize_emotion",
]
