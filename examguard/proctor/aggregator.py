"""
Evidence Aggregator - running proctoring counters for one exam attempt

One instance per attempt; nothing here is shared between attempts.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from .labels import EMOTION_LABELS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """Outcome of classifying one frame"""
    face_detected: bool
    emotion: Optional[str] = None
    confidence: float = 0.0
    critical_warning: bool = False


@dataclass(frozen=True)
class EvidenceSummary:
    """Snapshot sent with the submission"""
    face_missing_seconds: float
    emotion_percentages: Dict[str, int]
    total_frames: int
    tab_switch_count: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "face_missing_seconds": self.face_missing_seconds,
            "emotion_stats": dict(self.emotion_percentages),
            "total_frames": self.total_frames,
            "tab_switch_count": self.tab_switch_count,
            "timestamp": self.timestamp,
        }


@dataclass
class EvidenceAggregator:
    """
    Aggregates per-frame classifier output over an attempt.

    A frame whose best probability is below the confidence threshold counts
    as "face not detected". Consecutive misses build a streak; when the streak
    exceeds the warning threshold a single critical warning is raised and the
    streak restarts, so warnings fire once per streak rather than every tick.
    """

    attempt_id: Optional[str] = None
    labels: Sequence[str] = EMOTION_LABELS
    confidence_threshold: float = 0.4
    warning_streak: int = 5
    seconds_per_sample: float = 1.0

    # Counters
    face_missing_seconds: float = 0.0
    missing_streak: int = 0
    total_frames: int = 0
    tab_switch_count: int = 0
    classification_errors: int = 0
    emotion_counts: Dict[str, int] = field(default_factory=dict)

    started_at: datetime = field(default_factory=datetime.utcnow)

    def observe(self, probabilities: Sequence[float]) -> Observation:
        """
        Apply the decision rule to one probability vector.

        Raises:
            ValueError: vector is empty or its length does not match the label set
        """
        scores = [float(p) for p in probabilities]
        if not scores or len(scores) != len(self.labels):
            raise ValueError(
                f"Classifier returned {len(scores)} scores, expected {len(self.labels)}"
            )

        best = max(scores)
        if best < self.confidence_threshold:
            return self.record_face_missing(best)

        return self.record_face(self.labels[scores.index(best)], best)

    def record_face_missing(self, confidence: float = 0.0) -> Observation:
        self.face_missing_seconds += self.seconds_per_sample
        self.missing_streak += 1

        critical = False
        if self.missing_streak > self.warning_streak:
            critical = True
            self.missing_streak = 0

        return Observation(face_detected=False, confidence=confidence, critical_warning=critical)

    def record_face(self, emotion: str, confidence: float = 1.0) -> Observation:
        self.missing_streak = 0
        self.total_frames += 1
        self.emotion_counts[emotion] = self.emotion_counts.get(emotion, 0) + 1
        return Observation(face_detected=True, emotion=emotion, confidence=confidence)

    def record_tab_switch(self):
        self.tab_switch_count += 1

    def record_error(self):
        self.classification_errors += 1

    def get_percentages(self) -> Dict[str, int]:
        """
        Emotion share of classified frames (not of elapsed time).

        Floor percentages, so the values never sum past 100.
        """
        if self.total_frames <= 0:
            return {emotion: 0 for emotion in self.emotion_counts}
        return {
            emotion: (count * 100) // self.total_frames
            for emotion, count in self.emotion_counts.items()
        }

    def snapshot(self) -> EvidenceSummary:
        return EvidenceSummary(
            face_missing_seconds=self.face_missing_seconds,
            emotion_percentages=self.get_percentages(),
            total_frames=self.total_frames,
            tab_switch_count=self.tab_switch_count,
            timestamp=datetime.utcnow().isoformat(),
        )

    def reset(self):
        """Reset all counters"""
        self.face_missing_seconds = 0.0
        self.missing_streak = 0
        self.total_frames = 0
        self.tab_switch_count = 0
        self.classification_errors = 0
        self.emotion_counts = {}
        self.started_at = datetime.utcnow()
