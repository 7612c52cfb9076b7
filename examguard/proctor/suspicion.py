"""
Suspicion Evaluator - turns an evidence summary into review warnings

Rules are independent and additive; none suppresses another. The evaluator is
total: malformed or missing evidence fields count as zero.
"""

import logging
import math
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .labels import normalize_emotion

logger = logging.getLogger(__name__)


@dataclass
class SuspicionResult:
    warnings: List[str] = field(default_factory=list)
    suspicion_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"warnings": list(self.warnings), "suspicion_count": self.suspicion_count}


def as_number(value: Any) -> float:
    """
    Coerce 12, 12.5, "12", "12%" to a float; anything else is 0.

    +inf is clamped to the largest finite float so an unbounded value still
    trips every threshold; NaN and -inf are 0.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%").strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isfinite(number):
        return number
    if number > 0:
        return sys.float_info.max
    return 0.0


def _field(evidence: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in evidence and evidence[name] is not None:
            return evidence[name]
    return None


class SuspicionEvaluator:
    """
    Evaluates proctoring evidence against fixed rules.

    Weights:
        face missing beyond FACE_MISSING_THRESHOLD seconds   -> 2
        each negative emotion present (percentage > 0)       -> 1
        tab switches beyond TAB_SWITCH_THRESHOLD             -> 1
    """

    FACE_MISSING_THRESHOLD = 300.0
    FACE_MISSING_WEIGHT = 2

    NEGATIVE_EMOTIONS = ("fear", "angry", "disgust")
    EMOTION_WEIGHT = 1

    TAB_SWITCH_THRESHOLD = 3
    TAB_SWITCH_WEIGHT = 1

    def __init__(
        self,
        face_missing_threshold: Optional[float] = None,
        tab_switch_threshold: Optional[int] = None,
        negative_emotions: Optional[Iterable[str]] = None
    ):
        self.face_missing_threshold = (
            self.FACE_MISSING_THRESHOLD if face_missing_threshold is None else float(face_missing_threshold)
        )
        self.tab_switch_threshold = (
            self.TAB_SWITCH_THRESHOLD if tab_switch_threshold is None else int(tab_switch_threshold)
        )
        emotions = self.NEGATIVE_EMOTIONS if negative_emotions is None else negative_emotions
        self.negative_emotions = []
        for emotion in emotions:
            label = normalize_emotion(emotion)
            if label not in self.negative_emotions:
                self.negative_emotions.append(label)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SuspicionEvaluator":
        return cls(
            face_missing_threshold=config.get("FACE_MISSING_THRESHOLD_SECONDS"),
            tab_switch_threshold=config.get("TAB_SWITCH_THRESHOLD"),
            negative_emotions=config.get("NEGATIVE_EMOTIONS"),
        )

    def evaluate(self, evidence: Any, is_proctored: bool) -> SuspicionResult:
        """
        Args:
            evidence: mapping (or object with to_dict) holding
                face_missing_seconds, emotion_stats, tab_switch_count
            is_proctored: exam's proctoring flag; False short-circuits to empty

        Returns:
            SuspicionResult with warnings and additive count
        """
        result = SuspicionResult()

        if not is_proctored:
            return result

        if evidence is not None and not isinstance(evidence, Mapping) and hasattr(evidence, "to_dict"):
            evidence = evidence.to_dict()
        if not isinstance(evidence, Mapping):
            evidence = {}

        face_missing = as_number(_field(evidence, "face_missing_seconds", "faceMissingDuration"))
        if face_missing > self.face_missing_threshold:
            result.warnings.append(f"Face not detected for {round(face_missing / 60)} minutes")
            result.suspicion_count += self.FACE_MISSING_WEIGHT

        stats = _field(evidence, "emotion_stats", "emotion_percentages", "emotionStats")
        present = set()
        if isinstance(stats, Mapping):
            for label, value in stats.items():
                if not isinstance(label, str):
                    continue
                if as_number(value) > 0:
                    present.add(normalize_emotion(label))

        for emotion in self.negative_emotions:
            if emotion in present:
                result.warnings.append(f"Suspicious emotion detected: {emotion}")
                result.suspicion_count += self.EMOTION_WEIGHT

        tab_switches = as_number(_field(evidence, "tab_switch_count", "tabSwitchCount"))
        if tab_switches > self.tab_switch_threshold:
            result.warnings.append(f"Tab switched {int(tab_switches)} times")
            result.suspicion_count += self.TAB_SWITCH_WEIGHT

        if result.suspicion_count:
            logger.info(f"Suspicion evaluated: count={result.suspicion_count} warnings={len(result.warnings)}")

        return result


def evaluate_suspicion(evidence: Any, is_proctored: bool, **thresholds) -> SuspicionResult:
    """Convenience wrapper using default (or given) thresholds"""
    return SuspicionEvaluator(**thresholds).evaluate(evidence, is_proctored)
