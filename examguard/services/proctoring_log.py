"""
Proctoring Log Service - server-side accumulation of periodic proctoring reports

Each report covers one sampling interval. Counters are updated under a row
lock on the attempt so concurrent reports for the same attempt never lose an
increment, and reports stop being accepted once the attempt is submitted.
"""
import logging
from typing import Any, Dict, Mapping, Optional

from examguard import db
from examguard.errors import Forbidden, NotFound, Rejected
from examguard.models.exam_attempt import ExamAttempt, ProctoringLog
from examguard.proctor.labels import is_known_emotion, normalize_emotion
from examguard.proctor.suspicion import as_number

logger = logging.getLogger(__name__)

# One report never covers more than this many seconds
MAX_INTERVAL_SECONDS = 300.0
# Integer column bound for client-reported counters
MAX_COUNTER = 2 ** 31 - 1


def _require_bool(data: Mapping[str, Any], name: str, default: Optional[bool] = None) -> bool:
    value = data.get(name, default)
    if not isinstance(value, bool):
        raise Rejected(f"{name} must be a boolean", reason="invalid_request")
    return value


def _parse_interval(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise Rejected("interval_seconds must be a number", reason="invalid_request")
    interval = float(value)
    if not (0 < interval <= MAX_INTERVAL_SECONDS):
        raise Rejected(
            f"interval_seconds must be greater than 0 and at most {MAX_INTERVAL_SECONDS:g}",
            reason="invalid_request"
        )
    return interval


def record_report(attempt_id: str, user_id: str, data: Mapping[str, Any]) -> ProctoringLog:
    """
    Fold one proctoring report into the attempt's log.

    Args:
        attempt_id: Attempt being proctored
        user_id: Reporting user; must own the attempt
        data: interval_seconds, camera_on, face_detected, emotion, tab_switched

    Returns:
        The updated ProctoringLog
    """
    if not isinstance(data, Mapping):
        raise Rejected("Request body must be a JSON object", reason="invalid_request")

    interval = _parse_interval(data.get("interval_seconds"))
    camera_on = _require_bool(data, "camera_on")
    face_detected = _require_bool(data, "face_detected")
    tab_switched = _require_bool(data, "tab_switched", default=False)

    emotion = data.get("emotion")
    if emotion is not None:
        if not is_known_emotion(emotion):
            raise Rejected(f"Unknown emotion label: {emotion}", reason="unknown_emotion")
        emotion = normalize_emotion(emotion)

    attempt = ExamAttempt.query.filter_by(id=attempt_id).with_for_update().first()
    if not attempt:
        raise NotFound("Exam attempt not found")

    if attempt.student_id != user_id:
        db.session.rollback()
        raise Forbidden("This attempt does not belong to you", reason="not_owner")

    if attempt.is_submitted:
        db.session.rollback()
        raise Rejected("Attempt is no longer in progress", reason="attempt_not_active")

    log = attempt.proctoring_log
    if log is None:
        log = ProctoringLog(
            camera_off_seconds=0,
            face_missing_seconds=0,
            emotion_seconds={},
            tab_switch_count=0,
            frames_analyzed=0,
        )
        attempt.proctoring_log = log

    if not camera_on:
        log.camera_off_seconds = (log.camera_off_seconds or 0) + interval
    if not face_detected:
        log.face_missing_seconds = (log.face_missing_seconds or 0) + interval
    elif emotion:
        # JSON columns only track reassignment
        seconds = dict(log.emotion_seconds or {})
        seconds[emotion] = seconds.get(emotion, 0) + interval
        log.emotion_seconds = seconds
    if tab_switched:
        log.tab_switch_count = (log.tab_switch_count or 0) + 1
    log.frames_analyzed = (log.frames_analyzed or 0) + 1

    db.session.commit()

    logger.debug(
        f"Proctoring report for {attempt_id}: camera_on={camera_on} "
        f"face={face_detected} emotion={emotion} tab={tab_switched}"
    )
    return log


def summarize_log(log: ProctoringLog) -> Dict[str, Any]:
    """
    Evidence summary from server counters.

    Emotion percentages are floor percentages over total classified seconds,
    so they never sum above 100.
    """
    seconds = {k: as_number(v) for k, v in (log.emotion_seconds or {}).items()}
    total = sum(seconds.values())

    percentages = {}
    if total > 0:
        for label, value in seconds.items():
            percentages[label] = int(value * 100 // total)

    return {
        "face_missing_seconds": float(log.face_missing_seconds or 0),
        "emotion_stats": percentages,
        "tab_switch_count": int(log.tab_switch_count or 0),
    }


def sanitize_client_summary(summary: Any) -> Dict[str, Any]:
    """
    Coerce a client-supplied evidence summary into the stored shape.

    Accepts snake_case or camelCase keys; unknown emotion labels are dropped.
    """
    if not isinstance(summary, Mapping):
        return {}

    def pick(*names):
        for name in names:
            if summary.get(name) is not None:
                return summary[name]
        return None

    face_missing = max(0.0, as_number(pick("face_missing_seconds", "faceMissingDuration")))
    tab_switches = min(MAX_COUNTER, max(0, int(as_number(pick("tab_switch_count", "tabSwitchCount")))))

    stats = pick("emotion_stats", "emotion_percentages", "emotionStats")
    emotion_stats = {}
    if isinstance(stats, Mapping):
        for label, value in stats.items():
            if not is_known_emotion(label):
                continue
            number = as_number(value)
            if number > 0:
                number = min(number, 100.0)
                emotion_stats[normalize_emotion(label)] = int(number) if number == int(number) else number

    return {
        "face_missing_seconds": face_missing,
        "emotion_stats": emotion_stats,
        "tab_switch_count": tab_switches,
    }
