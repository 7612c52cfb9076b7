"""
Proctoring Logger - structured lines for attempt lifecycle and proctoring events

Every line has the form ``[PROCTOR] session=<attempt> event=<type> k=v ...``
so attempt histories can be grepped out of the service log.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def format_event(session_id: str, event_type: str, details: Optional[Dict[str, Any]] = None) -> str:
    parts = [f"[PROCTOR] session={session_id}", f"event={event_type}"]
    if details:
        parts.extend(f"{key}={value}" for key, value in details.items())
    return " ".join(parts)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Attempt ID ("-" for a monitor without one)
        event_type: attempt_issued, attempt_submitted, monitor_start, ...
        details: Optional key/value pairs appended to the line
        level: debug, info, warning or error (unknown names log at info)
    """
    logger.log(_LEVELS.get(level, logging.INFO), format_event(session_id, event_type, details))


def log_attempt_issued(attempt_id: str, exam_id: str, student_id: str):
    log_proctor_event(attempt_id, "attempt_issued", {"exam": exam_id, "student": student_id})


def log_attempt_submitted(attempt_id: str, score: int, warnings: List[str], evidence_source: str):
    """Flagged submissions log at warning so reviewers can filter on level"""
    log_proctor_event(
        attempt_id,
        "attempt_submitted",
        {"score": score, "warnings": len(warnings), "evidence": evidence_source},
        level="warning" if warnings else "info"
    )


def log_security_event(attempt_id: str, event: str, details: Optional[Dict[str, Any]] = None):
    """Token or ownership mismatch; always a warning"""
    log_proctor_event(attempt_id, f"security_{event}", details, level="warning")


def log_critical_event(session_id: str, event: str, details: Optional[Dict[str, Any]] = None):
    log_proctor_event(session_id, f"critical_{event}", details, level="warning")
