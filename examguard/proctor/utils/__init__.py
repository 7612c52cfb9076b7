"""Utility modules for proctoring"""

from .logging import (
    log_proctor_event,
    log_attempt_issued,
    log_attempt_submitted,
    log_security_event,
    log_critical_event,
)

__all__ = [
    "log_proctor_event",
    "log_attempt_issued",
    "log_attempt_submitted",
    "log_security_event",
    "log_critical_event",
]
