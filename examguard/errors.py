"""
Error taxonomy for the exam attempt lifecycle.

Every failure surfaced to a caller carries a human readable message and a
machine reason code so clients can tell "already submitted" apart from
"time exceeded" or "invalid token".
"""
import logging
from typing import Any, Dict, Optional

from flask import jsonify

logger = logging.getLogger(__name__)


class ExamGuardError(Exception):
    """Base error; subclasses fix the HTTP status"""
    status_code = 500
    default_reason = "error"

    def __init__(self, message: str, reason: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.message, "reason": self.reason}
        payload.update(self.details)
        return payload


class NotFound(ExamGuardError):
    """Referenced exam, attempt or question does not exist"""
    status_code = 404
    default_reason = "not_found"


class Unauthorized(ExamGuardError):
    """No usable identity on the request"""
    status_code = 401
    default_reason = "unauthorized"


class Forbidden(ExamGuardError):
    """Token mismatch, ownership mismatch or insufficient role"""
    status_code = 403
    default_reason = "forbidden"


class Rejected(ExamGuardError):
    """Business rule violation"""
    status_code = 400
    default_reason = "rejected"


class TransientFailure(ExamGuardError):
    """Recoverable failure (camera read, classifier call, network push)"""
    status_code = 503
    default_reason = "transient_failure"


def register_error_handlers(app):
    """Render the taxonomy as JSON responses"""

    @app.errorhandler(ExamGuardError)
    def handle_examguard_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.reason}: {error.message}")
        return jsonify(error.to_dict()), error.status_code
