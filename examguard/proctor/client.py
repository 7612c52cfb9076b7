"""
Attempt Client - HTTP client for the exam attempt endpoints

Used by the exam-taking client to start, submit and report on an attempt.
HTTP rejections are mapped back onto the service's error taxonomy.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from examguard.errors import (
    Forbidden,
    NotFound,
    Rejected,
    TransientFailure,
    Unauthorized,
)
from .aggregator import EvidenceSummary
from .utils.logging import log_proctor_event, log_security_event

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: Rejected,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
}


@dataclass(frozen=True)
class StartedAttempt:
    attempt_id: str
    attempt_token: str
    time_limit_minutes: int
    started_at: str


class AttemptClient:
    """
    Usage:
        client = AttemptClient("http://localhost:9000", auth_token=jwt)
        attempt = client.start(exam_id)
        result = client.submit(attempt, answers, summary=monitor.stop())
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {auth_token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise TransientFailure(f"Request to {path} failed: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code < 400:
            return data

        message = data.get("error") or f"HTTP {response.status_code}"
        reason = data.get("reason")
        details = {k: v for k, v in data.items() if k not in ("error", "reason")}
        error_cls = _STATUS_ERRORS.get(response.status_code, TransientFailure)
        raise error_cls(message, reason=reason, details=details)

    def start(self, exam_id: str) -> StartedAttempt:
        data = self._request("POST", "/api/exams/start", {"exam_id": exam_id})
        return StartedAttempt(
            attempt_id=data["attempt_id"],
            attempt_token=data["attempt_token"],
            time_limit_minutes=data["time_limit_minutes"],
            started_at=data["started_at"],
        )

    def submit(
        self,
        attempt: StartedAttempt,
        answers: Mapping[str, Any],
        summary: Optional[EvidenceSummary] = None
    ) -> Dict[str, Any]:
        payload = {
            "attempt_id": attempt.attempt_id,
            "attempt_token": attempt.attempt_token,
            "answers": [
                {"question_id": question_id, "selected_option": option}
                for question_id, option in answers.items()
            ],
        }
        if summary is not None:
            payload["proctoring"] = summary.to_dict()
        return self._request("POST", "/api/exams/submit", payload)

    def fetch(self, attempt_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/exams/attempts/{attempt_id}")["attempt"]

    def report(
        self,
        attempt_id: str,
        interval_seconds: float,
        camera_on: bool,
        face_detected: bool,
        emotion: Optional[str] = None,
        tab_switched: bool = False
    ) -> Dict[str, Any]:
        return self._request("POST", f"/api/exams/attempts/{attempt_id}/proctoring", {
            "interval_seconds": interval_seconds,
            "camera_on": camera_on,
            "face_detected": face_detected,
            "emotion": emotion,
            "tab_switched": tab_switched,
        })

    def auto_submit(
        self,
        attempt: StartedAttempt,
        answers: Mapping[str, Any],
        monitor=None
    ) -> Optional[Dict[str, Any]]:
        """
        Time-up flow: stop monitoring and submit whatever answers exist.

        Returns the submission result, or None when the server reports the
        attempt as already submitted or past its time limit. A rejected token
        is a security event and is re-raised.
        """
        summary = monitor.stop() if monitor is not None else None

        try:
            result = self.submit(attempt, answers, summary)
        except Forbidden as e:
            log_security_event(attempt.attempt_id, e.reason, details={"message": e.message})
            raise
        except Rejected as e:
            if e.reason == "already_submitted":
                logger.info(f"Attempt {attempt.attempt_id} was already submitted")
                return None
            if e.reason == "time_exceeded":
                log_proctor_event(
                    attempt.attempt_id,
                    "auto_submit_late",
                    details=e.details,
                    level="warning"
                )
                return None
            raise

        log_proctor_event(attempt.attempt_id, "auto_submitted", details={"score": result.get("score")})
        return result

