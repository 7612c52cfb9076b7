"""
Attempt Lifecycle Manager - issues, submits and fetches exam attempts

An attempt moves from in-progress to submitted exactly once. The transition
is a compare-and-set on submitted_at, so two racing submissions can never
both be graded.
"""
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import Forbidden, NotFound, Rejected
from examguard.models.exam import Exam
from examguard.models.exam_attempt import ExamAttempt, ProctoringLog
from examguard.proctor.suspicion import SuspicionEvaluator
from examguard.proctor.utils.logging import (
    log_attempt_issued,
    log_attempt_submitted,
    log_security_event,
)
from examguard.services.authorization_service import check_attempt_access
from examguard.services.exam_service import check_exam_window
from examguard.services.proctoring_log import sanitize_client_summary, summarize_log
from examguard.services.scoring import PASS_THRESHOLD, normalize_answers, score_answers

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_attempt_token() -> str:
    """256 bits from the OS CSPRNG, hex encoded"""
    return secrets.token_hex(TOKEN_BYTES)


def tokens_match(expected: str, provided: Any) -> bool:
    """Constant-time comparison; non-string input never matches"""
    if not isinstance(provided, str) or not expected:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


@dataclass
class SubmissionResult:
    attempt_id: str
    score: int
    is_passed: bool
    correct_answers: int
    total_questions: int
    time_elapsed_minutes: int
    evidence_source: str
    proctor_warnings: List[str] = field(default_factory=list)
    suspicion_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "score": self.score,
            "is_passed": self.is_passed,
            "correct_answers": self.correct_answers,
            "total_questions": self.total_questions,
            "time_elapsed_minutes": self.time_elapsed_minutes,
            "proctor_warnings": list(self.proctor_warnings),
            "suspicion_count": self.suspicion_count,
            "evidence_source": self.evidence_source,
        }


class AttemptLifecycleManager:
    """
    Usage:
        manager = AttemptLifecycleManager.from_config(current_app.config)
        attempt = manager.issue(exam_id, student_id)
        result = manager.submit(attempt.id, token, student_id, answers, proctoring)
    """

    def __init__(
        self,
        pass_threshold: int = PASS_THRESHOLD,
        grace_seconds: int = 0,
        evaluator: Optional[SuspicionEvaluator] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.pass_threshold = pass_threshold
        self.grace_seconds = grace_seconds
        self.evaluator = evaluator or SuspicionEvaluator()
        self.clock = clock

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides) -> "AttemptLifecycleManager":
        options = {
            "pass_threshold": config.get("PASS_THRESHOLD", PASS_THRESHOLD),
            "grace_seconds": config.get("SUBMISSION_GRACE_SECONDS", 0),
            "evaluator": SuspicionEvaluator.from_config(config),
        }
        options.update(overrides)
        return cls(**options)

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    @staticmethod
    def _active_attempt(exam_id: str, student_id: str) -> Optional[ExamAttempt]:
        return ExamAttempt.query.filter(
            ExamAttempt.exam_id == exam_id,
            ExamAttempt.student_id == student_id,
            ExamAttempt.submitted_at.is_(None)
        ).first()

    @staticmethod
    def _already_active(attempt: ExamAttempt) -> Rejected:
        return Rejected(
            "You already have an active attempt for this exam",
            reason="already_active",
            details={"attempt_id": attempt.id}
        )

    def issue(self, exam_id: str, student_id: str) -> ExamAttempt:
        """
        Start a new attempt for a student.

        Raises:
            NotFound: exam does not exist
            Rejected: outside the exam window, or an attempt is already
                in progress (its id is returned in the error details)
        """
        exam = db.session.get(Exam, exam_id)
        if not exam:
            raise NotFound("Exam not found")

        now = self.clock()
        check_exam_window(exam, now)

        existing = self._active_attempt(exam.id, student_id)
        if existing:
            raise self._already_active(existing)

        attempt = ExamAttempt(
            student_id=student_id,
            exam_id=exam.id,
            attempt_token=generate_attempt_token(),
            answers={},
            started_at=now,
            emotion_stats={},
            proctor_warnings=[],
            evidence_source="none",
        )
        attempt.proctoring_log = ProctoringLog(
            camera_off_seconds=0,
            face_missing_seconds=0,
            emotion_seconds={},
            tab_switch_count=0,
            frames_analyzed=0,
        )
        db.session.add(attempt)

        try:
            db.session.commit()
        except IntegrityError:
            # Lost the race against a concurrent issue for the same student
            db.session.rollback()
            existing = self._active_attempt(exam.id, student_id)
            if existing:
                raise self._already_active(existing)
            raise

        log_attempt_issued(attempt.id, exam.id, student_id)
        return attempt

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def resolve_evidence(self, attempt: ExamAttempt, client_summary: Any):
        """
        Server counters win whenever at least one report was received;
        otherwise the client's summary is used as-is.

        Returns:
            (evidence dict, source) where source is server, client or none
        """
        log = attempt.proctoring_log
        if log is not None and log.has_reports:
            return summarize_log(log), "server"

        if isinstance(client_summary, Mapping) and client_summary:
            return sanitize_client_summary(client_summary), "client"

        return {"face_missing_seconds": 0.0, "emotion_stats": {}, "tab_switch_count": 0}, "none"

    def submit(
        self,
        attempt_id: str,
        token: Any,
        student_id: str,
        answers: Any,
        proctoring: Any = None
    ) -> SubmissionResult:
        """
        Grade and finalize an attempt.

        Checks run in order: existence, token, ownership, state, time limit.
        Nothing is persisted unless every check passes.
        """
        attempt = db.session.get(ExamAttempt, attempt_id)
        if not attempt:
            raise NotFound("Exam attempt not found")

        if not tokens_match(attempt.attempt_token, token):
            log_security_event(attempt.id, "invalid_token", details={"student_id": student_id})
            raise Forbidden("Invalid attempt token - security verification failed", reason="invalid_token")

        if attempt.student_id != student_id:
            log_security_event(attempt.id, "not_owner", details={"student_id": student_id})
            raise Forbidden("This attempt does not belong to you", reason="not_owner")

        if attempt.is_submitted:
            raise Rejected("This exam has already been submitted", reason="already_submitted")

        exam = attempt.exam
        now = self.clock()
        elapsed_seconds = (now - attempt.started_at).total_seconds()
        limit_seconds = exam.duration_minutes * 60 + (self.grace_seconds or 0)
        if elapsed_seconds > limit_seconds:
            elapsed_minutes = round(elapsed_seconds / 60)
            raise Rejected(
                f"Submission time exceeded - elapsed: {elapsed_minutes}min, limit: {exam.duration_minutes}min",
                reason="time_exceeded",
                details={"elapsed_minutes": elapsed_minutes, "limit_minutes": exam.duration_minutes}
            )

        if answers is not None and not isinstance(answers, (list, dict)):
            raise Rejected("answers must be an array or an object", reason="invalid_request")
        submitted_answers = normalize_answers(answers)

        score = score_answers(submitted_answers, exam.questions, pass_threshold=self.pass_threshold)
        evidence, source = self.resolve_evidence(attempt, proctoring)
        suspicion = self.evaluator.evaluate(evidence, exam.is_proctored)

        result = db.session.execute(
            update(ExamAttempt)
            .where(ExamAttempt.id == attempt.id, ExamAttempt.submitted_at.is_(None))
            .values(
                answers=submitted_answers,
                submitted_at=now,
                score=score.score,
                is_passed=score.is_passed,
                correct_count=score.correct_count,
                total_questions=score.total_questions,
                face_missing_seconds=evidence.get("face_missing_seconds", 0.0),
                emotion_stats=evidence.get("emotion_stats", {}),
                tab_switch_count=evidence.get("tab_switch_count", 0),
                suspicious_actions=suspicion.suspicion_count,
                proctor_warnings=suspicion.warnings,
                evidence_source=source,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            db.session.rollback()
            logger.warning(f"Attempt {attempt_id} finalized concurrently; discarding duplicate submission")
            raise Rejected("This exam has already been submitted", reason="already_submitted")

        db.session.commit()

        log_attempt_submitted(attempt.id, score.score, suspicion.warnings, source)

        return SubmissionResult(
            attempt_id=attempt.id,
            score=score.score,
            is_passed=score.is_passed,
            correct_answers=score.correct_count,
            total_questions=score.total_questions,
            time_elapsed_minutes=round(elapsed_seconds / 60),
            evidence_source=source,
            proctor_warnings=suspicion.warnings,
            suspicion_count=suspicion.suspicion_count,
        )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch(self, attempt_id: str, user_id: str, role: str) -> ExamAttempt:
        """Owning student or staff; the token is never part of the view"""
        attempt = db.session.get(ExamAttempt, attempt_id)
        if not attempt:
            raise NotFound("Exam attempt not found")

        check_attempt_access(attempt, user_id, role)
        return attempt
