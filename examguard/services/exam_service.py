"""
Exam Service - exam definition, assignment and results

Structural fields (question set, duration, time window) are frozen once any
attempt against the exam has been submitted.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from examguard import db
from examguard.errors import NotFound, Rejected
from examguard.models.exam import Exam, ExamAssignment, Question
from examguard.models.exam_attempt import ExamAttempt
from examguard.models.notification import create_notification
from examguard.services.authorization_service import Roles

logger = logging.getLogger(__name__)

STRUCTURAL_FIELDS = ("question_ids", "duration_minutes", "start_time", "end_time")


# ============================================================================
# Validation helpers
# ============================================================================

def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """ISO-8601 string (or datetime) to naive UTC; None stays None"""
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise Rejected(f"{field} must be an ISO-8601 datetime", reason="invalid_request")
    else:
        raise Rejected(f"{field} must be an ISO-8601 datetime", reason="invalid_request")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_duration(duration: Any) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise Rejected("Duration must be a whole number of minutes greater than 0", reason="invalid_duration")
    return duration


def validate_time_range(start_time: Optional[datetime], end_time: Optional[datetime]):
    if start_time and end_time and start_time >= end_time:
        raise Rejected("start_time must be before end_time", reason="invalid_time_range")


def get_exam_or_404(exam_id: str) -> Exam:
    exam = db.session.get(Exam, exam_id)
    if not exam:
        raise NotFound("Exam not found")
    return exam


def check_exam_window(exam: Exam, now: Optional[datetime] = None):
    """Reject outside [start_time, end_time]; both bounds are inclusive"""
    now = now or datetime.utcnow()
    if exam.start_time and now < exam.start_time:
        raise Rejected("Exam has not started yet", reason="not_yet_open")
    if exam.end_time and now > exam.end_time:
        raise Rejected("Exam has ended", reason="closed")


def resolve_questions(question_ids: Iterable[Any]) -> List[Question]:
    """Load questions in the given order; unknown ids are NotFound"""
    if question_ids is None:
        return []
    if isinstance(question_ids, (str, bytes)) or not isinstance(question_ids, (list, tuple)):
        raise Rejected("question_ids must be a list", reason="invalid_request")

    ids = [str(qid) for qid in question_ids]
    if len(set(ids)) != len(ids):
        raise Rejected("question_ids contains duplicates", reason="invalid_request")

    if not ids:
        return []

    found = {q.id: q for q in Question.query.filter(Question.id.in_(ids)).all()}
    missing = [qid for qid in ids if qid not in found]
    if missing:
        raise NotFound(f"Questions not found: {', '.join(missing)}", details={"missing": missing})

    return [found[qid] for qid in ids]


def has_submitted_attempts(exam_id: str) -> bool:
    return db.session.query(
        ExamAttempt.query.filter(
            ExamAttempt.exam_id == exam_id,
            ExamAttempt.submitted_at.isnot(None)
        ).exists()
    ).scalar()


# ============================================================================
# Operations
# ============================================================================

def create_exam(teacher_id: str, data: Dict[str, Any]) -> Exam:
    title = (data.get("title") or "").strip()
    if not title:
        raise Rejected("Missing required field: title", reason="invalid_request")

    duration = validate_duration(data.get("duration_minutes"))
    start_time = parse_datetime(data.get("start_time"), "start_time")
    end_time = parse_datetime(data.get("end_time"), "end_time")
    validate_time_range(start_time, end_time)

    questions = resolve_questions(data.get("question_ids") or [])

    exam = Exam(
        title=title,
        description=data.get("description"),
        teacher_id=teacher_id,
        duration_minutes=duration,
        start_time=start_time,
        end_time=end_time,
        is_proctored=bool(data.get("is_proctored", True)),
    )
    exam.set_questions(questions)

    db.session.add(exam)
    db.session.commit()

    logger.info(f"Exam {exam.id} created by {teacher_id} with {len(questions)} questions")
    return exam


def update_exam(exam: Exam, data: Dict[str, Any]) -> Exam:
    structural = [f for f in STRUCTURAL_FIELDS if f in data]
    if structural and has_submitted_attempts(exam.id):
        raise Rejected(
            "Cannot modify exam - students have already submitted attempts",
            reason="exam_locked",
            details={"fields": structural}
        )

    duration = validate_duration(data["duration_minutes"]) if "duration_minutes" in data else exam.duration_minutes
    start_time = parse_datetime(data["start_time"], "start_time") if "start_time" in data else exam.start_time
    end_time = parse_datetime(data["end_time"], "end_time") if "end_time" in data else exam.end_time
    validate_time_range(start_time, end_time)
    questions = resolve_questions(data["question_ids"]) if "question_ids" in data else None

    title = exam.title
    if "title" in data:
        title = (data["title"] or "").strip()
        if not title:
            raise Rejected("title cannot be empty", reason="invalid_request")

    exam.title = title
    exam.duration_minutes = duration
    exam.start_time = start_time
    exam.end_time = end_time
    if questions is not None:
        exam.set_questions(questions)
    if "description" in data:
        exam.description = data["description"]
    if "is_proctored" in data:
        exam.is_proctored = bool(data["is_proctored"])

    db.session.commit()
    logger.info(f"Exam {exam.id} updated: {sorted(data.keys())}")
    return exam


def delete_exam(exam: Exam):
    count = exam.attempts.count()
    if count > 0:
        raise Rejected(
            f"Cannot delete exam - there are {count} existing student attempts",
            reason="has_attempts",
            details={"attempt_count": count}
        )

    db.session.delete(exam)
    db.session.commit()
    logger.info(f"Exam {exam.id} deleted")


def assign_students(exam: Exam, student_ids: Any, assigned_by: str) -> List[str]:
    """
    Assign students to an exam. Already-assigned students are skipped.
    Notifications are best effort and never fail the assignment.

    Returns:
        Newly assigned student ids
    """
    if not isinstance(student_ids, list) or not student_ids:
        raise Rejected("student_ids must be a non-empty array", reason="invalid_request")

    existing = set(exam.assigned_student_ids)
    new_ids = []
    for student_id in (str(s) for s in student_ids):
        if student_id in existing or student_id in new_ids:
            continue
        new_ids.append(student_id)
        db.session.add(ExamAssignment(exam_id=exam.id, student_id=student_id))

    db.session.commit()

    if new_ids:
        _notify_assigned(exam, new_ids, assigned_by)

    return new_ids


def _notify_assigned(exam: Exam, student_ids: List[str], assigned_by: str):
    try:
        for student_id in student_ids:
            create_notification(
                user_id=student_id,
                type="exam_assigned",
                title=f"New Exam Assigned: {exam.title}",
                message=f'You have been assigned to take the exam "{exam.title}". '
                        f'Duration: {exam.duration_minutes} minutes.',
                source_id=exam.id,
                source_type="exam",
                created_by=assigned_by,
            )
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to write assignment notifications for exam {exam.id}: {e}")


def list_exams(user_id: str, role: str, page: int = 1, per_page: int = 10) -> Dict[str, Any]:
    """Students see assigned exams, teachers their own, admins all"""
    query = Exam.query

    if role == Roles.STUDENT:
        query = query.join(ExamAssignment, ExamAssignment.exam_id == Exam.id).filter(
            ExamAssignment.student_id == user_id
        )
    elif role == Roles.TEACHER:
        query = query.filter(Exam.teacher_id == user_id)

    page = max(1, page)
    per_page = max(1, min(per_page, 100))
    total = query.count()
    exams = query.order_by(Exam.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [e.to_dict() for e in exams],
        "page": page,
        "per_page": per_page,
        "total": total,
    }


def exam_results(exam: Exam) -> Dict[str, Any]:
    """Per-attempt results with pass statistics over submitted attempts"""
    attempts = exam.attempts.order_by(ExamAttempt.submitted_at.desc()).all()
    submitted = [a for a in attempts if a.is_submitted]
    passed = sum(1 for a in submitted if a.is_passed)

    stats = {
        "total_attempts": len(attempts),
        "submitted_attempts": len(submitted),
        "average_score": round(sum(a.score for a in submitted) / len(submitted)) if submitted else 0,
        "pass_count": passed,
        "fail_count": len(submitted) - passed,
        "pass_rate": round(passed / len(submitted) * 100) if submitted else 0,
    }

    return {
        "exam": {"id": exam.id, "title": exam.title, "duration_minutes": exam.duration_minutes},
        "stats": stats,
        "results": [
            {
                **a.to_dict(include_answers=False),
                "duration_minutes": a.elapsed_minutes if a.is_submitted else None,
            }
            for a in attempts
        ],
    }
