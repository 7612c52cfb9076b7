"""
Exam attempt models

An attempt is in progress while submitted_at is NULL and terminal afterwards.
A partial unique index keeps at most one in-progress attempt per
(student, exam); the attempt token carries a hard uniqueness constraint.
"""
from datetime import datetime
from examguard import db
import uuid


def generate_uuid():
    return str(uuid.uuid4())


class ExamAttempt(db.Model):
    """A single student's attempt at an exam"""
    __tablename__ = "exam_attempts"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    student_id = db.Column(db.String(36), nullable=False, index=True)
    exam_id = db.Column(db.String(36), db.ForeignKey("exams.id"), nullable=False, index=True)

    # Secret binding a submission to its issuance; never serialized
    attempt_token = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # question_id -> selected option value
    answers = db.Column(db.JSON, default=dict)

    started_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    submitted_at = db.Column(db.DateTime, nullable=True)

    # Result
    score = db.Column(db.Integer, default=0, nullable=False)
    is_passed = db.Column(db.Boolean, default=False, nullable=False)
    correct_count = db.Column(db.Integer, default=0, nullable=False)
    total_questions = db.Column(db.Integer, default=0, nullable=False)

    # Proctoring summary written at submission
    face_missing_seconds = db.Column(db.Float, default=0, nullable=False)
    emotion_stats = db.Column(db.JSON, default=dict)
    tab_switch_count = db.Column(db.Integer, default=0, nullable=False)
    suspicious_actions = db.Column(db.Integer, default=0, nullable=False)
    proctor_warnings = db.Column(db.JSON, default=list)
    evidence_source = db.Column(db.String(20), default="none")  # none, client, server

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    exam = db.relationship("Exam", backref=db.backref("attempts", lazy="dynamic"))
    proctoring_log = db.relationship(
        "ProctoringLog",
        backref="attempt",
        uselist=False,
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index(
            "uq_active_attempt_per_student",
            "student_id",
            "exam_id",
            unique=True,
            sqlite_where=db.text("submitted_at IS NULL"),
            postgresql_where=db.text("submitted_at IS NULL"),
        ),
    )

    @property
    def is_submitted(self):
        return self.submitted_at is not None

    @property
    def elapsed_minutes(self):
        end = self.submitted_at or datetime.utcnow()
        return round((end - self.started_at).total_seconds() / 60)

    def to_dict(self, include_answers=True):
        result = {
            "id": self.id,
            "student_id": self.student_id,
            "exam_id": self.exam_id,
            "status": "submitted" if self.is_submitted else "in_progress",
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "score": self.score,
            "is_passed": self.is_passed,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "proctoring": {
                "face_missing_seconds": self.face_missing_seconds,
                "emotion_stats": self.emotion_stats or {},
                "tab_switch_count": self.tab_switch_count,
                "suspicious_actions": self.suspicious_actions,
                "warnings": self.proctor_warnings or [],
                "evidence_source": self.evidence_source,
            },
        }
        if include_answers:
            result["answers"] = self.answers or {}
        return result


class ProctoringLog(db.Model):
    """Server-side counters accumulated from periodic proctoring reports"""
    __tablename__ = "proctoring_logs"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    attempt_id = db.Column(
        db.String(36),
        db.ForeignKey("exam_attempts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    camera_off_seconds = db.Column(db.Float, default=0, nullable=False)
    face_missing_seconds = db.Column(db.Float, default=0, nullable=False)
    emotion_seconds = db.Column(db.JSON, default=dict)
    tab_switch_count = db.Column(db.Integer, default=0, nullable=False)
    frames_analyzed = db.Column(db.Integer, default=0, nullable=False)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def has_reports(self):
        return (self.frames_analyzed or 0) > 0

    def to_dict(self):
        return {
            "attempt_id": self.attempt_id,
            "camera_off_seconds": self.camera_off_seconds,
            "face_missing_seconds": self.face_missing_seconds,
            "emotion_seconds": self.emotion_seconds or {},
            "tab_switch_count": self.tab_switch_count,
            "frames_analyzed": self.frames_analyzed,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
