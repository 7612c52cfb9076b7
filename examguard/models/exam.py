"""
Exam definition models: exams, their ordered question set and assigned students
"""
from datetime import datetime
from examguard import db
import uuid


def generate_uuid():
    return str(uuid.uuid4())


class Question(db.Model):
    """Multiple choice question; the answer key is stored by value, never by position"""
    __tablename__ = "questions"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    prompt = db.Column(db.Text, nullable=False)
    correct_option = db.Column(db.String(500), nullable=False)
    incorrect_options = db.Column(db.JSON, default=list)

    created_by = db.Column(db.String(36), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def options(self):
        """All options sorted by value, so position never leaks the key"""
        return sorted({self.correct_option, *(self.incorrect_options or [])})

    def to_dict(self, include_answer=False):
        result = {
            "id": self.id,
            "prompt": self.prompt,
            "options": self.options,
        }
        if include_answer:
            result["correct_option"] = self.correct_option
            result["incorrect_options"] = list(self.incorrect_options or [])
        return result


class ExamQuestion(db.Model):
    """Position of a question inside an exam"""
    __tablename__ = "exam_questions"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    exam_id = db.Column(db.String(36), db.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = db.Column(db.String(36), db.ForeignKey("questions.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    question = db.relationship("Question")

    __table_args__ = (
        db.UniqueConstraint('exam_id', 'question_id', name='unique_exam_question'),
    )


class ExamAssignment(db.Model):
    """A student assigned to sit an exam"""
    __tablename__ = "exam_assignments"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    exam_id = db.Column(db.String(36), db.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = db.Column(db.String(36), nullable=False, index=True)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('exam_id', 'student_id', name='unique_exam_assignment'),
    )


class Exam(db.Model):
    """Exam created by a teacher"""
    __tablename__ = "exams"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    teacher_id = db.Column(db.String(36), nullable=False, index=True)

    duration_minutes = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    is_proctored = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    exam_questions = db.relationship(
        "ExamQuestion",
        order_by="ExamQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    assignments = db.relationship("ExamAssignment", cascade="all, delete-orphan", lazy="dynamic")

    @property
    def questions(self):
        """Questions in exam order"""
        return [eq.question for eq in self.exam_questions]

    @property
    def question_ids(self):
        return [eq.question_id for eq in self.exam_questions]

    @property
    def assigned_student_ids(self):
        return [a.student_id for a in self.assignments]

    def set_questions(self, questions):
        """Replace the ordered question set, reusing rows for retained questions"""
        current = {eq.question_id: eq for eq in self.exam_questions}
        ordered = []
        for index, question in enumerate(questions):
            link = current.get(question.id) or ExamQuestion(question_id=question.id, question=question)
            link.position = index
            ordered.append(link)
        self.exam_questions = ordered

    def to_dict(self, include_questions=False, include_answers=False):
        result = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "teacher_id": self.teacher_id,
            "duration_minutes": self.duration_minutes,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "is_proctored": self.is_proctored,
            "question_count": len(self.exam_questions),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_questions:
            result["questions"] = [q.to_dict(include_answer=include_answers) for q in self.questions]
        if include_answers:
            result["assigned_students"] = self.assigned_student_ids
        return result
