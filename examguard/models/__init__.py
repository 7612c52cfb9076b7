"""
Database Models for ExamGuard Core Service
"""
from examguard.models.exam import Exam, Question, ExamQuestion, ExamAssignment
from examguard.models.exam_attempt import ExamAttempt, ProctoringLog
from examguard.models.notification import Notification, create_notification

__all__ = [
    "Exam",
    "Question",
    "ExamQuestion",
    "ExamAssignment",
    "ExamAttempt",
    "ProctoringLog",
    "Notification",
    "create_notification",
]
