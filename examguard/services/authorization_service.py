"""
Authorization Service - Role-Based Access Control

Identity comes from an external auth capability as a bearer JWT carrying
user_id and role. These decorators resolve it onto the request and enforce
roles; resource-level checks (attempt ownership, exam ownership) live here
too so every route applies them the same way.
"""
import logging
from functools import wraps
from flask import request, current_app
import jwt

from examguard.errors import Forbidden, Unauthorized
from examguard.utils.jwt_handler import verify_token

logger = logging.getLogger(__name__)


class Roles:
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    STAFF = (TEACHER, ADMIN)


def require_auth(f):
    """Decorator to require an authenticated identity"""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise Unauthorized("Missing authorization header")

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise Unauthorized("Malformed authorization header")

        try:
            payload = verify_token(parts[1], secret=current_app.config.get("JWT_SECRET"))
        except jwt.PyJWTError as e:
            raise Unauthorized(f"Invalid token: {str(e)}")

        request.user_id = str(payload["user_id"])
        request.user_role = payload["role"]
        return f(*args, **kwargs)

    return decorated


def require_role(*roles):
    """Decorator to require one of the given roles"""
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated(*args, **kwargs):
            if request.user_role not in roles:
                raise Forbidden(f"{' or '.join(r.title() for r in roles)} access required", reason="role_required")
            return f(*args, **kwargs)
        return decorated
    return decorator


require_staff = require_role(*Roles.STAFF)


def can_view_attempt(attempt, user_id: str, role: str) -> bool:
    """Owning student, or any teacher/admin"""
    return attempt.student_id == user_id or role in Roles.STAFF


def check_attempt_access(attempt, user_id: str, role: str):
    if not can_view_attempt(attempt, user_id, role):
        raise Forbidden("You do not have permission to view this attempt", reason="not_owner")


def check_exam_ownership(exam, user_id: str, role: str):
    """Exam creator or admin"""
    if exam.teacher_id != user_id and role != Roles.ADMIN:
        raise Forbidden("You do not have permission to manage this exam", reason="not_owner")
