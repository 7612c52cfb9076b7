"""
Exam Routes - exam definition, assignment and results
"""
from flask import Blueprint, current_app, jsonify, request

from examguard.errors import Rejected
from examguard.services import exam_service
from examguard.services.authorization_service import (
    Roles,
    check_exam_ownership,
    require_auth,
    require_staff,
)

exams_bp = Blueprint("exams", __name__, url_prefix="/api/exams")


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise Rejected("Request body must be a JSON object", reason="invalid_request")
    return data


def _managed_exam(exam_id):
    exam = exam_service.get_exam_or_404(exam_id)
    check_exam_ownership(exam, request.user_id, request.user_role)
    return exam


@exams_bp.route("/", methods=["POST"])
@require_staff
def create_exam():
    """Create new exam (teacher/admin)"""
    exam = exam_service.create_exam(request.user_id, _json_body())
    return jsonify({"exam": exam.to_dict(include_questions=True, include_answers=True)}), 201


@exams_bp.route("/", methods=["GET"])
@require_auth
def list_exams():
    """Exams visible to the caller, newest first"""
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", current_app.config.get("EXAMS_PER_PAGE", 10), type=int)

    result = exam_service.list_exams(request.user_id, request.user_role, page=page, per_page=per_page)
    return jsonify({
        "exams": result["items"],
        "page": result["page"],
        "per_page": result["per_page"],
        "total": result["total"],
    }), 200


@exams_bp.route("/<exam_id>", methods=["GET"])
@require_auth
def get_exam(exam_id):
    """Students get the question set without the answer key, and only while the exam is open"""
    exam = exam_service.get_exam_or_404(exam_id)

    if request.user_role in Roles.STAFF:
        check_exam_ownership(exam, request.user_id, request.user_role)
        return jsonify({"exam": exam.to_dict(include_questions=True, include_answers=True)}), 200

    exam_service.check_exam_window(exam)
    return jsonify({"exam": exam.to_dict(include_questions=True)}), 200


@exams_bp.route("/<exam_id>", methods=["PUT"])
@require_staff
def update_exam(exam_id):
    exam = _managed_exam(exam_id)
    exam = exam_service.update_exam(exam, _json_body())
    return jsonify({"exam": exam.to_dict(include_questions=True, include_answers=True)}), 200


@exams_bp.route("/<exam_id>", methods=["DELETE"])
@require_staff
def delete_exam(exam_id):
    exam = _managed_exam(exam_id)
    exam_service.delete_exam(exam)
    return jsonify({"message": "Exam deleted successfully"}), 200


@exams_bp.route("/<exam_id>/assign", methods=["POST"])
@require_staff
def assign_exam(exam_id):
    """Assign students; already-assigned students are skipped"""
    exam = _managed_exam(exam_id)
    data = _json_body()

    assigned = exam_service.assign_students(exam, data.get("student_ids"), request.user_id)

    return jsonify({
        "message": f"Exam assigned to {len(assigned)} students",
        "assigned": assigned,
        "assigned_students": exam.assigned_student_ids,
    }), 200


@exams_bp.route("/<exam_id>/results", methods=["GET"])
@require_staff
def exam_results(exam_id):
    exam = _managed_exam(exam_id)
    return jsonify(exam_service.exam_results(exam)), 200
