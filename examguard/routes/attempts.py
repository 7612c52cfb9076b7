"""
Exam Attempt Routes - start, submit, fetch and proctoring reports
"""
from flask import Blueprint, current_app, jsonify, request

from examguard.errors import Rejected
from examguard.services.attempt_lifecycle import AttemptLifecycleManager
from examguard.services.authorization_service import Roles, require_auth
from examguard.services.proctoring_log import record_report

attempts_bp = Blueprint("attempts", __name__, url_prefix="/api/exams")


def get_lifecycle_manager() -> AttemptLifecycleManager:
    """Manager registered by the app factory, or one built from config"""
    manager = current_app.extensions.get("attempt_lifecycle")
    if manager is None:
        manager = AttemptLifecycleManager.from_config(current_app.config)
        current_app.extensions["attempt_lifecycle"] = manager
    return manager


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise Rejected("Request body must be a JSON object", reason="invalid_request")
    return data


@attempts_bp.route("/start", methods=["POST"])
@require_auth
def start_exam():
    """Issue a new attempt for the calling student"""
    data = _json_body()

    exam_id = data.get("exam_id") or data.get("examId")
    if not exam_id:
        raise Rejected("Missing required field: exam_id", reason="invalid_request")

    attempt = get_lifecycle_manager().issue(str(exam_id), request.user_id)

    return jsonify({
        "message": "Exam started successfully",
        "attempt_id": attempt.id,
        "attempt_token": attempt.attempt_token,
        "time_limit_minutes": attempt.exam.duration_minutes,
        "started_at": attempt.started_at.isoformat(),
    }), 201


@attempts_bp.route("/submit", methods=["POST"])
@require_auth
def submit_exam():
    """Grade and finalize an attempt"""
    data = _json_body()

    required_fields = ["attempt_id", "attempt_token"]
    for field in required_fields:
        if not data.get(field):
            raise Rejected(f"Missing required field: {field}", reason="invalid_request")

    if "answers" not in data:
        raise Rejected("Missing required field: answers", reason="invalid_request")

    result = get_lifecycle_manager().submit(
        attempt_id=str(data["attempt_id"]),
        token=data["attempt_token"],
        student_id=request.user_id,
        answers=data["answers"],
        proctoring=data.get("proctoring"),
    )

    return jsonify({"message": "Exam submitted successfully", **result.to_dict()}), 200


@attempts_bp.route("/attempts/<attempt_id>", methods=["GET"])
@require_auth
def get_attempt(attempt_id):
    """Attempt details for the owning student or staff"""
    attempt = get_lifecycle_manager().fetch(attempt_id, request.user_id, request.user_role)

    data = {"attempt": attempt.to_dict(include_answers=True)}
    if request.user_role in Roles.STAFF and attempt.proctoring_log is not None:
        data["proctoring_log"] = attempt.proctoring_log.to_dict()

    return jsonify(data), 200


@attempts_bp.route("/attempts/<attempt_id>/proctoring", methods=["POST"])
@require_auth
def report_proctoring(attempt_id):
    """Fold one sampling interval into the attempt's proctoring log"""
    data = _json_body()
    log = record_report(attempt_id, request.user_id, data)
    return jsonify({"success": True, "frames_analyzed": log.frames_analyzed}), 200
