"""
Question Bank Routes
"""
from flask import Blueprint, jsonify, request

from examguard import db
from examguard.errors import NotFound, Rejected
from examguard.models.exam import Question
from examguard.services.authorization_service import Roles, require_auth, require_staff

questions_bp = Blueprint("questions", __name__, url_prefix="/api/questions")


@questions_bp.route("/", methods=["POST"])
@require_staff
def create_question():
    """Create a multiple choice question (teacher/admin)"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise Rejected("Request body must be a JSON object", reason="invalid_request")

    prompt = (data.get("prompt") or "").strip()
    correct_option = data.get("correct_option")
    incorrect_options = data.get("incorrect_options")

    if not prompt:
        raise Rejected("Missing required field: prompt", reason="invalid_request")
    if not isinstance(correct_option, str) or not correct_option.strip():
        raise Rejected("Missing required field: correct_option", reason="invalid_request")
    if not isinstance(incorrect_options, list) or not incorrect_options:
        raise Rejected("incorrect_options must be a non-empty array", reason="invalid_request")
    if not all(isinstance(o, str) and o.strip() for o in incorrect_options):
        raise Rejected("incorrect_options must contain non-empty strings", reason="invalid_request")
    if correct_option in incorrect_options:
        raise Rejected("correct_option cannot also be an incorrect option", reason="invalid_request")

    question = Question(
        prompt=prompt,
        correct_option=correct_option,
        incorrect_options=list(dict.fromkeys(incorrect_options)),
        created_by=request.user_id,
    )
    db.session.add(question)
    db.session.commit()

    return jsonify({"question": question.to_dict(include_answer=True)}), 201


@questions_bp.route("/", methods=["GET"])
@require_staff
def list_questions():
    """Teachers see their own questions, admins all"""
    query = Question.query
    if request.user_role != Roles.ADMIN:
        query = query.filter_by(created_by=request.user_id)

    questions = query.order_by(Question.created_at.desc()).limit(200).all()

    return jsonify({
        "questions": [q.to_dict(include_answer=True) for q in questions],
        "count": len(questions)
    }), 200


@questions_bp.route("/<question_id>", methods=["GET"])
@require_auth
def get_question(question_id):
    """The answer key is only returned to staff"""
    question = db.session.get(Question, question_id)
    if not question:
        raise NotFound("Question not found")

    include_answer = request.user_role in Roles.STAFF
    return jsonify({"question": question.to_dict(include_answer=include_answer)}), 200
