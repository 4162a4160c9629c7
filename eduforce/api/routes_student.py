# eduforce/api/routes_student.py
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from eduforce.api.validation import parse_json_body
from eduforce.domain.errors import InvalidSubmissionError
from eduforce.domain.models.api_models import SubmitAttemptRequest
from eduforce.infrastructure.database import db
from eduforce.infrastructure.repositories import MongoAttemptRepository, MongoQuizRepository
from eduforce.services.attempt_analyzer import AttemptAnalyzer
from eduforce.services.attempt_service import AttemptService
from ef_utils.logger_utils import logger

student_bp = Blueprint("student_bp", __name__)


def _attempt_service() -> AttemptService:
    return AttemptService(
        quizzes=MongoQuizRepository(db),
        attempts=MongoAttemptRepository(db),
        analyzer=AttemptAnalyzer(current_app.extensions["ai_client"]),
    )


@student_bp.route("/published", methods=["GET"])
@login_required
def list_published_quizzes():
    return jsonify(_attempt_service().list_published_quizzes()), 200


@student_bp.route("/take/<quiz_code>", methods=["GET"])
@login_required
def get_quiz_for_taking(quiz_code):
    view = _attempt_service().get_quiz_for_taking(quiz_code, current_user.id)
    return jsonify(view.model_dump(mode="json")), 200


@student_bp.route("/check-attempt/<quiz_code>", methods=["GET"])
@login_required
def check_attempt(quiz_code):
    return jsonify(_attempt_service().check_attempt_status(quiz_code, current_user.id)), 200


@student_bp.route("/submit", methods=["POST"])
@login_required
def submit_quiz():
    """
    Grade and store one submission.

    Expected JSON body:
    - quizId, answers[{questionId, selectedOptionId}]: required
    - proctoringEvents, isSuspicious: optional.
    """
    body = parse_json_body(SubmitAttemptRequest, InvalidSubmissionError)
    attempt = _attempt_service().submit_attempt(current_user.id, body)
    logger.info(f"Attempt {attempt.id} stored for student {current_user.id}")
    return jsonify({"message": "Quiz submitted successfully!", "attempt": attempt.model_dump(mode="json")}), 201


@student_bp.route("/attempts", methods=["GET"])
@login_required
def list_my_attempts():
    return jsonify(_attempt_service().list_student_attempts(current_user.id)), 200


@student_bp.route("/attempts/<attempt_id>", methods=["GET"])
@login_required
def get_my_attempt(attempt_id):
    return jsonify(_attempt_service().get_attempt_report(attempt_id, current_user.id)), 200
