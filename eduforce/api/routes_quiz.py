# eduforce/api/routes_quiz.py
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from eduforce.api.routes_auth import roles_required
from eduforce.api.validation import parse_json_body
from eduforce.domain.models.api_models import GenerateQuizRequest, PublishRequest, UpdateQuizRequest
from eduforce.domain.models.db_models import UserRole
from eduforce.infrastructure.database import db
from eduforce.infrastructure.repositories import (
    MongoAttemptRepository,
    MongoQuizRepository,
    MongoUserRepository,
)
from eduforce.services.quiz_generator import QuizGenerator
from eduforce.services.quiz_service import QuizService
from ef_utils.logger_utils import logger

quiz_bp = Blueprint("quiz_bp", __name__)


def _quiz_service() -> QuizService:
    return QuizService(
        quizzes=MongoQuizRepository(db),
        attempts=MongoAttemptRepository(db),
        users=MongoUserRepository(db),
        generator=QuizGenerator(current_app.extensions["ai_client"]),
    )


@quiz_bp.route("/generate", methods=["POST"])
@roles_required(UserRole.TEACHER)
def generate_quiz():
    """
    Generate a quiz from an uploaded PDF.

    Expected JSON body:
    - pdfBase64: required, raw Base64 or a data URL
    - subject, userProvidedTopic: required
    - numQuestions: optional (defaults to 5, clamped to 1-25).
    """
    body = parse_json_body(GenerateQuizRequest)
    logger.info(f"Quiz generation requested by teacher {current_user.id}")
    quiz = _quiz_service().create_quiz_from_pdf(current_user.id, body)
    return jsonify({"message": "Quiz generated and saved successfully!", "quiz": quiz.model_dump(mode="json")}), 201


@quiz_bp.route("/teacher", methods=["GET"])
@roles_required(UserRole.TEACHER)
def list_teacher_quizzes():
    quizzes = _quiz_service().list_teacher_quizzes(current_user.id)
    return jsonify([quiz.model_dump(mode="json") for quiz in quizzes]), 200


@quiz_bp.route("/teacher/attempts/<attempt_id>", methods=["GET"])
@roles_required(UserRole.TEACHER)
def get_attempt_report(attempt_id):
    attempt = _quiz_service().get_attempt_for_teacher(attempt_id, current_user.id)
    return jsonify(attempt.model_dump(mode="json")), 200


@quiz_bp.route("/<quiz_id>", methods=["GET"])
@login_required
def get_quiz(quiz_id):
    quiz = _quiz_service().get_quiz_for_user(quiz_id, current_user.user)
    return jsonify(quiz.model_dump(mode="json")), 200


@quiz_bp.route("/<quiz_id>", methods=["PUT"])
@roles_required(UserRole.TEACHER)
def update_quiz(quiz_id):
    body = parse_json_body(UpdateQuizRequest)
    quiz = _quiz_service().update_quiz(quiz_id, current_user.id, body)
    return jsonify({"message": "Quiz updated successfully!", "quiz": quiz.model_dump(mode="json")}), 200


@quiz_bp.route("/<quiz_id>", methods=["DELETE"])
@roles_required(UserRole.TEACHER)
def delete_quiz(quiz_id):
    _quiz_service().delete_quiz(quiz_id, current_user.id)
    return jsonify({"message": "Quiz removed successfully."}), 200


@quiz_bp.route("/<quiz_id>/publish", methods=["PATCH"])
@roles_required(UserRole.TEACHER)
def set_publish_status(quiz_id):
    body = parse_json_body(PublishRequest)
    quiz = _quiz_service().set_published(quiz_id, current_user.id, body.published)
    state = "published" if quiz.published else "unpublished"
    return jsonify({"message": f"Quiz {state} successfully!", "quiz": quiz.model_dump(mode="json")}), 200


@quiz_bp.route("/<quiz_id>/attempts", methods=["GET"])
@roles_required(UserRole.TEACHER)
def list_quiz_attempts(quiz_id):
    overview = _quiz_service().list_quiz_attempts(quiz_id, current_user.id)
    return jsonify([row.model_dump(mode="json") for row in overview]), 200
