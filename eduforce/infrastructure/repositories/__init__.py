from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from eduforce.domain.errors import (
    DuplicateSubmissionError,
    EmailAlreadyRegisteredError,
    QuizCodeCollisionError,
)
from eduforce.domain.models.db_models import Quiz, QuizAttempt, User
from eduforce.domain.repositories import IAttemptRepository, IQuizRepository, IUserRepository
from ef_utils.logger_utils import logger

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], data: Optional[Dict[str, Any]], label: str) -> Optional[ModelT]:
    """Build a model from a Mongo document, logging (not raising) on legacy/broken rows."""
    if not data:
        return None
    try:
        return model(**data)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            f"{label}.parse_error",
            extra={"_id": str(data.get("_id")), "error": str(exc)},
            exc_info=True,
        )
        return None


def _parse_many(model: Type[ModelT], cursor, label: str) -> List[ModelT]:
    items = (_parse(model, doc, label) for doc in cursor)
    return [item for item in items if item is not None]


class MongoUserRepository(IUserRepository):
    """MongoDB implementation of the user repository."""

    def __init__(self, db: Database):
        self.db = db
        self.collection = self.db.users

    def get_by_id(self, user_id: str) -> Optional[User]:
        return _parse(User, self.collection.find_one({"_id": user_id}), "MongoUserRepository.get_by_id")

    def get_by_email(self, email: str) -> Optional[User]:
        return _parse(
            User,
            self.collection.find_one({"email": email.strip().lower()}),
            "MongoUserRepository.get_by_email",
        )

    def create(self, user: User) -> None:
        try:
            self.collection.insert_one(user.to_dict())
        except DuplicateKeyError as exc:
            raise EmailAlreadyRegisteredError() from exc
        logger.info(f"Created user {user.id} with role: {user.role.value}")

    def update(self, user: User) -> None:
        doc = user.to_dict()
        user_id = doc.pop("_id")
        try:
            result = self.collection.update_one({"_id": user_id}, {"$set": doc})
        except DuplicateKeyError as exc:
            raise EmailAlreadyRegisteredError("This email is already in use by another account.") from exc
        if result.matched_count == 0:
            logger.warning("MongoUserRepository.update.not_found", extra={"user_id": user_id})


class MongoQuizRepository(IQuizRepository):
    """MongoDB implementation of the quiz repository."""

    def __init__(self, db: Database):
        self.db = db
        self.collection = self.db.quizzes

    def create(self, quiz: Quiz) -> None:
        try:
            self.collection.insert_one(quiz.to_dict())
        except DuplicateKeyError as exc:
            # The only unique key besides _id is quiz_code.
            logger.warning(
                "MongoQuizRepository.create.duplicate_code",
                extra={"quiz_code": quiz.quiz_code},
            )
            raise QuizCodeCollisionError() from exc
        logger.info(f"Created quiz '{quiz.quiz_title}' with ID: {quiz.id} and code: {quiz.quiz_code}")

    def get_by_id(self, quiz_id: str) -> Optional[Quiz]:
        quiz = _parse(Quiz, self.collection.find_one({"_id": quiz_id}), "MongoQuizRepository.get_by_id")
        if quiz is None:
            logger.warning("MongoQuizRepository.get_by_id.missing", extra={"quiz_id": quiz_id})
        return quiz

    def get_by_code(self, quiz_code: str, published_only: bool = True) -> Optional[Quiz]:
        query: Dict[str, Any] = {"quiz_code": quiz_code.strip().upper()}
        if published_only:
            query["published"] = True
        return _parse(Quiz, self.collection.find_one(query), "MongoQuizRepository.get_by_code")

    def list_by_teacher(self, teacher_id: str) -> List[Quiz]:
        cursor = self.collection.find({"teacher_id": teacher_id}).sort("created_at", DESCENDING)
        return _parse_many(Quiz, cursor, "MongoQuizRepository.list_by_teacher")

    def list_published(self) -> List[Quiz]:
        cursor = self.collection.find({"published": True}).sort("created_at", DESCENDING)
        return _parse_many(Quiz, cursor, "MongoQuizRepository.list_published")

    def update(self, quiz: Quiz) -> None:
        doc = quiz.to_dict()
        quiz_id = doc.pop("_id")
        result = self.collection.update_one({"_id": quiz_id}, {"$set": doc})
        if result.matched_count == 0:
            logger.warning("MongoQuizRepository.update.not_found", extra={"quiz_id": quiz_id})
        else:
            logger.info("MongoQuizRepository.update.ok", extra={"quiz_id": quiz_id})

    def delete(self, quiz_id: str) -> bool:
        result = self.collection.delete_one({"_id": quiz_id})
        return result.deleted_count > 0


class MongoAttemptRepository(IAttemptRepository):
    """
    MongoDB implementation of the attempt repository.

    One attempt per (student_id, quiz_id) is guaranteed by the unique compound
    index created in `ensure_indexes`; a second insert surfaces as
    DuplicateSubmissionError even when two submissions race.
    """

    def __init__(self, db: Database):
        self.db = db
        self.collection = self.db.quiz_attempts

    def create(self, attempt: QuizAttempt) -> None:
        try:
            self.collection.insert_one(attempt.to_dict())
        except DuplicateKeyError as exc:
            logger.warning(
                "MongoAttemptRepository.create.duplicate",
                extra={"student_id": attempt.student_id, "quiz_id": attempt.quiz_id},
            )
            raise DuplicateSubmissionError(
                "Duplicate submission detected: You have already completed this quiz."
            ) from exc
        logger.info(f"Saved attempt {attempt.id} for quiz {attempt.quiz_id}")

    def get_by_id(self, attempt_id: str) -> Optional[QuizAttempt]:
        return _parse(
            QuizAttempt,
            self.collection.find_one({"_id": attempt_id}),
            "MongoAttemptRepository.get_by_id",
        )

    def find_by_student_and_quiz(self, student_id: str, quiz_id: str) -> Optional[QuizAttempt]:
        return _parse(
            QuizAttempt,
            self.collection.find_one({"student_id": student_id, "quiz_id": quiz_id}),
            "MongoAttemptRepository.find_by_student_and_quiz",
        )

    def get_for_student(self, attempt_id: str, student_id: str) -> Optional[QuizAttempt]:
        return _parse(
            QuizAttempt,
            self.collection.find_one({"_id": attempt_id, "student_id": student_id}),
            "MongoAttemptRepository.get_for_student",
        )

    def list_by_student(self, student_id: str) -> List[QuizAttempt]:
        cursor = self.collection.find({"student_id": student_id}).sort("submitted_at", DESCENDING)
        return _parse_many(QuizAttempt, cursor, "MongoAttemptRepository.list_by_student")

    def list_by_quiz(self, quiz_id: str) -> List[QuizAttempt]:
        cursor = self.collection.find({"quiz_id": quiz_id}).sort("submitted_at", ASCENDING)
        return _parse_many(QuizAttempt, cursor, "MongoAttemptRepository.list_by_quiz")
