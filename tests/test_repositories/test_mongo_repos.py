from unittest.mock import MagicMock

import pytest
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from eduforce.domain.errors import DuplicateSubmissionError, EmailAlreadyRegisteredError, QuizCodeCollisionError
from eduforce.infrastructure.database import ensure_indexes
from eduforce.infrastructure.repositories import (
    MongoAttemptRepository,
    MongoQuizRepository,
    MongoUserRepository,
)


class TestMongoUserRepository:
    """Tests for MongoUserRepository."""

    def test_get_by_email_lowercases(self, student):
        mock_db = MagicMock()
        mock_db.users.find_one.return_value = student.to_dict()

        user = MongoUserRepository(mock_db).get_by_email("  Student-1@Example.com ")

        assert user.id == "student-1"
        mock_db.users.find_one.assert_called_with({"email": "student-1@example.com"})

    def test_create_duplicate_email(self, student):
        mock_db = MagicMock()
        mock_db.users.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(EmailAlreadyRegisteredError):
            MongoUserRepository(mock_db).create(student)

    def test_broken_document_is_skipped(self):
        mock_db = MagicMock()
        mock_db.users.find_one.return_value = {"_id": "u1", "email": "x@example.com"}

        assert MongoUserRepository(mock_db).get_by_id("u1") is None


class TestMongoQuizRepository:
    """Tests for MongoQuizRepository."""

    def test_create_quiz(self, sample_quiz):
        mock_db = MagicMock()

        MongoQuizRepository(mock_db).create(sample_quiz)

        mock_db.quizzes.insert_one.assert_called_once()
        call_args = mock_db.quizzes.insert_one.call_args[0][0]
        assert call_args["_id"] == "quiz-1"
        assert call_args["quiz_code"] == "ABCD1234"
        assert call_args["questions"][0]["correct_answer_id"] == "q1_b"

    def test_create_code_collision(self, sample_quiz):
        mock_db = MagicMock()
        mock_db.quizzes.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(QuizCodeCollisionError):
            MongoQuizRepository(mock_db).create(sample_quiz)

    def test_get_by_code_published_only(self, sample_quiz):
        mock_db = MagicMock()
        mock_db.quizzes.find_one.return_value = sample_quiz.to_dict()

        quiz = MongoQuizRepository(mock_db).get_by_code("abcd1234")

        assert quiz.id == "quiz-1"
        mock_db.quizzes.find_one.assert_called_with({"quiz_code": "ABCD1234", "published": True})

    def test_get_by_code_any_state(self):
        mock_db = MagicMock()
        mock_db.quizzes.find_one.return_value = None

        assert MongoQuizRepository(mock_db).get_by_code("ABCD1234", published_only=False) is None
        mock_db.quizzes.find_one.assert_called_with({"quiz_code": "ABCD1234"})

    def test_list_by_teacher_newest_first(self, sample_quiz):
        mock_db = MagicMock()
        mock_db.quizzes.find.return_value.sort.return_value = [sample_quiz.to_dict()]

        quizzes = MongoQuizRepository(mock_db).list_by_teacher("teacher-1")

        assert [q.id for q in quizzes] == ["quiz-1"]
        mock_db.quizzes.find.assert_called_with({"teacher_id": "teacher-1"})
        mock_db.quizzes.find.return_value.sort.assert_called_with("created_at", DESCENDING)

    def test_update_does_not_set_id(self, sample_quiz):
        mock_db = MagicMock()
        mock_db.quizzes.update_one.return_value.matched_count = 1

        MongoQuizRepository(mock_db).update(sample_quiz)

        query, update = mock_db.quizzes.update_one.call_args[0]
        assert query == {"_id": "quiz-1"}
        assert "_id" not in update["$set"]
        assert update["$set"]["quiz_title"] == "Photosynthesis Basics"

    def test_delete(self):
        mock_db = MagicMock()
        mock_db.quizzes.delete_one.return_value.deleted_count = 1

        assert MongoQuizRepository(mock_db).delete("quiz-1") is True
        mock_db.quizzes.delete_one.assert_called_with({"_id": "quiz-1"})


class TestMongoAttemptRepository:
    """Tests for MongoAttemptRepository."""

    def test_create_attempt(self, stored_attempt_factory):
        mock_db = MagicMock()

        MongoAttemptRepository(mock_db).create(stored_attempt_factory("attempt-1", "student-1"))

        call_args = mock_db.quiz_attempts.insert_one.call_args[0][0]
        assert call_args["_id"] == "attempt-1"
        assert call_args["student_id"] == "student-1"
        assert call_args["analysis"]["overall_summary"]["score"] == 3

    def test_duplicate_key_is_duplicate_submission(self, stored_attempt_factory):
        mock_db = MagicMock()
        mock_db.quiz_attempts.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(DuplicateSubmissionError):
            MongoAttemptRepository(mock_db).create(stored_attempt_factory("attempt-1", "student-1"))

    def test_get_for_student_scopes_by_owner(self):
        mock_db = MagicMock()
        mock_db.quiz_attempts.find_one.return_value = None

        assert MongoAttemptRepository(mock_db).get_for_student("attempt-1", "student-2") is None
        mock_db.quiz_attempts.find_one.assert_called_with({"_id": "attempt-1", "student_id": "student-2"})

    def test_find_by_student_and_quiz(self, stored_attempt_factory):
        mock_db = MagicMock()
        mock_db.quiz_attempts.find_one.return_value = stored_attempt_factory("attempt-1", "student-1").to_dict()

        attempt = MongoAttemptRepository(mock_db).find_by_student_and_quiz("student-1", "quiz-1")

        assert attempt.id == "attempt-1"
        mock_db.quiz_attempts.find_one.assert_called_with({"student_id": "student-1", "quiz_id": "quiz-1"})


def test_ensure_indexes_declares_unique_attempt_pair():
    mock_db = MagicMock()

    ensure_indexes(mock_db)

    attempt_calls = mock_db.quiz_attempts.create_index.call_args_list
    unique = [c for c in attempt_calls if c.kwargs.get("unique")]
    assert len(unique) == 1
    assert unique[0].args[0] == [("student_id", 1), ("quiz_id", 1)]
    code_call = mock_db.quizzes.create_index.call_args_list[0]
    assert code_call.args[0] == [("quiz_code", 1)]
    assert code_call.kwargs["unique"] is True
    mock_db.users.create_index.assert_called_once()
