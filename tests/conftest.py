import os

# Set required environment variables before any application imports
os.environ.setdefault('SECRET_KEY', 'test-secret-key-0123456789abcdef0123456789')
os.environ.setdefault('MONGO_URI', 'mongodb://localhost:27017/test')
os.environ.setdefault('FLASK_ENV', 'testing')
os.environ.setdefault('GEMINI_API_KEY', 'test-gemini-key')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import bcrypt
import pytest

from eduforce.domain.errors import (
    DuplicateSubmissionError,
    EmailAlreadyRegisteredError,
    QuizCodeCollisionError,
)
from eduforce.domain.models.db_models import Quiz, QuizAttempt, User, UserRole
from eduforce.domain.repositories import IAttemptRepository, IQuizRepository, IUserRepository

TEST_PASSWORD = "secret123"


# --- In-memory repositories ---

class FakeUserRepository(IUserRepository):
    def __init__(self):
        self.users = {}

    def get_by_id(self, user_id):
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def get_by_email(self, email):
        for user in self.users.values():
            if user.email == email.strip().lower():
                return user.model_copy(deep=True)
        return None

    def create(self, user):
        if any(u.email == user.email for u in self.users.values()):
            raise EmailAlreadyRegisteredError()
        self.users[user.id] = user.model_copy(deep=True)

    def update(self, user):
        self.users[user.id] = user.model_copy(deep=True)


class FakeQuizRepository(IQuizRepository):
    def __init__(self):
        self.quizzes = {}

    def create(self, quiz):
        if any(q.quiz_code == quiz.quiz_code for q in self.quizzes.values()):
            raise QuizCodeCollisionError()
        self.quizzes[quiz.id] = quiz.model_copy(deep=True)

    def get_by_id(self, quiz_id):
        quiz = self.quizzes.get(quiz_id)
        return quiz.model_copy(deep=True) if quiz else None

    def get_by_code(self, code, published_only=True):
        for quiz in self.quizzes.values():
            if quiz.quiz_code == code.upper() and (quiz.published or not published_only):
                return quiz.model_copy(deep=True)
        return None

    def list_by_teacher(self, teacher_id):
        found = [q for q in self.quizzes.values() if q.teacher_id == teacher_id]
        return sorted(found, key=lambda q: q.created_at, reverse=True)

    def list_published(self):
        return [q for q in self.quizzes.values() if q.published]

    def update(self, quiz):
        self.quizzes[quiz.id] = quiz.model_copy(deep=True)

    def delete(self, quiz_id):
        return self.quizzes.pop(quiz_id, None) is not None


class FakeAttemptRepository(IAttemptRepository):
    """Enforces one attempt per (student, quiz) like the unique Mongo index."""

    def __init__(self):
        self.attempts = {}
        self._lock = threading.Lock()

    def create(self, attempt):
        with self._lock:
            if self._find(attempt.student_id, attempt.quiz_id) is not None:
                raise DuplicateSubmissionError()
            self.attempts[attempt.id] = attempt.model_copy(deep=True)

    def _find(self, student_id, quiz_id):
        for attempt in self.attempts.values():
            if attempt.student_id == student_id and attempt.quiz_id == quiz_id:
                return attempt
        return None

    def get_by_id(self, attempt_id):
        return self.attempts.get(attempt_id)

    def find_by_student_and_quiz(self, student_id, quiz_id):
        return self._find(student_id, quiz_id)

    def get_for_student(self, attempt_id, student_id):
        attempt = self.attempts.get(attempt_id)
        return attempt if attempt and attempt.student_id == student_id else None

    def list_by_student(self, student_id):
        found = [a for a in self.attempts.values() if a.student_id == student_id]
        return sorted(found, key=lambda a: a.submitted_at, reverse=True)

    def list_by_quiz(self, quiz_id):
        found = [a for a in self.attempts.values() if a.quiz_id == quiz_id]
        return sorted(found, key=lambda a: a.submitted_at)


# --- Builders ---

def make_questions(count=4):
    return [
        {
            "id": f"q{n}",
            "question_text": f"Question {n}?",
            "options": [{"id": f"q{n}_{letter}", "text": f"Option {letter.upper()} of {n}"} for letter in "abcd"],
            "correct_answer_id": f"q{n}_b",
            "explanation": f"B is right for {n}.",
            "difficulty": "Medium",
            "topic": "Topic A" if n % 2 else "Topic B",
        }
        for n in range(1, count + 1)
    ]


def make_quiz(**overrides):
    data = {
        "_id": "quiz-1",
        "teacher_id": "teacher-1",
        "quiz_title": "Photosynthesis Basics",
        "subject": "Biology",
        "user_provided_topic": "Photosynthesis",
        "quiz_code": "ABCD1234",
        "published": True,
        "questions": make_questions(),
    }
    data.update(overrides)
    return Quiz(**data)


def make_user(user_id, role, email=None, full_name="Test User"):
    return User(
        _id=user_id,
        full_name=full_name,
        email=email or f"{user_id}@example.com",
        password_hash=bcrypt.hashpw(TEST_PASSWORD.encode('utf-8'), bcrypt.gensalt(rounds=4)).decode('utf-8'),
        role=role,
    )


def analysis_json(message="Good effort!"):
    return (
        '{"overallSummary": {"score": 99, "totalQuestions": 99, "percentage": 99, "message": "%s"},'
        ' "strengths": [{"topic": "Topic A", "performance": "Strong"}],'
        ' "areasForImprovement": [{"topic": "Topic B", "suggestion": "Review B."}],'
        ' "questionFeedback": [{"questionId": "bogus"}],'
        ' "proctoringStatus": {"isSuspicious": true, "feedback": "made up"}}' % message
    )


# --- Fixtures ---

@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def quiz_repo():
    return FakeQuizRepository()


@pytest.fixture
def attempt_repo():
    return FakeAttemptRepository()


@pytest.fixture
def teacher():
    return make_user("teacher-1", UserRole.TEACHER, full_name="Ms. Teacher")


@pytest.fixture
def student():
    return make_user("student-1", UserRole.STUDENT, full_name="Sam Student")


@pytest.fixture
def sample_quiz():
    return make_quiz()


@pytest.fixture
def mock_db():
    """Provides a mocked MongoDB database."""
    return MagicMock()


@pytest.fixture
def ai_client():
    """AI client double; tests set `generate.return_value` / `side_effect`."""
    return MagicMock()


@pytest.fixture
def app(mock_db, ai_client):
    """Create and configure a new app instance for each test."""
    from app import create_app
    app = create_app(db=mock_db, ai_client=ai_client)
    app.config.update({"TESTING": True})
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def known_users(user_repo, teacher, student):
    """Routes resolve bearer tokens against an in-memory user store."""
    user_repo.create(teacher)
    user_repo.create(student)
    with patch('eduforce.api.routes_auth._user_repository', return_value=user_repo):
        yield user_repo


@pytest.fixture
def auth_header():
    from eduforce.services.auth_service import create_access_token

    def _header(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _header


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def stored_attempt_factory():
    """Builds a QuizAttempt without going through grading or analysis."""
    from eduforce.domain.models.db_models import AttemptAnalysis, OverallSummary

    def _build(attempt_id, student_id, quiz_id="quiz-1", score=3, total=4, **overrides):
        data = {
            "_id": attempt_id,
            "student_id": student_id,
            "quiz_id": quiz_id,
            "quiz_title": "Photosynthesis Basics",
            "quiz_subject": "Biology",
            "quiz_topic": "Photosynthesis",
            "answers": [],
            "score": score,
            "total_questions": total,
            "percentage": score / total * 100,
            "analysis": AttemptAnalysis(
                overall_summary=OverallSummary(score=score, total_questions=total, percentage=score / total * 100)
            ),
        }
        data.update(overrides)
        return QuizAttempt(**data)
    return _build


@pytest.fixture
def quiz_factory():
    return make_quiz


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def analysis_payload():
    return analysis_json
