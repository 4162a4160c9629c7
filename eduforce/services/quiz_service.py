import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from eduforce.domain.errors import (
    AttemptNotFoundError,
    ForbiddenError,
    InvalidQuizDataError,
    QuizCodeCollisionError,
    QuizNotFoundError,
)
from eduforce.domain.models.api_models import AttemptOverview, GenerateQuizRequest, UpdateQuizRequest
from eduforce.domain.models.db_models import (
    DEFAULT_QUIZ_INSTRUCTIONS,
    Question,
    Quiz,
    QuizAttempt,
    StudentQuizView,
    User,
    UserRole,
)
from eduforce.domain.repositories import IAttemptRepository, IQuizRepository, IUserRepository
from eduforce.infrastructure.config import settings
from eduforce.services.quiz_generator import (
    QuizGenerator,
    question_problems,
    resolve_question_count,
    to_question_dicts,
)
from eduforce.utils.pdf_utils import extract_text_from_pdf
from eduforce.utils.quiz_codes import generate_quiz_code
from ef_utils.logger_utils import logger


class QuizService:
    """Teacher-side quiz operations: generation from PDF, management, reports."""

    def __init__(
        self,
        quizzes: IQuizRepository,
        attempts: IAttemptRepository,
        users: IUserRepository,
        generator: QuizGenerator,
    ):
        self.quizzes = quizzes
        self.attempts = attempts
        self.users = users
        self.generator = generator

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def create_quiz_from_pdf(self, teacher_id: str, request: GenerateQuizRequest) -> Quiz:
        """PDF -> text -> generated questions -> stored quiz with a fresh code."""
        num_questions = resolve_question_count(request.num_questions)
        text = extract_text_from_pdf(request.pdf_base64, max_bytes=settings.MAX_PDF_BYTES)
        generated = self.generator.generate(
            text,
            num_questions,
            subject=request.subject,
            topic=request.user_provided_topic,
        )

        now = datetime.now(timezone.utc)
        quiz = Quiz(
            _id=str(uuid.uuid4()),
            teacher_id=teacher_id,
            quiz_title=(generated.quiz_title or "").strip() or f"{request.subject} Quiz",
            subject=request.subject,
            user_provided_topic=request.user_provided_topic,
            quiz_code=generate_quiz_code(settings.QUIZ_CODE_LENGTH),
            quiz_instructions=(generated.quiz_instructions or "").strip() or DEFAULT_QUIZ_INSTRUCTIONS,
            published=True,
            questions=to_question_dicts(generated.questions),
            created_at=now,
            updated_at=now,
        )
        self._insert_with_unique_code(quiz)
        logger.info(f"Quiz {quiz.id} generated for teacher {teacher_id} with {len(quiz.questions)} questions")
        return quiz

    def _insert_with_unique_code(self, quiz: Quiz) -> None:
        for attempt_number in range(1, settings.QUIZ_CODE_MAX_ATTEMPTS + 1):
            try:
                self.quizzes.create(quiz)
                return
            except QuizCodeCollisionError:
                if attempt_number == settings.QUIZ_CODE_MAX_ATTEMPTS:
                    raise
                logger.warning(f"Quiz code {quiz.quiz_code} already taken; generating a new one")
                quiz.quiz_code = generate_quiz_code(settings.QUIZ_CODE_LENGTH)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_teacher_quizzes(self, teacher_id: str) -> List[Quiz]:
        return self.quizzes.list_by_teacher(teacher_id)

    def _owned_quiz(self, quiz_id: str, teacher_id: str) -> Quiz:
        quiz = self.quizzes.get_by_id(quiz_id)
        if quiz is None:
            raise QuizNotFoundError()
        if quiz.teacher_id != teacher_id:
            raise ForbiddenError("Access denied: You are not authorized to access this quiz.")
        return quiz

    def get_quiz_for_user(self, quiz_id: str, user: User) -> Union[Quiz, StudentQuizView]:
        """Full quiz for its owner; answer-stripped view for students."""
        quiz = self.quizzes.get_by_id(quiz_id)
        if quiz is None:
            raise QuizNotFoundError()

        if user.role == UserRole.TEACHER:
            if quiz.teacher_id != user.id:
                raise ForbiddenError("Access denied: You are not authorized to view this quiz.")
            return quiz

        if not quiz.published:
            raise ForbiddenError("Quiz is not published and therefore not accessible.")
        return quiz.to_student_view()

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    def update_quiz(self, quiz_id: str, teacher_id: str, request: UpdateQuizRequest) -> Quiz:
        quiz = self._owned_quiz(quiz_id, teacher_id)
        self._validate_questions(request.questions)

        quiz.quiz_title = request.quiz_title or quiz.quiz_title
        quiz.subject = request.subject or quiz.subject
        quiz.user_provided_topic = request.user_provided_topic or quiz.user_provided_topic
        quiz.quiz_instructions = request.quiz_instructions or quiz.quiz_instructions
        quiz.questions = request.questions
        if request.published is not None:
            quiz.published = request.published
        quiz.updated_at = datetime.now(timezone.utc)

        self.quizzes.update(quiz)
        return quiz

    @staticmethod
    def _validate_questions(questions: List[Question]) -> None:
        if not questions:
            raise InvalidQuizDataError(details=["a quiz needs at least one question"])

        problems = []
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            problems.append("question ids are not unique")
        for q in questions:
            if not q.question_text.strip():
                problems.append(f"question {q.id} has no text")
            problems.extend(question_problems(q.id, [o.id for o in q.options], q.correct_answer_id))
        if problems:
            raise InvalidQuizDataError(details=problems)

    def set_published(self, quiz_id: str, teacher_id: str, published: bool) -> Quiz:
        quiz = self._owned_quiz(quiz_id, teacher_id)
        quiz.published = published
        quiz.updated_at = datetime.now(timezone.utc)
        self.quizzes.update(quiz)
        logger.info(f"Quiz {quiz_id} published={published}")
        return quiz

    def delete_quiz(self, quiz_id: str, teacher_id: str) -> None:
        self._owned_quiz(quiz_id, teacher_id)
        self.quizzes.delete(quiz_id)
        logger.info(f"Quiz {quiz_id} deleted by teacher {teacher_id}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def list_quiz_attempts(self, quiz_id: str, teacher_id: str) -> List[AttemptOverview]:
        """Attempt summaries for one quiz, joined with student name and email."""
        quiz = self.quizzes.get_by_id(quiz_id)
        if quiz is None or quiz.teacher_id != teacher_id:
            raise QuizNotFoundError("Quiz not found or you are not authorized to view reports for this quiz.")

        students: Dict[str, Optional[User]] = {}
        overview = []
        for attempt in self.attempts.list_by_quiz(quiz_id):
            if attempt.student_id not in students:
                students[attempt.student_id] = self.users.get_by_id(attempt.student_id)
            student = students[attempt.student_id]
            overview.append(AttemptOverview(
                id=attempt.id,
                student_id=attempt.student_id,
                student_name=student.full_name if student else "Unknown Student",
                student_email=student.email if student else "N/A",
                quiz_title=attempt.quiz_title,
                quiz_subject=attempt.quiz_subject,
                quiz_topic=attempt.quiz_topic,
                score=attempt.score,
                total_questions=attempt.total_questions,
                percentage=attempt.percentage,
                is_suspicious=attempt.is_suspicious,
                submitted_at=attempt.submitted_at,
                analysis=attempt.analysis,
            ))
        return overview

    def get_attempt_for_teacher(self, attempt_id: str, teacher_id: str) -> QuizAttempt:
        attempt = self.attempts.get_by_id(attempt_id)
        if attempt is None:
            raise AttemptNotFoundError("Quiz attempt not found.")
        quiz = self.quizzes.get_by_id(attempt.quiz_id)
        if quiz is None or quiz.teacher_id != teacher_id:
            raise ForbiddenError("Access denied: You are not authorized to view this quiz attempt report.")
        return attempt
