import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from eduforce.domain.errors import AttemptNotFoundError, DuplicateSubmissionError, QuizUnavailableError
from eduforce.domain.models.api_models import SubmitAttemptRequest
from eduforce.domain.models.db_models import Quiz, QuizAttempt, StudentQuizView
from eduforce.domain.repositories import IAttemptRepository, IQuizRepository
from eduforce.services.attempt_analyzer import AttemptAnalyzer
from eduforce.services.grading import grade_answers
from ef_utils.logger_utils import logger


class AttemptService:
    """Student-side operations: taking a quiz, submitting once, reading reports."""

    def __init__(self, quizzes: IQuizRepository, attempts: IAttemptRepository, analyzer: AttemptAnalyzer):
        self.quizzes = quizzes
        self.attempts = attempts
        self.analyzer = analyzer

    def list_published_quizzes(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": quiz.id,
                "quiz_title": quiz.quiz_title,
                "subject": quiz.subject,
                "user_provided_topic": quiz.user_provided_topic,
                "quiz_code": quiz.quiz_code,
                "question_count": len(quiz.questions),
                "created_at": quiz.created_at.isoformat(),
            }
            for quiz in self.quizzes.list_published()
        ]

    def _published_quiz_by_code(self, quiz_code: str) -> Quiz:
        quiz = self.quizzes.get_by_code(quiz_code.strip().upper(), published_only=True)
        if quiz is None:
            raise QuizUnavailableError("Quiz not found or not currently published with this code.")
        return quiz

    def get_quiz_for_taking(self, quiz_code: str, student_id: str) -> StudentQuizView:
        quiz = self._published_quiz_by_code(quiz_code)
        if self.attempts.find_by_student_and_quiz(student_id, quiz.id) is not None:
            raise DuplicateSubmissionError()
        return quiz.to_student_view()

    def check_attempt_status(self, quiz_code: str, student_id: str) -> Dict[str, Any]:
        quiz = self.quizzes.get_by_code(quiz_code.strip().upper(), published_only=True)
        if quiz is None:
            return {"has_attempted": False, "quiz_found": False, "message": "Quiz not found or not published."}

        existing = self.attempts.find_by_student_and_quiz(student_id, quiz.id)
        if existing is not None:
            return {"has_attempted": True, "quiz_found": True, "last_attempt_id": existing.id}
        return {"has_attempted": False, "quiz_found": True}

    def submit_attempt(self, student_id: str, request: SubmitAttemptRequest) -> QuizAttempt:
        """
        Grade, analyse and store a submission.

        The duplicate check runs before any grading or AI work. The insert
        itself is guarded by the unique (student, quiz) index, so a submission
        racing past the check still ends in DuplicateSubmissionError.
        """
        quiz = self.quizzes.get_by_id(request.quiz_id)
        if quiz is None or not quiz.published:
            raise QuizUnavailableError("Quiz not found or not available for submission.")

        if self.attempts.find_by_student_and_quiz(student_id, quiz.id) is not None:
            raise DuplicateSubmissionError("Duplicate submission detected: You have already completed this quiz.")

        grade = grade_answers(quiz.questions, request.answers)
        logger.info(
            f"Graded attempt for quiz {quiz.id}: {grade.score}/{grade.total_questions}",
            extra={"student_id": student_id},
        )

        analysis = self.analyzer.analyze(
            quiz.questions,
            grade.answers,
            grade.score,
            grade.total_questions,
            is_suspicious=request.is_suspicious,
            events=request.proctoring_events,
        )

        attempt = QuizAttempt(
            _id=str(uuid.uuid4()),
            student_id=student_id,
            quiz_id=quiz.id,
            quiz_title=quiz.quiz_title,
            quiz_subject=quiz.subject,
            quiz_topic=quiz.user_provided_topic,
            answers=grade.answers,
            score=grade.score,
            total_questions=grade.total_questions,
            percentage=grade.percentage,
            submitted_at=datetime.now(timezone.utc),
            analysis=analysis,
            proctoring_events=request.proctoring_events,
            is_suspicious=request.is_suspicious,
        )
        self.attempts.create(attempt)
        return attempt

    def list_student_attempts(self, student_id: str) -> List[Dict[str, Any]]:
        return [
            attempt.model_dump(
                mode="json",
                include={
                    "id", "quiz_id", "quiz_title", "quiz_subject", "quiz_topic", "score",
                    "total_questions", "percentage", "submitted_at", "is_suspicious",
                },
            )
            for attempt in self.attempts.list_by_student(student_id)
        ]

    def get_attempt_report(self, attempt_id: str, student_id: str) -> Dict[str, Any]:
        """The student's own attempt with the quiz's questions joined in for display."""
        attempt = self.attempts.get_for_student(attempt_id, student_id)
        if attempt is None:
            raise AttemptNotFoundError()

        report = attempt.model_dump(mode="json")
        quiz = self.quizzes.get_by_id(attempt.quiz_id)
        report["quiz"] = (
            {
                "id": quiz.id,
                "quiz_title": quiz.quiz_title,
                "questions": [q.model_dump(mode="json") for q in quiz.questions],
            }
            if quiz is not None
            else None
        )
        return report
