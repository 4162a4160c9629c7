from typing import Any, List, Optional

from eduforce.domain.errors import (
    AIClientError,
    GenerationFailedError,
    InvalidInputError,
    MalformedGenerationOutputError,
)
from eduforce.domain.models.ai_models import GeneratedQuestion, GeneratedQuiz
from eduforce.infrastructure.config import settings
from eduforce.utils.model_output import parse_model_output
from ef_utils.ai_safety import create_safety_guard_prompt
from ef_utils.logger_utils import logger
from ef_utils.retry_utils import build_retrying

OPTIONS_PER_QUESTION = 4


def resolve_question_count(value: Any) -> int:
    """
    Turn the requested question count into the number actually asked for.

    Missing -> configured default; out-of-range integers are clamped to the
    configured bounds; anything that is not an integer is rejected.
    """
    if value is None:
        return settings.QUIZ_DEFAULT_QUESTIONS

    if isinstance(value, bool):
        raise InvalidInputError("numQuestions must be a whole number.")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidInputError("numQuestions must be a whole number.")

    if value < settings.QUIZ_MIN_QUESTIONS:
        logger.warning(f"Requested {value} questions; raising to minimum of {settings.QUIZ_MIN_QUESTIONS}.")
        return settings.QUIZ_MIN_QUESTIONS
    if value > settings.QUIZ_MAX_QUESTIONS:
        logger.warning(f"Requested {value} questions; capping at {settings.QUIZ_MAX_QUESTIONS}.")
        return settings.QUIZ_MAX_QUESTIONS
    return value


def question_problems(question_id: str, option_ids: List[str], correct_answer_id: str) -> List[str]:
    """Invariant violations for one question; empty when the question is sound."""
    problems = []
    if len(option_ids) != OPTIONS_PER_QUESTION:
        problems.append(f"question {question_id} has {len(option_ids)} options, expected {OPTIONS_PER_QUESTION}")
    if len(set(option_ids)) != len(option_ids):
        problems.append(f"question {question_id} has duplicate option ids")
    if option_ids.count(correct_answer_id) != 1:
        problems.append(f"question {question_id} correct answer '{correct_answer_id}' is not one of its options")
    return problems


def validate_generated_quiz(quiz: GeneratedQuiz) -> List[str]:
    problems: List[str] = []
    if not quiz.questions:
        return ["no questions were generated"]

    question_ids = [q.id for q in quiz.questions]
    if len(set(question_ids)) != len(question_ids):
        problems.append("question ids are not unique")

    for question in quiz.questions:
        if not question.question_text.strip():
            problems.append(f"question {question.id} has no text")
        problems.extend(
            question_problems(question.id, [o.id for o in question.options], question.correct_answer_id)
        )
    return problems


def _title_hint(subject: str, topic: str) -> str:
    if subject or topic:
        return (
            f"A concise title for a quiz related to '{subject or 'General'}' "
            f"on the topic of '{topic or 'the provided text'}'"
        )
    return "A concise title for the quiz based on the content"


def build_quiz_prompt(num_questions: int, subject: str = "", topic: str = "") -> str:
    return f"""
    Generate exactly {num_questions} distinct multiple-choice questions (MCQs) in JSON format based on the text.
    Ensure each question has {OPTIONS_PER_QUESTION} options, only one of which is correct.
    For each question, provide a unique ID, the question text, an array of options (each with an ID and text),
    the correctAnswerId (referencing the correct option's ID), a brief explanation, its difficulty level
    (Easy, Medium, Hard), and the specific topic it covers.

    The overall JSON structure should be:
    {{
      "quizTitle": "{_title_hint(subject, topic)}",
      "quizInstructions": "Answer carefully based on the provided text.",
      "questions": [
        {{
          "id": "q1",
          "questionText": "Your question here?",
          "options": [
            {{ "id": "q1_optionA", "text": "Option A text" }},
            {{ "id": "q1_optionB", "text": "Option B text" }},
            {{ "id": "q1_optionC", "text": "Option C text" }},
            {{ "id": "q1_optionD", "text": "Option D text" }}
          ],
          "correctAnswerId": "q1_optionB",
          "explanation": "Brief explanation for the correct answer.",
          "difficulty": "Medium",
          "topic": "Specific topic or concept covered by the question"
        }}
      ]
    }}

    Make sure the entire output is a valid JSON object. Do NOT include any text outside the JSON.
    The quizTitle should be derived by you from the text and any subject/topic hints.
    """


class QuizGenerator:
    """Turns extracted document text into a validated multiple-choice quiz."""

    def __init__(self, ai_client, max_attempts: Optional[int] = None):
        self.ai_client = ai_client
        self.max_attempts = max_attempts or settings.QUIZ_GENERATION_MAX_ATTEMPTS

    def generate(
        self,
        text: str,
        num_questions: Any = None,
        subject: str = "",
        topic: str = "",
    ) -> GeneratedQuiz:
        if not text or not text.strip():
            raise InvalidInputError("No text content provided for MCQ generation.")

        requested = resolve_question_count(num_questions)
        prompt = create_safety_guard_prompt(
            prompt=build_quiz_prompt(requested, subject, topic),
            context=text,
        )
        logger.info(f"Generating {requested} questions", extra={"subject": subject, "topic": topic})

        # Malformed output is regenerated; upstream failures are not.
        for attempt in build_retrying(self.max_attempts, (MalformedGenerationOutputError,), backoff=0):
            with attempt:
                quiz = self._generate_once(prompt)

        if len(quiz.questions) != requested:
            logger.warning(
                f"Model generated {len(quiz.questions)} questions, but {requested} were requested."
            )
        return quiz

    def _generate_once(self, prompt: str) -> GeneratedQuiz:
        try:
            raw = self.ai_client.generate(prompt, require_json=True)
        except AIClientError as e:
            raise GenerationFailedError() from e

        quiz = parse_model_output(raw, GeneratedQuiz, MalformedGenerationOutputError)
        problems = validate_generated_quiz(quiz)
        if problems:
            logger.error("Generated quiz failed validation", extra={"problems": problems})
            raise MalformedGenerationOutputError()
        return quiz


def to_question_dicts(questions: List[GeneratedQuestion]) -> List[dict]:
    """Generated questions in the storage shape expected by `Question`."""
    return [
        {
            "id": q.id,
            "question_text": q.question_text.strip(),
            "options": [{"id": o.id, "text": o.text} for o in q.options],
            "correct_answer_id": q.correct_answer_id,
            "explanation": q.explanation or "",
            "difficulty": q.difficulty,
            "topic": q.topic or "",
        }
        for q in questions
    ]
