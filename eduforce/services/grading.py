from dataclasses import dataclass
from typing import Dict, List, Sequence, Set

from eduforce.domain.models.api_models import SubmittedAnswer
from eduforce.domain.models.db_models import AnsweredQuestion, Question


@dataclass
class GradeResult:
    answers: List[AnsweredQuestion]
    score: int
    total_questions: int
    percentage: float


def grade_answers(questions: Sequence[Question], answers: Sequence[SubmittedAnswer]) -> GradeResult:
    """
    Grade submitted answers against the quiz's answer key.

    Output follows the submission order. Answers pointing at a question id
    the quiz does not have are kept and marked incorrect. A question is only
    scored on its first answer, so the score never exceeds the question count.
    """
    answer_key: Dict[str, str] = {q.id: q.correct_answer_id for q in questions}

    score = 0
    graded: List[AnsweredQuestion] = []
    seen: Set[str] = set()
    for submitted in answers:
        correct_id = answer_key.get(submitted.question_id)
        is_correct = (
            submitted.question_id not in seen
            and correct_id is not None
            and correct_id == submitted.selected_option_id
        )
        seen.add(submitted.question_id)
        if is_correct:
            score += 1
        graded.append(
            AnsweredQuestion(
                question_id=submitted.question_id,
                selected_option_id=submitted.selected_option_id,
                is_correct=is_correct,
            )
        )

    total_questions = len(questions)
    percentage = (score / total_questions) * 100 if total_questions > 0 else 0.0
    return GradeResult(answers=graded, score=score, total_questions=total_questions, percentage=percentage)
