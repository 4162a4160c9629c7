import json
from typing import List, Sequence

from eduforce.domain.errors import AIClientError, AnalysisFailedError, MalformedAnalysisOutputError
from eduforce.domain.models.ai_models import GeneratedAnalysis
from eduforce.domain.models.db_models import (
    AnsweredQuestion,
    AttemptAnalysis,
    ImprovementArea,
    OverallSummary,
    ProctoringEvent,
    ProctoringStatus,
    Question,
    QuestionFeedback,
    TopicStrength,
)
from eduforce.utils.model_output import parse_model_output
from ef_utils.logger_utils import logger

NO_ANSWER = "No answer"
NOT_AVAILABLE = "N/A"
QUESTION_NOT_FOUND = "Question not found"


def build_question_feedback(
    questions: Sequence[Question],
    graded_answers: Sequence[AnsweredQuestion],
) -> List[QuestionFeedback]:
    """Per-question feedback computed from the quiz and the graded answers."""
    by_id = {q.id: q for q in questions}
    feedback = []
    for answer in graded_answers:
        question = by_id.get(answer.question_id)
        if question is None:
            logger.warning(f"Question with ID {answer.question_id} not found in quiz data.")
            feedback.append(
                QuestionFeedback(
                    question_id=answer.question_id,
                    question_text=QUESTION_NOT_FOUND,
                    selected_answer=NO_ANSWER,
                    correct_answer=NOT_AVAILABLE,
                    is_correct=answer.is_correct,
                )
            )
            continue

        feedback.append(
            QuestionFeedback(
                question_id=answer.question_id,
                question_text=question.question_text,
                selected_answer=question.option_text(answer.selected_option_id) or NO_ANSWER,
                correct_answer=question.option_text(question.correct_answer_id) or NOT_AVAILABLE,
                is_correct=answer.is_correct,
                explanation=question.explanation,
                difficulty=question.difficulty,
                topic=question.topic,
            )
        )
    return feedback


def describe_proctoring(is_suspicious: bool, events: Sequence[ProctoringEvent]) -> str:
    if not is_suspicious:
        return "No suspicious activity detected."
    text = "Suspicious activity was detected during the quiz. Please review the proctoring log."
    if events:
        described = ", ".join(
            f"{e.event_type.value} at {e.timestamp.strftime('%H:%M:%S')}" for e in events
        )
        text += f" Events: {described}"
    return text


def _question_context(questions: Sequence[Question]) -> str:
    return json.dumps([q.model_dump(mode="json") for q in questions], ensure_ascii=False)


def build_analysis_prompt(
    questions: Sequence[Question],
    graded_answers: Sequence[AnsweredQuestion],
    score: int,
    total_questions: int,
    percentage: float,
    is_suspicious: bool,
    events: Sequence[ProctoringEvent],
    proctoring_feedback: str,
) -> str:
    answers_json = json.dumps([a.model_dump(mode="json") for a in graded_answers], ensure_ascii=False)
    events_json = json.dumps([e.model_dump(mode="json") for e in events], ensure_ascii=False)
    return f"""
    You are an intelligent assistant that writes feedback on a student's quiz attempt.
    Based on the quiz questions, the student's graded answers, the score and any proctoring flags,
    write a report in JSON format.

    The report should include:
    1. Summary: overall performance with a short encouraging message.
    2. Strengths: topics or difficulty levels where the student performed well.
    3. Areas for Improvement: topics where the student struggled, with specific suggestions.
    4. Question-level Feedback: for each question, whether it was correct and why.
    5. Proctoring Analysis: a summary and recommendation if suspicious activity was detected.

    The JSON structure should be:
    {{
      "overallSummary": {{
        "score": {score},
        "totalQuestions": {total_questions},
        "percentage": {percentage:.2f},
        "message": "Excellent performance!"
      }},
      "strengths": [
        {{ "topic": "Topic A", "performance": "Strong" }}
      ],
      "areasForImprovement": [
        {{ "topic": "Topic B", "suggestion": "Review concepts on X and Y." }}
      ],
      "questionFeedback": [],
      "proctoringStatus": {{
        "isSuspicious": {json.dumps(is_suspicious)},
        "feedback": {json.dumps(proctoring_feedback)}
      }}
    }}

    Return only the JSON object.

    Student's Score: {score}/{total_questions}
    Student's Answers (questionId, selectedOptionId, isCorrect): {answers_json}
    Original Quiz Questions: {_question_context(questions)}
    Proctoring Detected Suspicious Activity: {json.dumps(is_suspicious)}
    Proctoring Events: {events_json}
    """


class AttemptAnalyzer:
    """
    Produces the narrative report for a graded attempt.

    Only the prose comes from the model. Scores, per-question feedback and the
    proctoring block are always the locally computed values.
    """

    def __init__(self, ai_client):
        self.ai_client = ai_client

    def analyze(
        self,
        questions: Sequence[Question],
        graded_answers: Sequence[AnsweredQuestion],
        score: int,
        total_questions: int,
        is_suspicious: bool = False,
        events: Sequence[ProctoringEvent] = (),
    ) -> AttemptAnalysis:
        if not questions:
            raise AnalysisFailedError("Quiz questions are required for analysis.")

        percentage = (score / total_questions) * 100 if total_questions > 0 else 0.0
        proctoring_feedback = describe_proctoring(is_suspicious, events)
        prompt = build_analysis_prompt(
            questions, graded_answers, score, total_questions, percentage,
            is_suspicious, events, proctoring_feedback,
        )

        try:
            raw = self.ai_client.generate(prompt, require_json=True)
        except AIClientError as e:
            raise AnalysisFailedError() from e

        generated = parse_model_output(raw, GeneratedAnalysis, MalformedAnalysisOutputError)

        return AttemptAnalysis(
            overall_summary=OverallSummary(
                score=score,
                total_questions=total_questions,
                percentage=percentage,
                message=generated.overall_summary.message,
            ),
            strengths=[TopicStrength(topic=s.topic, performance=s.performance) for s in generated.strengths],
            areas_for_improvement=[
                ImprovementArea(topic=a.topic, suggestion=a.suggestion)
                for a in generated.areas_for_improvement
            ],
            question_feedback=build_question_feedback(questions, graded_answers),
            proctoring_status=ProctoringStatus(is_suspicious=is_suspicious, feedback=proctoring_feedback),
        )
