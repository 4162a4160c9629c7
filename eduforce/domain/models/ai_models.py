"""
Expected shapes of structured model output.

The model answers in camelCase JSON; these schemas accept it (or snake_case)
and are converted into the storage models by the services.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .db_models import Difficulty


class _ModelOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class GeneratedOption(_ModelOutput):
    id: str
    text: str


class GeneratedQuestion(_ModelOutput):
    id: str
    question_text: str = Field(..., alias="questionText")
    options: List[GeneratedOption]
    correct_answer_id: str = Field(..., alias="correctAnswerId")
    explanation: Optional[str] = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: Optional[str] = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value):
        if isinstance(value, str):
            for level in Difficulty:
                if level.value.lower() == value.strip().lower():
                    return level
        return Difficulty.MEDIUM


class GeneratedQuiz(_ModelOutput):
    quiz_title: Optional[str] = Field(None, alias="quizTitle")
    quiz_instructions: Optional[str] = Field(None, alias="quizInstructions")
    questions: List[GeneratedQuestion] = Field(default_factory=list)


class GeneratedOverallSummary(_ModelOutput):
    message: str = ""


class GeneratedStrength(_ModelOutput):
    topic: str
    performance: str = ""


class GeneratedImprovementArea(_ModelOutput):
    topic: str
    suggestion: str = ""


class GeneratedAnalysis(_ModelOutput):
    """Prose parts of the analysis; numbers and feedback are computed locally."""
    overall_summary: GeneratedOverallSummary = Field(..., alias="overallSummary")
    strengths: List[GeneratedStrength] = Field(default_factory=list)
    areas_for_improvement: List[GeneratedImprovementArea] = Field(
        default_factory=list, alias="areasForImprovement"
    )
