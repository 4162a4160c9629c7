from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional, Union

from .db_models import AttemptAnalysis, ProctoringEvent, Question, UserRole


class BaseRequest(BaseModel):
    """Base model for API requests. Accepts camelCase or snake_case keys."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# --- Auth ---

class RegisterRequest(BaseRequest):
    full_name: str = Field(..., min_length=1, alias="fullName")
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: UserRole


class LoginRequest(BaseRequest):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UpdateProfileRequest(BaseRequest):
    full_name: Optional[str] = Field(None, min_length=1, alias="fullName")
    email: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    date_of_birth: Optional[Union[datetime, str]] = Field(None, alias="dateOfBirth")
    bio: Optional[str] = Field(None, max_length=500)
    interests: Optional[Union[List[str], str]] = None


class ChangePasswordRequest(BaseRequest):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=6, alias="newPassword")


# --- Teacher quiz management ---

class GenerateQuizRequest(BaseRequest):
    """Request model for the quiz generation endpoint."""
    pdf_base64: str = Field(..., min_length=1, alias="pdfBase64")
    # Left untyped so resolve_question_count sees booleans and strings as sent.
    num_questions: Any = Field(None, alias="numQuestions")
    subject: str = Field(..., min_length=1)
    user_provided_topic: str = Field(..., min_length=1, alias="userProvidedTopic")


class UpdateQuizRequest(BaseRequest):
    quiz_title: Optional[str] = Field(None, alias="quizTitle")
    subject: Optional[str] = None
    user_provided_topic: Optional[str] = Field(None, alias="userProvidedTopic")
    quiz_instructions: Optional[str] = Field(None, alias="quizInstructions")
    questions: List[Question]
    published: Optional[bool] = None


class PublishRequest(BaseRequest):
    published: bool


# --- Student submissions ---

class SubmittedAnswer(BaseRequest):
    question_id: str = Field(..., alias="questionId")
    selected_option_id: Optional[str] = Field(None, alias="selectedOptionId")


class SubmitAttemptRequest(BaseRequest):
    quiz_id: str = Field(..., min_length=1, alias="quizId")
    answers: List[SubmittedAnswer]
    proctoring_events: List[ProctoringEvent] = Field(default_factory=list, alias="proctoringEvents")
    is_suspicious: bool = Field(False, alias="isSuspicious")

    @field_validator("proctoring_events", mode="before")
    @classmethod
    def _none_events(cls, value):
        return [] if value is None else value

    @field_validator("is_suspicious", mode="before")
    @classmethod
    def _none_flag(cls, value):
        return False if value is None else value

    @field_validator("answers")
    @classmethod
    def _one_answer_per_question(cls, value):
        ids = [a.question_id for a in value]
        if len(set(ids)) != len(ids):
            raise ValueError("each question may be answered only once")
        return value


# --- Responses ---

class AttemptOverview(BaseModel):
    """One row of a teacher's per-quiz attempt report."""
    id: str
    student_id: str
    student_name: str
    student_email: str
    quiz_title: str
    quiz_subject: str
    quiz_topic: str
    score: int
    total_questions: int
    percentage: float
    is_suspicious: bool
    submitted_at: datetime
    analysis: AttemptAnalysis
