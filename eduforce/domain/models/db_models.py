from pydantic import AliasChoices, BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ProctoringEventType(str, Enum):
    FULLSCREEN_EXIT = "fullscreen_exit"
    WINDOW_BLUR = "window_blur"
    COPY_PASTE_ATTEMPT = "copy_paste_attempt"
    OTHER_SUSPICIOUS_ACTIVITY = "other_suspicious_activity"


DEFAULT_QUIZ_INSTRUCTIONS = "Answer carefully based on the provided text."


def _utc_now():
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class User(BaseModel):
    """User model for authentication."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    full_name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.STUDENT
    # Optional profile fields
    phone_number: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    bio: Optional[str] = Field(None, max_length=500)
    interests: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        return self.model_dump(by_alias=True)

    def to_public_dict(self) -> dict:
        """Profile as returned by the API (no password hash)."""
        data = self.model_dump(mode="json", exclude={"password_hash"})
        return data


class QuizOption(BaseModel):
    id: str
    text: str


class Question(BaseModel):
    """A multiple-choice question embedded in a quiz."""
    id: str
    question_text: str = Field(..., validation_alias=AliasChoices("question_text", "questionText"))
    options: List[QuizOption]
    correct_answer_id: str = Field(..., validation_alias=AliasChoices("correct_answer_id", "correctAnswerId"))
    explanation: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    topic: str = ""

    def option_text(self, option_id: Optional[str]) -> Optional[str]:
        for option in self.options:
            if option.id == option_id:
                return option.text
        return None


class StudentQuestionView(BaseModel):
    """Question as shown to a student before submission: no answer key."""
    id: str
    question_text: str
    options: List[QuizOption]


class StudentQuizView(BaseModel):
    """Answer-stripped projection of a quiz for students."""
    id: str
    quiz_title: str
    quiz_instructions: str
    subject: str
    user_provided_topic: str
    quiz_code: str
    questions: List[StudentQuestionView]


class Quiz(BaseModel):
    """A generated quiz owned by a teacher."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    teacher_id: str
    quiz_title: str
    subject: str
    user_provided_topic: str
    quiz_code: str = Field(..., min_length=6, max_length=10)
    quiz_instructions: str = DEFAULT_QUIZ_INSTRUCTIONS
    published: bool = True
    questions: List[Question] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        return self.model_dump(by_alias=True)

    def to_student_view(self) -> StudentQuizView:
        return StudentQuizView(
            id=self.id,
            quiz_title=self.quiz_title,
            quiz_instructions=self.quiz_instructions,
            subject=self.subject,
            user_provided_topic=self.user_provided_topic,
            quiz_code=self.quiz_code,
            questions=[
                StudentQuestionView(id=q.id, question_text=q.question_text, options=q.options)
                for q in self.questions
            ],
        )


class AnsweredQuestion(BaseModel):
    question_id: str
    selected_option_id: Optional[str] = None
    is_correct: bool = False


class ProctoringEvent(BaseModel):
    timestamp: datetime = Field(default_factory=_utc_now)
    event_type: ProctoringEventType = Field(..., validation_alias=AliasChoices("event_type", "eventType"))
    description: Optional[str] = None


# --- AI analysis, stored with the attempt ---

class OverallSummary(BaseModel):
    score: int
    total_questions: int
    percentage: float
    message: str = ""


class TopicStrength(BaseModel):
    topic: str
    performance: str = ""


class ImprovementArea(BaseModel):
    topic: str
    suggestion: str = ""


class QuestionFeedback(BaseModel):
    question_id: str
    question_text: str
    selected_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str = ""
    difficulty: Optional[Difficulty] = None
    topic: str = ""


class ProctoringStatus(BaseModel):
    is_suspicious: bool = False
    feedback: str = ""


class AttemptAnalysis(BaseModel):
    overall_summary: OverallSummary
    strengths: List[TopicStrength] = Field(default_factory=list)
    areas_for_improvement: List[ImprovementArea] = Field(default_factory=list)
    question_feedback: List[QuestionFeedback] = Field(default_factory=list)
    proctoring_status: ProctoringStatus = Field(default_factory=ProctoringStatus)


class QuizAttempt(BaseModel):
    """A student's single graded submission for a quiz."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    student_id: str
    quiz_id: str
    # Denormalized at submission time
    quiz_title: str
    quiz_subject: str
    quiz_topic: str
    answers: List[AnsweredQuestion] = Field(default_factory=list)
    score: int = 0
    total_questions: int
    percentage: float = 0.0
    submitted_at: datetime = Field(default_factory=_utc_now)
    analysis: AttemptAnalysis
    proctoring_events: List[ProctoringEvent] = Field(default_factory=list)
    is_suspicious: bool = False

    def to_dict(self):
        """Convert model to dictionary for MongoDB."""
        return self.model_dump(by_alias=True)
