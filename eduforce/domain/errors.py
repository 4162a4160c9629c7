"""
Custom application-specific exceptions.

Every error carries the HTTP status it maps to and a message that is safe to
show to the user.
"""
from typing import Any, Optional


class BaseAppException(Exception):
    """Base exception for the application."""
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


# --- 400 ---

class InvalidInputError(BaseAppException):
    """Raised when a request is missing required data or is malformed."""
    status_code = 400
    default_message = "Invalid input."


class InvalidDocumentError(InvalidInputError):
    """Raised when an uploaded PDF cannot be decoded or loaded."""
    default_message = "The uploaded file is not a valid PDF, is corrupted, or cannot be processed."


class NoExtractableTextError(InvalidInputError):
    """Raised when a PDF contains no text layer (e.g. a scanned document)."""
    default_message = (
        "Could not extract meaningful text from the PDF. "
        "The PDF might be image-based (scanned) or empty."
    )


class InvalidSubmissionError(InvalidInputError):
    """Raised when a quiz submission is missing quizId or a valid answers list."""
    default_message = "Invalid quiz submission data: missing quizId or answers array."


class InvalidQuizDataError(InvalidInputError):
    """Raised when teacher-supplied quiz data breaks the question invariants."""
    default_message = "Invalid quiz data provided."


# --- 401 / 403 ---

class AuthenticationError(BaseAppException):
    status_code = 401
    default_message = "Authentication required."


class ForbiddenError(BaseAppException):
    status_code = 403
    default_message = "Access denied."


# --- 404 ---

class NotFoundError(BaseAppException):
    status_code = 404
    default_message = "Not found."


class QuizNotFoundError(NotFoundError):
    default_message = "Quiz not found."


class QuizUnavailableError(NotFoundError):
    """Raised when a quiz does not exist or is not published."""
    default_message = "Quiz not found or not currently published."


class AttemptNotFoundError(NotFoundError):
    """Raised when an attempt does not exist or does not belong to the caller."""
    default_message = "Quiz attempt report not found or you are not authorized to view it."


class UserNotFoundError(NotFoundError):
    default_message = "User not found."


# --- 409 ---

class ConflictError(BaseAppException):
    status_code = 409
    default_message = "Conflict."


class DuplicateSubmissionError(ConflictError):
    """Raised when a student already has an attempt for a quiz."""
    default_message = "You have already completed this quiz. Re-attempts are not permitted."


class QuizCodeCollisionError(ConflictError):
    """Raised when a generated quiz code is already taken."""
    default_message = "Quiz code already in use."


class EmailAlreadyRegisteredError(ConflictError):
    default_message = "User with that email already exists."


# --- 502 ---

class UpstreamFailureError(BaseAppException):
    """Raised when an external service (AI provider, PDF library) fails."""
    status_code = 502
    default_message = "An upstream service failed. Please try again."


class AIClientError(UpstreamFailureError):
    """Raised for errors related to the AI client."""
    default_message = "The AI service failed to process the request."


class GenerationFailedError(UpstreamFailureError):
    default_message = "Failed to generate the quiz. Please try again."


class MalformedGenerationOutputError(UpstreamFailureError):
    default_message = (
        "The AI model could not generate valid questions from the provided text. "
        "Please try different content or parameters."
    )


class AnalysisFailedError(UpstreamFailureError):
    default_message = "Failed to generate the quiz analysis. Please try again."


class MalformedAnalysisOutputError(UpstreamFailureError):
    default_message = "The AI analysis response was not in a valid format."
