from abc import ABC, abstractmethod
from typing import List, Optional
from ..models.db_models import Quiz, QuizAttempt, User


class IUserRepository(ABC):
    """Interface for a user repository."""
    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def create(self, user: User) -> None:
        pass

    @abstractmethod
    def update(self, user: User) -> None:
        pass


class IQuizRepository(ABC):
    """Interface for a quiz repository."""
    @abstractmethod
    def create(self, quiz: Quiz) -> None:
        pass

    @abstractmethod
    def get_by_id(self, quiz_id: str) -> Optional[Quiz]:
        pass

    @abstractmethod
    def get_by_code(self, quiz_code: str, published_only: bool = True) -> Optional[Quiz]:
        pass

    @abstractmethod
    def list_by_teacher(self, teacher_id: str) -> List[Quiz]:
        pass

    @abstractmethod
    def list_published(self) -> List[Quiz]:
        pass

    @abstractmethod
    def update(self, quiz: Quiz) -> None:
        pass

    @abstractmethod
    def delete(self, quiz_id: str) -> bool:
        pass


class IAttemptRepository(ABC):
    """Interface for a quiz attempt repository."""
    @abstractmethod
    def create(self, attempt: QuizAttempt) -> None:
        pass

    @abstractmethod
    def get_by_id(self, attempt_id: str) -> Optional[QuizAttempt]:
        pass

    @abstractmethod
    def find_by_student_and_quiz(self, student_id: str, quiz_id: str) -> Optional[QuizAttempt]:
        pass

    @abstractmethod
    def get_for_student(self, attempt_id: str, student_id: str) -> Optional[QuizAttempt]:
        pass

    @abstractmethod
    def list_by_student(self, student_id: str) -> List[QuizAttempt]:
        pass

    @abstractmethod
    def list_by_quiz(self, quiz_id: str) -> List[QuizAttempt]:
        pass
