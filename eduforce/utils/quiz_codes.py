import secrets
import string

QUIZ_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_quiz_code(length: int = 8) -> str:
    """Random uppercase alphanumeric code students type to open a quiz."""
    if not 6 <= length <= 10:
        raise ValueError("Quiz codes must be between 6 and 10 characters long.")
    return "".join(secrets.choice(QUIZ_CODE_ALPHABET) for _ in range(length))
