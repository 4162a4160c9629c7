from pydantic_settings import BaseSettings, SettingsConfigDict

from ef_utils.logger_utils import logger


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- Core App Settings ---
    FLASK_ENV: str = "production"
    SECRET_KEY: str
    DEBUG: bool = False
    CORS_ORIGINS: str = "*"

    # --- Infrastructure ---
    MONGO_URI: str
    MONGO_ENSURE_INDEXES: bool = True

    # --- Auth ---
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60

    # --- AI Services ---
    OPENAI_API_KEY: str = ""
    GEMINI_API_KEY: str = ""

    # AI Model Configuration
    EF_OPENAI_MODEL: str = "gpt-4o-mini"
    EF_GEMINI_MODEL: str = "gemini-2.0-flash"
    EF_DEFAULT_PROVIDER: str = "gemini"
    EF_BASE_URL: str = ""
    AI_TIMEOUT_SECONDS: float = 60.0
    AI_MAX_ATTEMPTS: int = 3
    AI_RETRY_BACKOFF_SECONDS: float = 1.0

    # --- Quiz generation ---
    QUIZ_MIN_QUESTIONS: int = 1
    QUIZ_MAX_QUESTIONS: int = 25
    QUIZ_DEFAULT_QUESTIONS: int = 5
    QUIZ_GENERATION_MAX_ATTEMPTS: int = 2
    QUIZ_CODE_LENGTH: int = 8
    QUIZ_CODE_MAX_ATTEMPTS: int = 5
    MAX_PDF_BYTES: int = 15 * 1024 * 1024

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    @property
    def jwt_secret(self) -> str:
        """JWT signing key; falls back to SECRET_KEY outside production."""
        return self.JWT_SECRET_KEY or self.SECRET_KEY


# Load settings
settings = Settings()

# Production readiness checks
if settings.FLASK_ENV == "production":
    if not settings.SECRET_KEY or settings.SECRET_KEY == "change-this-to-a-very-secret-key-in-production":
        raise ValueError("CRITICAL: SECRET_KEY is not set for production.")
    if settings.DEBUG:
        raise ValueError("CRITICAL: DEBUG mode must be disabled in production.")
    if not settings.JWT_SECRET_KEY:
        raise ValueError("CRITICAL: JWT_SECRET_KEY is not set for production.")
    if not (settings.GEMINI_API_KEY or settings.OPENAI_API_KEY):
        logger.warning("No AI provider key is set. Quiz generation and analysis will fail.")

if not 6 <= settings.QUIZ_CODE_LENGTH <= 10:
    raise ValueError("QUIZ_CODE_LENGTH must be between 6 and 10.")
