from typing import Any, Dict, Literal, Optional

import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions

from eduforce.domain.errors import AIClientError
from eduforce.infrastructure.config import Settings
from ef_utils.logger_utils import logger
from ef_utils.retry_utils import build_retrying

Provider = Literal["gemini", "openai"]
SUPPORTED_PROVIDERS = ("gemini", "openai")

# Worth another try. Auth, quota, safety blocks and bad requests are not.
TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)


class AIClient:
    """
    Stateless text-completion client.

    Built once at app start-up and handed to the services that need it, so
    tests can swap in a fake with the same `generate` method.
    """

    def __init__(
        self,
        provider: str = "gemini",
        *,
        gemini_api_key: str = "",
        openai_api_key: str = "",
        gemini_model: str = "gemini-2.0-flash",
        openai_model: str = "gpt-4o-mini",
        base_url: str = "",
        timeout: float = 60.0,
        max_attempts: int = 3,
        retry_backoff: float = 1.0,
    ):
        self.provider = provider
        self.gemini_api_key = gemini_api_key
        self.openai_api_key = openai_api_key
        self.gemini_model = gemini_model
        self.openai_model = openai_model
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self._gemini_initialized = False
        self._openai_client: Optional[openai.OpenAI] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIClient":
        return cls(
            provider=settings.EF_DEFAULT_PROVIDER,
            gemini_api_key=settings.GEMINI_API_KEY,
            openai_api_key=settings.OPENAI_API_KEY,
            gemini_model=settings.EF_GEMINI_MODEL,
            openai_model=settings.EF_OPENAI_MODEL,
            base_url=settings.EF_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_attempts=settings.AI_MAX_ATTEMPTS,
            retry_backoff=settings.AI_RETRY_BACKOFF_SECONDS,
        )

    # -------------------------------------------------------------------------
    # Provider init
    # -------------------------------------------------------------------------
    def _ensure_initialized(self) -> None:
        if self.provider == "gemini":
            self._ensure_gemini_initialized()
        elif self.provider == "openai":
            self._ensure_openai_initialized()
        else:
            raise AIClientError(f"Unsupported AI provider: {self.provider}")

    def _ensure_openai_initialized(self) -> None:
        if self._openai_client is not None:
            return
        if not self.openai_api_key or "your_openai" in self.openai_api_key:
            raise AIClientError("OpenAI API key is not configured.")
        client_args: Dict[str, Any] = {
            "api_key": self.openai_api_key,
            "timeout": self.timeout,
            # Retries are handled by generate().
            "max_retries": 0,
        }
        if self.base_url:
            client_args["base_url"] = self.base_url
        self._openai_client = openai.OpenAI(**client_args)

    def _ensure_gemini_initialized(self) -> None:
        if self._gemini_initialized:
            return
        if not self.gemini_api_key or "your_google" in self.gemini_api_key:
            raise AIClientError("Gemini API key is not configured.")
        genai.configure(api_key=self.gemini_api_key)
        self._gemini_initialized = True

    # -------------------------------------------------------------------------
    # Provider calls
    # -------------------------------------------------------------------------
    def _call_openai(self, prompt: str, require_json: bool) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.openai_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.7,
        }
        if require_json:
            kwargs["response_format"] = {"type": "json_object"}
            if "json" not in prompt.lower():
                kwargs["messages"][0]["content"] = prompt + "\nReturn your response as valid JSON."

        logger.debug(f"Using {self.openai_model} (JSON: {require_json})")
        response = self._openai_client.chat.completions.create(**kwargs)
        return (response.choices[0].message.content or "").strip()

    def _call_gemini(self, prompt: str, require_json: bool) -> str:
        model = genai.GenerativeModel(self.gemini_model)
        generation_config = {"response_mime_type": "application/json"} if require_json else None

        logger.debug(f"Using {self.gemini_model} (JSON: {require_json})")
        response = model.generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": self.timeout},
        )
        return (response.text or "").strip()

    # -------------------------------------------------------------------------
    # Main public entrypoint
    # -------------------------------------------------------------------------
    def generate(self, prompt: str, *, require_json: bool = False) -> str:
        """
        Send one prompt and return the model's text.

        Transport failures are retried with exponential backoff; once attempts
        are exhausted (or the client is misconfigured) AIClientError is raised.
        """
        self._ensure_initialized()
        call = self._call_gemini if self.provider == "gemini" else self._call_openai
        model_name = self.gemini_model if self.provider == "gemini" else self.openai_model

        try:
            for attempt in build_retrying(self.max_attempts, TRANSIENT_ERRORS, backoff=self.retry_backoff):
                with attempt:
                    return call(prompt, require_json)
        except Exception as e:
            logger.error(f"{model_name} call failed: {e}", exc_info=True)
            raise AIClientError(f"The AI service failed to process the request: {e}") from e
