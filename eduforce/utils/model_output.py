"""
Parsing of structured (JSON) output from generative models.

Model output is treated as untrusted text: it is cleaned of the usual
defects (markdown fences, chatter around the object, invisible characters,
trailing commas), parsed, then validated against a pydantic schema.
"""
import json
import re
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

from eduforce.domain.errors import BaseAppException
from ef_utils.logger_utils import logger

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
# Control and zero-width characters that break json.loads; \t \n \r are kept.
_INVISIBLE_CHARS = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F\u00A0\u200B-\u200F\u2028-\u202E\uFEFF]")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")

_LOG_PREVIEW_CHARS = 500


def clean_model_json(text: str) -> str:
    """Return the JSON object embedded in a model response, cleaned for parsing."""
    cleaned = (text or "").strip()

    match = _FENCED_BLOCK.search(cleaned)
    if match:
        cleaned = match.group(1).strip()

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    cleaned = _INVISIBLE_CHARS.sub("", cleaned)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    return cleaned


def _preview(text: str) -> str:
    if len(text) <= 2 * _LOG_PREVIEW_CHARS:
        return text
    return f"{text[:_LOG_PREVIEW_CHARS]} ... {text[-_LOG_PREVIEW_CHARS:]}"


def parse_model_output(
    text: str,
    schema: Type[SchemaT],
    error_cls: Type[BaseAppException],
) -> SchemaT:
    """
    Clean, parse and validate a model response.

    Raises `error_cls` if the text is not JSON or does not match `schema`.
    """
    cleaned = clean_model_json(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(
            f"Failed to parse JSON from AI response: {e}",
            extra={"raw_response": _preview(text or ""), "schema": schema.__name__},
        )
        raise error_cls() from e

    if not isinstance(data, dict):
        logger.error(
            "AI response JSON is not an object",
            extra={"raw_response": _preview(text or ""), "schema": schema.__name__},
        )
        raise error_cls()

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.error(
            f"AI response does not match {schema.__name__}: {e.error_count()} error(s)",
            extra={"raw_response": _preview(text or ""), "errors": e.errors(include_url=False)},
        )
        raise error_cls() from e
