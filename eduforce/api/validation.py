import json
from typing import Type, TypeVar

from flask import request
from pydantic import BaseModel, ValidationError

from eduforce.domain.errors import InvalidInputError

RequestT = TypeVar("RequestT", bound=BaseModel)


def parse_json_body(model: Type[RequestT], error_cls: Type[InvalidInputError] = InvalidInputError) -> RequestT:
    """Validate the JSON body against `model`, raising `error_cls` with field details on failure."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise error_cls()
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise error_cls(details=json.loads(e.json(include_url=False, include_input=False))) from e
